"""
Protocol layer: line framing, wire encoding/decoding and shared types.
"""

from .framer import LineFramer
from .types import CommandAnswer, GripperState, PendingCommand, Pose, RMode

__all__ = [
    "LineFramer",
    "CommandAnswer",
    "GripperState",
    "PendingCommand",
    "Pose",
    "RMode",
]
