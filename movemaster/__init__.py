"""
movemaster Python Package

A library for controlling Mitsubishi Movemaster RV-M1 robot arms over their
serial ASCII command language.

Key components:
- MovemasterRobotArm: moves, gripper and settings with pose tracking
- HorizontalExtender: targets for a tool on a sliding horizontal extension
- CommandEngine: verified command/response exchange with the drive unit
- SerialTransport / MockSerialTransport: real and simulated serial line
"""

from ._version import __version__
from .engine import CommandEngine
from .extender import HorizontalExtender
from .protocol.types import CommandAnswer, GripperState, Pose, RMode
from .robot import MovemasterRobotArm
from .transports import MockSerialTransport, SerialTransport, create_transport

__all__ = [
    "__version__",
    "CommandEngine",
    "HorizontalExtender",
    "MovemasterRobotArm",
    "CommandAnswer",
    "GripperState",
    "Pose",
    "RMode",
    "SerialTransport",
    "MockSerialTransport",
    "create_transport",
]
