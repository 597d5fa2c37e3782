"""
Test utilities package.

Provides transport doubles for testing the movemaster package.
"""

from .fake_transport import DEFAULT_WHERE, FAST_ROBOT_KWARGS, ScriptedTransport

__all__ = [
    "DEFAULT_WHERE",
    "FAST_ROBOT_KWARGS",
    "ScriptedTransport",
]
