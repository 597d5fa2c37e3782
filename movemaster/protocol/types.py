"""
Type definitions for the movemaster protocol.

Defines enums and dataclasses used across the public API.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

import numpy as np


class RMode(Enum):
    """How the R-axis (hand rotation) of a move target is interpreted."""
    ABSOLUTE = "absolute"  # aligned with the direction origin -> target
    RELATIVE = "relative"  # sent verbatim

    @classmethod
    def parse(cls, value: RMode | str) -> RMode:
        if isinstance(value, RMode):
            return value
        return cls(str(value).strip().lower())


class GripperState(Enum):
    """Cached hand state. UNKNOWN until the gripper was commanded once."""
    UNKNOWN = "unknown"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Pose:
    """
    Position of the tool: X, Y, Z in millimeters, P (pitch) and R (roll) in degrees.

    Immutable; the engine replaces it wholesale on every confirmed transition.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    p: float = 0.0
    r: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z, self.p, self.r], dtype=np.float64)

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0,
               dp: float = 0.0, dr: float = 0.0) -> Pose:
        return replace(self, x=self.x + dx, y=self.y + dy, z=self.z + dz,
                       p=self.p + dp, r=self.r + dr)

    def has_nan(self) -> bool:
        return bool(np.isnan(self.as_array()).any())

    def __str__(self) -> str:
        return f"X={self.x:.1f} Y={self.y:.1f} Z={self.z:.1f} P={self.p:.1f} R={self.r:.1f}"


@dataclass(frozen=True)
class CommandAnswer:
    """Result of a command: error-register verdict plus the trimmed response, if any."""
    success: bool
    response: str | None = None


@dataclass(frozen=True)
class PendingCommand:
    """The single command currently in flight."""
    text: str
    expects_answer: bool
