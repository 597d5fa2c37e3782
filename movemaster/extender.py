"""
Horizontal extender: a passive sliding extension mounted on the hand.

With the extension the tool sits ``extender_length`` millimeters in front of
the hand, in the direction the hand is rotated to. To reach a target the hand
is turned to face straight ahead/behind when the target is far from the
neutral depth, or sideways when it is near it, and the hand position is moved
back along that direction by the extension length.
"""

import logging
from dataclasses import dataclass

from movemaster import config as cfg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtenderTarget:
    """Hand position and roll that put the extender tip on the requested target."""
    x: float
    z: float
    y: float
    r: float


class HorizontalExtender:
    """Moves the tip of a horizontal extender to 2-D targets through a MovemasterRobotArm."""

    def __init__(
        self,
        robot,
        rotation_correction_p: float,
        rotation_correction_r: float,
        extender_length: float,
        middle_z: float = cfg.EXTENDER_MIDDLE_Z,
        depth_threshold: float = cfg.EXTENDER_DEPTH_THRESHOLD,
    ):
        self.robot = robot
        self.rotation_correction_p = rotation_correction_p
        # Roll that turns the extender straight forward
        self.rotation_correction_r = rotation_correction_r
        self.extender_length = extender_length
        self.middle_z = middle_z
        self.depth_threshold = depth_threshold

    def plan(self, x: float, z: float, y: float) -> ExtenderTarget:
        dz = z - self.middle_z
        if abs(dz) > self.depth_threshold:
            if dz < 0:
                r = -180.0
                dz += self.extender_length
            else:
                r = 0.0
                dz -= self.extender_length
        elif x < 0:
            r = 90.0
            x += self.extender_length
        else:
            r = -90.0
            x -= self.extender_length
        return ExtenderTarget(x=x, z=dz + self.middle_z, y=y, r=r)

    def move_to(self, x: float, z: float, y: float, r: float | None = None, interpolate_points: int = 0) -> bool:
        """
        Move the extender tip to (x, z) at height y.

        The roll is derived from the target geometry; a given ``r`` is
        superseded by it.
        """
        target = self.plan(x, z, y)
        if r is not None and r != target.r:
            logger.debug(f"Extender roll {r} replaced by {target.r}")
        return self.robot.move_to(
            target.x,
            target.z,
            target.y,
            self.rotation_correction_p,
            target.r + self.rotation_correction_r,
            interpolate_points,
        )
