"""
High-level control of a Movemaster RV-M1 arm.

MovemasterRobotArm turns logical requests (absolute and relative moves,
interpolated moves, multi-point paths, gripper and speed settings) into
commands for the CommandEngine and keeps the engine's pose model in step with
every confirmed move.

Example:
    with MovemasterRobotArm.create("/dev/ttyUSB0") as robot:
        robot.set_speed(5)
        robot.move_to(0, 250, 400, -90, 0)
        robot.move_delta(0, 0, -20, interpolate_points=10)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from movemaster import config as cfg
from movemaster.engine import CommandEngine, DataListener
from movemaster.protocol import wire
from movemaster.protocol.types import CommandAnswer, GripperState, Pose, RMode
from movemaster.transports import Transport, create_transport
from movemaster.utils.errors import InvalidParameterError, PoseNotEstablishedError, TransportOpenError

logger = logging.getLogger(__name__)


class MovemasterRobotArm:
    """
    Controls the robot arm through a transport.

    Use ``MovemasterRobotArm.create(port)`` to open the line and read the
    initial pose in one step, or construct with a transport and call
    ``connect()``.
    """

    # ---------- lifecycle ----------

    def __init__(
        self,
        transport: Transport,
        r_mode: RMode | str = cfg.R_MODE_DEFAULT,
        settle_delay: float = cfg.SETTLE_DELAY_S,
        response_timeout: float | None = cfg.RESPONSE_TIMEOUT_S,
        beep_delay: float = cfg.BEEP_DELAY_S,
        reset_delay: float = cfg.RESET_DELAY_S,
    ) -> None:
        self.transport = transport
        self.engine = CommandEngine(
            transport,
            settle_delay=settle_delay,
            response_timeout=response_timeout,
            beep_delay=beep_delay,
            reset_delay=reset_delay,
        )
        self.r_mode = RMode.parse(r_mode)
        self._gripper = GripperState.UNKNOWN

    @classmethod
    def create(cls, port: str | None = None, transport: Transport | None = None, **kwargs) -> MovemasterRobotArm:
        """
        Open the arm on ``port`` and read its position.

        Raises:
            TransportOpenError: the port can not be opened
            PoseNotEstablishedError: the initial position could not be read
        """
        if transport is None:
            transport = create_transport(port=port)
        robot = cls(transport, **kwargs)
        robot.connect(port)
        return robot

    def connect(self, port: str | None = None) -> None:
        """Open the transport, start receiving and read the initial pose."""
        if not self.transport.is_connected() and not self.transport.connect(port):
            reason = getattr(self.transport, "last_error", "")
            raise TransportOpenError(port or getattr(self.transport, "port", None), reason)
        self.engine.start()
        try:
            ok = self.update_pose_from_hardware()
        except Exception:
            self.close()
            raise
        if not ok:
            self.close()
            raise PoseNotEstablishedError("Can not read initial position from hardware")
        logger.info(f"Robot arm ready at {self.engine.pose}")

    def close(self) -> None:
        self.engine.stop()
        self.transport.disconnect()

    def __enter__(self) -> MovemasterRobotArm:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    # ---------- raw access ----------

    def run_command(self, command: str, expect_answer: bool | None = None) -> CommandAnswer:
        """
        Send an arbitrary command.

        Args:
            command: Command line, e.g. "WH" or "SP 5"
            expect_answer: Whether to read a response line first. Derived from
                the mnemonic when None; waiting for an answer to a command
                that has none ends in a ResponseTimeoutError.
        """
        if expect_answer is None:
            expect_answer = wire.expects_answer(command)
        if expect_answer:
            return self.engine.send_with_answer(command)
        return CommandAnswer(success=self.engine.send_no_answer(command))

    def add_data_listener(self, listener: DataListener) -> None:
        self.engine.add_data_listener(listener)

    def remove_data_listener(self, listener: DataListener) -> None:
        self.engine.remove_data_listener(listener)

    # ---------- pose ----------

    @property
    def pose(self) -> Pose | None:
        return self.engine.pose

    def _require_pose(self) -> Pose:
        pose = self.engine.pose
        if pose is None:
            raise PoseNotEstablishedError("Actual position not set")
        return pose

    def get_pose(self, force_update: bool = False) -> Pose | None:
        """
        Current pose of the tool.

        Args:
            force_update: Read the position from the arm (slow) instead of
                returning the last confirmed one. Moving the arm by hand is
                only noticed this way.

        Returns:
            The pose, or None if a forced update failed
        """
        self._require_pose()
        if force_update and not self.update_pose_from_hardware():
            return None
        return self.engine.pose

    def update_pose_from_hardware(self) -> bool:
        """Read the position with ``WH`` and replace the pose model."""
        answer = self.engine.send_with_answer(wire.WHERE)
        if not answer.success:
            return False
        pose = wire.decode_where(answer.response or "")
        if pose is None:
            return False
        if pose.has_nan():
            logger.warning(f"Position report {answer.response!r} contains unparseable values")
        self.engine.commit_pose(pose)
        return True

    # ---------- settings ----------

    def reset(self) -> bool:
        """Resets the control box."""
        return self.engine.send_no_answer(wire.RESET)

    def home(self) -> bool:
        """Moves all axes to the origin position."""
        return self.engine.send_no_answer(wire.HOME)

    def set_speed(self, speed: int) -> bool:
        """Sets the move speed, 0 = slowest, 9 = fastest."""
        if not cfg.SPEED_MIN <= speed <= cfg.SPEED_MAX:
            logger.warning(f"Rejected speed {speed}, allowed {cfg.SPEED_MIN}..{cfg.SPEED_MAX}")
            return False
        return self.engine.send_no_answer(wire.encode_speed(speed))

    def set_tool_length(self, length_mm: int) -> bool:
        return self.engine.send_no_answer(wire.encode_tool_length(length_mm))

    def set_grip_pressure(self, starting_force: int, retained_force: int, retention_time: int) -> bool:
        """
        Defines the gripping force of the hand.

        Args:
            starting_force: Force when the hand starts closing (0..15)
            retained_force: Force held after the retention time (0..15)
            retention_time: How long the starting force is kept, in 0.1 s (0..99)
        """
        if not (0 <= starting_force <= cfg.GRIP_FORCE_MAX
                and 0 <= retained_force <= cfg.GRIP_FORCE_MAX
                and 0 <= retention_time <= cfg.GRIP_RETENTION_TIME_MAX):
            logger.warning(
                f"Rejected grip pressure ({starting_force}, {retained_force}, {retention_time})"
            )
            return False
        return self.engine.send_no_answer(
            wire.encode_grip_pressure(starting_force, retained_force, retention_time)
        )

    @property
    def gripper_state(self) -> GripperState:
        return self._gripper

    @property
    def gripper_closed(self) -> bool:
        return self._gripper is GripperState.CLOSED

    def set_gripper_closed(self, closed: bool) -> bool:
        """Close or open the hand. Nothing is sent if it is known to be in that state already."""
        target = GripperState.CLOSED if closed else GripperState.OPEN
        if self._gripper is target:
            return True
        ok = self.engine.send_no_answer(wire.GRIPPER_CLOSE if closed else wire.GRIPPER_OPEN)
        if ok:
            self._gripper = target
        return ok

    # ---------- motion ----------

    def clean_up_r_value(self, x: float, y: float, r: float) -> float:
        """R value aligned with the direction from the origin to (x, y)."""
        return r + wire.r_correction(x, y)

    def _wire_r(self, x: float, y: float, r: float) -> float:
        if self.r_mode is RMode.ABSOLUTE:
            return self.clean_up_r_value(x, y, r)
        return r

    def move_to(
        self,
        x: float,
        y: float,
        z: float,
        p: float | None = None,
        r: float | None = None,
        interpolate_points: int = 0,
    ) -> bool:
        """
        Move to an absolute position.

        Without ``p`` / ``r`` the current pitch and roll are kept. With
        ``interpolate_points`` > 0 the move follows a straight line through
        that many calculated points, staged in a temporary numbered slot.
        On success the pose model becomes the target. A target with a
        non-finite value (e.g. an axis the arm reported unreadable) is not
        sent and fails.
        """
        if p is None or r is None:
            current = self._require_pose()
            p = current.p if p is None else p
            r = current.r if r is None else r

        values = (x, y, z, p, r)
        if not all(math.isfinite(v) for v in values):
            logger.warning(f"Move target {values} has non-finite values, not sent")
            return False
        target = Pose(*(wire.round_value(v) for v in values))
        wire_r = self._wire_r(target.x, target.y, target.r)
        logger.debug(f"move_to {target} (R on wire {wire_r:.1f}, points {interpolate_points})")

        if interpolate_points == 0:
            success = self.engine.send_no_answer(
                wire.encode_move_position(target.x, target.y, target.z, target.p, wire_r)
            )
        else:
            slot = cfg.TEMP_POSITION_SLOT
            success = (
                self.engine.send_no_answer(wire.encode_position_clear(slot))
                and self.engine.send_no_answer(
                    wire.encode_position_define(slot, target.x, target.y, target.z, target.p, wire_r)
                )
                and self.engine.send_no_answer(
                    wire.encode_move_straight(slot, interpolate_points, self.gripper_closed)
                )
            )

        if success:
            self.engine.commit_pose(target)
        return success

    def move_to_pose(self, pose: Pose, interpolate_points: int = 0) -> bool:
        return self.move_to(pose.x, pose.y, pose.z, pose.p, pose.r, interpolate_points)

    def move_delta(
        self,
        dx: float,
        dy: float,
        dz: float,
        dp: float = 0.0,
        dr: float = 0.0,
        interpolate_points: int = 0,
    ) -> bool:
        """Move relative to the current pose."""
        target = self._require_pose().offset(dx, dy, dz, dp, dr)
        return self.move_to_pose(target, interpolate_points)

    def move_path(self, positions: Sequence[Pose]) -> bool:
        """
        Move continuously through a list of positions.

        Each position is stored in a numbered slot starting at 0, then the
        arm runs through all of them. Definition results are logged but do
        not stop the path; the pose model is not updated.

        Raises:
            InvalidParameterError: empty, too long, or a non-finite position
                (checked before anything is sent)
        """
        count = len(positions)
        if count == 0:
            raise InvalidParameterError("Number of positions is 0")
        if count > cfg.MAX_POSITION_SLOTS:
            raise InvalidParameterError(f"Number of positions exceeds maximum ({cfg.MAX_POSITION_SLOTS})")

        commands = []
        for slot, pose in enumerate(positions):
            if not all(math.isfinite(v) for v in (pose.x, pose.y, pose.z, pose.p, pose.r)):
                raise InvalidParameterError(f"Path position {slot} has non-finite values: {pose}")
            commands.append(wire.encode_position_define(
                slot, pose.x, pose.y, pose.z, pose.p, self._wire_r(pose.x, pose.y, pose.r)
            ))

        for slot, command in enumerate(commands):
            if not self.engine.send_no_answer(command):
                logger.warning(f"Defining path position {slot} failed")
            self.engine.settle()

        self.engine.send_no_answer(wire.encode_move_continuous(0, count))
        return True

    def rotate_axis(self, dx: float, dy: float, dz: float, dp: float, dr: float) -> bool:
        """Rotate the joints relative to their current angles, then re-read the pose."""
        self._require_pose()
        if not self.engine.send_no_answer(wire.encode_move_joint(dx, dy, dz, dp, dr)):
            return False
        return self.update_pose_from_hardware()
