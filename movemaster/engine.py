"""
Command/response engine for the drive unit.

The protocol has no acknowledgement field and no correlation ids: every
command is followed by an ``ER`` query of the error register, and response
lines are paired with queries purely by order. The engine therefore keeps at
most one command in flight (guarded by a lock) and consumes frames strictly
FIFO. A non-zero error register is recovered by a single ``RS`` and reported
as a failed command.

The engine also owns the pose model: the last position read from the arm or
confirmed by a successful move. Callers only ever see immutable snapshots.
"""

import logging
import threading
import time
from collections.abc import Callable

from movemaster import config as cfg
from movemaster.config import TRACE
from movemaster.protocol import wire
from movemaster.protocol.framer import LineFramer
from movemaster.protocol.types import CommandAnswer, PendingCommand, Pose
from movemaster.transports import Transport
from movemaster.utils.errors import ResponseTimeoutError, TransportWriteError

logger = logging.getLogger(__name__)

DataListener = Callable[[bytes], None]


class CommandEngine:
    """
    Serializes commands to the drive unit and verifies each one.

    Not meant to be driven from several call sites at once: the internal lock
    keeps single command cycles atomic, but composite operations (slot moves,
    paths) must be serialized by the owner.
    """

    def __init__(
        self,
        transport: Transport,
        settle_delay: float = cfg.SETTLE_DELAY_S,
        response_timeout: float | None = cfg.RESPONSE_TIMEOUT_S,
        beep_delay: float = cfg.BEEP_DELAY_S,
        reset_delay: float = cfg.RESET_DELAY_S,
    ) -> None:
        self.transport = transport
        self.settle_delay = settle_delay
        # <= 0 waits forever, as with MOVEMASTER_RESPONSE_TIMEOUT_S
        self.response_timeout = response_timeout if response_timeout is not None and response_timeout > 0 else None
        self.beep_delay = beep_delay
        self.reset_delay = reset_delay

        self._framer = LineFramer()
        self._lock = threading.Lock()
        self._pending: PendingCommand | None = None
        self._pose: Pose | None = None
        self._listeners: list[DataListener] = []
        self._listeners_lock = threading.Lock()
        self._started = False

    # ---------- lifecycle ----------

    def start(self) -> None:
        """Attach the line framer to the transport's reader."""
        if self._started:
            return
        self._framer.clear()
        self.transport.start_reader(self._on_data)
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        self.transport.stop_reader()
        self._started = False

    @property
    def framer(self) -> LineFramer:
        return self._framer

    @property
    def pending(self) -> PendingCommand | None:
        """The command currently in flight, if any."""
        return self._pending

    # ---------- inbound ----------

    def _on_data(self, data: bytes) -> None:
        self._framer.feed(data)
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(data)
            except Exception:
                logger.exception("Data listener failed")

    def add_data_listener(self, listener: DataListener) -> None:
        """Register an observer for every raw chunk received from the arm."""
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_data_listener(self, listener: DataListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ---------- pose model ----------

    @property
    def pose(self) -> Pose | None:
        """Snapshot of the last known pose, None until established."""
        return self._pose

    def commit_pose(self, pose: Pose) -> None:
        """Replace the pose after a confirmed transition."""
        if not isinstance(pose, Pose):
            raise TypeError(f"expected Pose, got {type(pose).__name__}")
        self._pose = pose
        logger.debug(f"Pose now {pose}")

    # ---------- commands ----------

    def send_no_answer(self, command: str) -> bool:
        """
        Send a command and verify it via the error register.

        Returns:
            True if the drive unit reported no error
        """
        with self._lock:
            self._pending = PendingCommand(command, expects_answer=False)
            try:
                self._write(command)
                self._sleep(self.settle_delay)
                success = self._check_error(command)
            finally:
                self._pending = None
        return success

    def send_with_answer(self, command: str) -> CommandAnswer:
        """
        Send a query, read its response line, then verify via the error register.

        Returns:
            CommandAnswer with the error-register verdict and the trimmed response
        """
        with self._lock:
            self._pending = PendingCommand(command, expects_answer=True)
            try:
                self._write(command)
                self._sleep(self.settle_delay)
                response = wire.trim_frame(self._wait_frame(command))
                success = self._check_error(command)
            finally:
                self._pending = None
        return CommandAnswer(success=success, response=response)

    def _check_error(self, command: str) -> bool:
        """Query the error register; on a fault reset the drive unit once."""
        self._write(wire.ERROR_QUERY)
        code = wire.trim_frame(self._wait_frame(wire.ERROR_QUERY))
        if code == wire.ERROR_CODE_OK:
            return True

        logger.warning(f"Error {code!r} after '{command}', resetting drive unit")
        self._sleep(self.beep_delay)
        self._write(wire.RESET)
        self._sleep(self.reset_delay)
        return False

    def _write(self, text: str) -> None:
        stale = self._framer.pending_frames
        if stale:
            # Left over from a timed-out query or sent unsolicited
            for _ in range(stale):
                frame = self._framer.pop_frame()
                if frame is not None:
                    logger.warning(f"Discarding stale frame {frame!r}")
        logger.log(TRACE, "cmd_send %r", text)
        if not self.transport.write_line(text):
            raise TransportWriteError(f"Can not write '{text}': transport not connected")

    def _wait_frame(self, command: str) -> str:
        frame = self._framer.wait_frame(self.response_timeout)
        if frame is None:
            logger.error(f"No response to '{command}' within {self.response_timeout}s")
            raise ResponseTimeoutError(command, self.response_timeout)
        return frame

    def settle(self) -> None:
        """Wait the settle delay without sending anything."""
        self._sleep(self.settle_delay)

    @staticmethod
    def _sleep(seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
