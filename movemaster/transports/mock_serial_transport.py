"""
Mock serial transport for simulation and testing.

This module provides a serial port simulation that answers the drive unit's
ASCII command language without requiring hardware. The simulation operates at
the line level, making it transparent to the command engine: queries (WH, ER)
produce LF-terminated response lines delivered from a reader thread, all
other commands only change the simulated state and the error register.
"""

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from movemaster import config as cfg
from movemaster.protocol.wire import format_value, split_command

logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes], None]

HOME_POSITION = (0.0, 253.6, 489.2, -90.0, 0.0)

# Error register values
ERROR_NONE = 0
ERROR_COMMAND = 1  # unknown mnemonic or parameter out of range
ERROR_UNDEFINED_POSITION = 2  # numbered slot not defined


@dataclass
class MockRobotState:
    """Internal state of the simulated drive unit."""

    # X, Y, Z, P, R of the tool
    position: np.ndarray = field(default_factory=lambda: np.array(HOME_POSITION, dtype=np.float64))
    # Numbered position memory
    slots: dict[int, np.ndarray] = field(default_factory=dict)
    error_code: int = ERROR_NONE
    speed: int = 4
    tool_length: int = 0
    grip_pressure: tuple[int, int, int] = (10, 10, 30)
    gripper_closed: bool = False
    # Codes reported by the next ER queries regardless of the real register
    injected_errors: list[int] = field(default_factory=list)


class MockSerialTransport:
    """
    Mock serial transport that simulates the drive unit.

    This class implements the same interface as SerialTransport, but
    generates simulated responses instead of communicating with real hardware.
    Every written line is recorded in ``written``.
    """

    def __init__(self, port: str | None = None, baudrate: int = cfg.SERIAL_BAUD,
                 timeout: float = cfg.SERIAL_READ_TIMEOUT_S, chunk_size: int | None = None,
                 terminator: str = "\r\n"):
        """
        Initialize the mock serial transport.

        Args:
            port: Ignored (for interface compatibility)
            baudrate: Ignored (for interface compatibility)
            timeout: Poll interval of the reader thread
            chunk_size: Deliver responses in chunks of this many bytes (None: whole lines)
            terminator: Line terminator of simulated responses
        """
        self.port = port or "MOCK_SERIAL"
        self.baudrate = baudrate
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.terminator = terminator
        self.last_error = ""

        self._state = MockRobotState()
        self._connected = False
        self._lock = threading.Lock()

        self.written: list[str] = []
        self._outbox: queue.Queue[bytes] = queue.Queue()
        self._reader_thread: threading.Thread | None = None
        self._reader_stop = threading.Event()
        self._on_data: DataCallback | None = None

        logger.info("MockSerialTransport initialized - simulation mode active")

    # ---------- connection ----------

    def connect(self, port: str | None = None) -> bool:
        """
        Simulate serial port connection. Always succeeds.
        """
        if port:
            self.port = port
        self._connected = True
        logger.info(f"MockSerialTransport connected to simulated port: {self.port}")
        return True

    def disconnect(self) -> None:
        """Simulate serial port disconnection."""
        self.stop_reader()
        self._connected = False
        logger.info(f"MockSerialTransport disconnected from: {self.port}")

    def is_connected(self) -> bool:
        return self._connected

    # ---------- simulation access ----------

    @property
    def state(self) -> MockRobotState:
        return self._state

    def inject_error(self, code: int = ERROR_COMMAND) -> None:
        """Make the next ER query report ``code``."""
        with self._lock:
            self._state.injected_errors.append(int(code))

    def set_position(self, x: float, y: float, z: float, p: float, r: float) -> None:
        with self._lock:
            self._state.position = np.array([x, y, z, p, r], dtype=np.float64)

    def commands(self, mnemonic: str) -> list[str]:
        """Written lines starting with ``mnemonic``."""
        return [line for line in self.written if split_command(line)[0] == mnemonic]

    # ---------- transport interface ----------

    def write_line(self, text: str) -> bool:
        """
        Process one command line.

        Instead of writing to serial, this updates the simulation state and
        queues the response line of queries.
        """
        if not self._connected:
            return False

        self.written.append(text)
        with self._lock:
            response = self._execute(text)
        if response is not None:
            self._outbox.put((response + self.terminator).encode("ascii"))
        return True

    def start_reader(self, on_data: DataCallback) -> threading.Thread:
        """
        Start a reader thread delivering simulated responses to ``on_data``.
        """
        if not self._connected:
            raise RuntimeError("MockSerialTransport.start_reader: not connected")

        self._on_data = on_data
        if self._reader_thread and self._reader_thread.is_alive():
            return self._reader_thread

        self._reader_stop.clear()

        def _run() -> None:
            while not self._reader_stop.is_set():
                try:
                    data = self._outbox.get(timeout=self.timeout)
                except queue.Empty:
                    continue
                callback = self._on_data
                if callback is None:
                    continue
                step = self.chunk_size or len(data)
                for i in range(0, len(data), step):
                    callback(data[i:i + step])

        t = threading.Thread(target=_run, name="MockSerialReader", daemon=True)
        self._reader_thread = t
        t.start()
        return t

    def stop_reader(self) -> None:
        self._reader_stop.set()
        t = self._reader_thread
        if t and t.is_alive() and t is not threading.current_thread():
            t.join(timeout=1.0)
        self._reader_thread = None
        self._on_data = None

    def get_info(self) -> dict:
        return {
            'port': self.port,
            'baudrate': self.baudrate,
            'connected': self._connected,
            'timeout': self.timeout,
            'simulated': True,
            'tx_lines': len(self.written),
        }

    # ---------- command simulation ----------

    def _execute(self, line: str) -> str | None:
        """Apply one command to the simulated state. Returns the response line of queries."""
        state = self._state
        mnemonic, params = split_command(line)

        if mnemonic == "ER":
            if state.injected_errors:
                return str(state.injected_errors.pop(0))
            return str(state.error_code)
        if mnemonic == "WH":
            return ",".join(format_value(v) for v in state.position)
        if mnemonic == "RS":
            state.error_code = ERROR_NONE
            return None
        if state.error_code != ERROR_NONE:
            # The drive unit ignores commands until it is reset
            return None

        try:
            self._apply(mnemonic, params)
        except (ValueError, IndexError) as e:
            logger.debug(f"MockSerialTransport: rejected {line!r}: {e}")
            state.error_code = ERROR_COMMAND
        except KeyError as e:
            logger.debug(f"MockSerialTransport: undefined position in {line!r}: {e}")
            state.error_code = ERROR_UNDEFINED_POSITION
        return None

    @staticmethod
    def _floats(params: list[str], count: int) -> np.ndarray:
        if len(params) != count:
            raise ValueError(f"expected {count} parameters, got {len(params)}")
        return np.array([float(p) for p in params], dtype=np.float64)

    @staticmethod
    def _slot(value: str) -> int:
        slot = int(value)
        if not 0 <= slot <= cfg.MAX_POSITION_SLOTS:
            raise ValueError(f"slot {slot} out of range")
        return slot

    @staticmethod
    def _int_in_range(value: str, low: int, high: int) -> int:
        n = int(value)
        if not low <= n <= high:
            raise ValueError(f"{n} not in {low}..{high}")
        return n

    def _apply(self, mnemonic: str, params: list[str]) -> None:
        state = self._state
        if mnemonic == "MP":
            state.position = self._floats(params, 5)
        elif mnemonic == "MJ":
            # Joint deltas are approximated as deltas of the tool position
            state.position = state.position + self._floats(params, 5)
        elif mnemonic == "PC":
            state.slots.pop(self._slot(params[0]), None)
        elif mnemonic == "PD":
            slot = self._slot(params[0])
            state.slots[slot] = self._floats(params[1:], 5)
        elif mnemonic == "MS":
            if len(params) != 3 or params[2].upper() not in ("C", "O"):
                raise ValueError("MS needs slot, points, C|O")
            slot = self._slot(params[0])
            self._int_in_range(params[1], 1, 255)
            state.position = state.slots[slot].copy()
            state.gripper_closed = params[2].upper() == "C"
        elif mnemonic == "MC":
            first, last = self._slot(params[0]), self._slot(params[1])
            defined = [s for s in range(min(first, last), max(first, last) + 1) if s in state.slots]
            if not defined:
                raise KeyError(f"{first}..{last}")
            state.position = state.slots[defined[-1] if last >= first else defined[0]].copy()
        elif mnemonic == "OG":
            state.position = np.array(HOME_POSITION, dtype=np.float64)
        elif mnemonic == "SP":
            state.speed = self._int_in_range(params[0], cfg.SPEED_MIN, cfg.SPEED_MAX)
        elif mnemonic == "TL":
            state.tool_length = self._int_in_range(params[0], 0, 300)
        elif mnemonic == "GP":
            if len(params) != 3:
                raise ValueError("GP needs 3 parameters")
            state.grip_pressure = (
                self._int_in_range(params[0], 0, cfg.GRIP_FORCE_MAX),
                self._int_in_range(params[1], 0, cfg.GRIP_FORCE_MAX),
                self._int_in_range(params[2], 0, cfg.GRIP_RETENTION_TIME_MAX),
            )
        elif mnemonic == "GC":
            state.gripper_closed = True
        elif mnemonic == "GO":
            state.gripper_closed = False
        else:
            raise ValueError(f"unknown command {mnemonic!r}")
