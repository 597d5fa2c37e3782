"""
Serial transport implementation for the Movemaster drive unit.

This module handles serial port communication: opening the line with the
drive unit's settings, writing command lines, and delivering received bytes
to a callback from a dedicated reader thread.
"""

import logging
import threading
import time
from collections.abc import Callable
from typing import Optional

import serial

from movemaster.config import LINE_TERMINATOR, SERIAL_BAUD, SERIAL_READ_TIMEOUT_S, TRACE

logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes], None]


class SerialTransport:
    """
    Manages serial port communication with the drive unit.

    This class handles:
    - Serial port connection (9600 baud, 7 data bits, even parity, 2 stop bits)
    - Command line transmission
    - Reception of raw bytes on a reader thread
    """

    def __init__(self, port: Optional[str] = None, baudrate: int = SERIAL_BAUD,
                 timeout: float = SERIAL_READ_TIMEOUT_S, encoding: str = "ascii"):
        """
        Initialize the serial transport.

        Args:
            port: Serial port name (e.g., 'COM3', '/dev/ttyUSB0')
            baudrate: Baud rate for serial communication
            timeout: Read timeout in seconds used by the reader thread
            encoding: Text encoding of command lines
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.encoding = encoding
        self.serial: Optional[serial.Serial] = None
        self.last_error: str = ""

        self._write_lock = threading.Lock()
        self._reader_thread: Optional[threading.Thread] = None
        self._reader_stop = threading.Event()
        self._on_data: Optional[DataCallback] = None

        self._rx_bytes = 0
        self._tx_lines = 0

    def connect(self, port: Optional[str] = None) -> bool:
        """
        Connect to the serial port.

        Args:
            port: Optional port override. If not provided, uses stored port.

        Returns:
            True if connection successful, False otherwise (see ``last_error``)
        """
        if port:
            self.port = port

        if not self.port:
            self.last_error = "no serial port specified"
            logger.warning("No serial port specified")
            return False

        try:
            if self.serial and self.serial.is_open:
                self.serial.close()

            self.serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.SEVENBITS,
                parity=serial.PARITY_EVEN,
                stopbits=serial.STOPBITS_TWO,
                rtscts=True,
                xonxoff=True,
                timeout=self.timeout,
            )
            self.serial.dtr = True
            self.serial.rts = True

            if self.serial.is_open:
                self.last_error = ""
                logger.info(f"Connected to serial port: {self.port}")
                return True
            self.last_error = "port did not open"
            logger.error(f"Failed to open serial port: {self.port}")
            return False

        except (serial.SerialException, ValueError) as e:
            self.last_error = str(e)
            logger.error(f"Serial connection error: {e}")
            self.serial = None
            return False

    def disconnect(self) -> None:
        """Stop the reader and close the serial port."""
        self.stop_reader()
        if self.serial:
            try:
                if self.serial.is_open:
                    self.serial.close()
                logger.info(f"Disconnected from serial port: {self.port}")
            except serial.SerialException as e:
                logger.error(f"Error closing serial port: {e}")
            finally:
                self.serial = None

    def is_connected(self) -> bool:
        return self.serial is not None and self.serial.is_open

    def write_line(self, text: str) -> bool:
        """
        Write one command line, terminated by LF.

        Returns:
            True if write successful, False otherwise
        """
        ser = self.serial
        if ser is None or not ser.is_open:
            return False

        try:
            payload = (text + LINE_TERMINATOR).encode(self.encoding)
            with self._write_lock:
                ser.write(payload)
            self._tx_lines += 1
            logger.log(TRACE, "tx_line %r", text)
            return True
        except serial.SerialException as e:
            logger.error(f"Serial write error: {e}")
            self.disconnect()
            return False
        except UnicodeEncodeError as e:
            logger.error(f"Can not encode command {text!r}: {e}")
            return False

    def start_reader(self, on_data: DataCallback) -> threading.Thread:
        """
        Start a dedicated reader thread that hands every received chunk to ``on_data``.

        Returns the started Thread object. If already running, the callback is
        replaced and the existing thread returned.
        """
        if not self.is_connected():
            raise RuntimeError("SerialTransport.start_reader: serial port not connected")

        self._on_data = on_data
        if self._reader_thread and self._reader_thread.is_alive():
            return self._reader_thread

        self._reader_stop.clear()

        def _run() -> None:
            while not self._reader_stop.is_set():
                ser = self.serial
                if not ser or not getattr(ser, "is_open", False):
                    time.sleep(0.1)
                    continue
                try:
                    # Block for one byte (or timeout), then take whatever else arrived
                    data = ser.read(1)
                    if data and ser.in_waiting:
                        data += ser.read(ser.in_waiting)
                except serial.SerialException as e:
                    if not self._reader_stop.is_set():
                        logger.error(f"Serial reader error: {e}")
                    break
                except (OSError, TypeError, AttributeError):
                    # fd closed during disconnect
                    logger.info("Serial reader stopping due to disconnect/closed FD")
                    break

                if not data:
                    continue
                self._rx_bytes += len(data)
                callback = self._on_data
                if callback is not None:
                    callback(bytes(data))

        t = threading.Thread(target=_run, name="SerialReader", daemon=True)
        self._reader_thread = t
        t.start()
        return t

    def stop_reader(self) -> None:
        self._reader_stop.set()
        t = self._reader_thread
        if t and t.is_alive() and t is not threading.current_thread():
            t.join(timeout=max(1.0, self.timeout * 4))
        self._reader_thread = None
        self._on_data = None

    def get_info(self) -> dict:
        """
        Get information about the current serial connection.

        Returns:
            Dictionary with connection information
        """
        info = {
            'port': self.port,
            'baudrate': self.baudrate,
            'connected': self.is_connected(),
            'timeout': self.timeout,
            'rx_bytes': self._rx_bytes,
            'tx_lines': self._tx_lines,
        }

        if self.serial and self.serial.is_open:
            try:
                info['in_waiting'] = self.serial.in_waiting
                info['out_waiting'] = self.serial.out_waiting
            except (serial.SerialException, OSError):
                pass

        return info

