"""
Line framing of the inbound byte stream.

The transport hands over whatever bytes it has read (partial lines, several
lines, or nothing useful); the framer accumulates them and publishes every
LF-terminated line as one frame on a thread-safe FIFO queue.
"""

import logging
import queue

from ..config import TRACE

logger = logging.getLogger(__name__)

LF = 0x0A


class LineFramer:
    """
    Accumulates raw bytes and queues complete response lines.

    ``feed`` is called from the transport reader thread; ``pop_frame`` and
    ``wait_frame`` from the command engine. Frames keep their terminator.
    """

    def __init__(self, encoding: str = "ascii"):
        self.encoding = encoding
        self._buffer = bytearray()
        self._frames: queue.Queue[str] = queue.Queue()

    def feed(self, data: bytes) -> int:
        """
        Consume a chunk of bytes.

        Returns:
            Number of frames completed by this chunk
        """
        completed = 0
        for byte in data:
            self._buffer.append(byte)
            if byte == LF:
                frame = self._buffer.decode(self.encoding, errors="replace")
                self._buffer.clear()
                self._frames.put(frame)
                completed += 1
                logger.log(TRACE, "rx_frame %r", frame)
        return completed

    def pop_frame(self) -> str | None:
        """Return the oldest frame, or None if none is queued."""
        try:
            return self._frames.get_nowait()
        except queue.Empty:
            return None

    def wait_frame(self, timeout: float | None = None) -> str | None:
        """
        Block until a frame is available.

        Args:
            timeout: Seconds to wait; None waits forever

        Returns:
            The oldest frame, or None if the timeout expired
        """
        try:
            return self._frames.get(timeout=timeout)
        except queue.Empty:
            return None

    @property
    def pending_frames(self) -> int:
        return self._frames.qsize()

    @property
    def buffered(self) -> bytes:
        """Bytes received after the last terminator."""
        return bytes(self._buffer)

    def clear(self) -> None:
        """Drop buffered bytes and queued frames."""
        self._buffer.clear()
        while self.pop_frame() is not None:
            pass
