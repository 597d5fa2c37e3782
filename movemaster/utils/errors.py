"""
Custom exception types for the movemaster command/control pipeline.

Device-reported faults are not exceptions: they are recovered by a reset and
surfaced as a failed (False) result. These types cover transport problems and
caller contract violations only.
"""


class MovemasterError(RuntimeError):
    """Base class for movemaster errors."""


class TransportOpenError(MovemasterError):
    """The serial line could not be opened."""

    def __init__(self, port: str | None, reason: str = ""):
        self.port = port
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Can not open robot port '{port}'{detail}")


class TransportWriteError(MovemasterError):
    """A command could not be written to the transport."""


class ResponseTimeoutError(MovemasterError):
    """No response frame arrived within the configured timeout."""

    def __init__(self, command: str, timeout_s: float | None):
        self.command = command
        self.timeout_s = timeout_s
        super().__init__(f"No response to '{command}' within {timeout_s}s")


class PoseNotEstablishedError(MovemasterError):
    """An operation needed the current pose before one was read from the arm."""


class InvalidParameterError(MovemasterError, ValueError):
    """A parameter is outside the range the drive unit accepts."""
