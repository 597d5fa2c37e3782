"""
Transport modules for movemaster.

This package provides the real serial transport and a simulated drive unit
speaking the same line protocol.
"""

from .mock_serial_transport import MockSerialTransport
from .serial_transport import SerialTransport
from .transport_factory import Transport, create_transport, is_simulation_mode

__all__ = [
    "SerialTransport",
    "MockSerialTransport",
    "Transport",
    "create_transport",
    "is_simulation_mode",
]
