"""
Transport factory for creating appropriate transport instances.

This module selects between the real serial transport and the simulated
drive unit based on configuration and environment.
"""

import logging
import os
from typing import Optional, Union

from movemaster.config import SERIAL_BAUD
from movemaster.transports.mock_serial_transport import MockSerialTransport
from movemaster.transports.serial_transport import SerialTransport

logger = logging.getLogger(__name__)

Transport = Union[SerialTransport, MockSerialTransport]


def is_simulation_mode() -> bool:
    """
    Check if simulation mode is enabled.

    Returns:
        True if simulation mode is enabled via environment variable
    """
    fake_serial = str(os.getenv("MOVEMASTER_FAKE_SERIAL", "0")).lower()
    return fake_serial in ("1", "true", "yes", "on")


def create_transport(
    transport_type: Optional[str] = None,
    port: Optional[str] = None,
    baudrate: int = SERIAL_BAUD,
    **kwargs
) -> Transport:
    """
    Create an appropriate transport instance based on configuration.

    The factory will automatically select the appropriate transport:
    - MockSerialTransport if MOVEMASTER_FAKE_SERIAL is set
    - SerialTransport otherwise

    Args:
        transport_type: Explicit transport type ('serial', 'mock', or None for auto)
        port: Serial port name (for real serial)
        baudrate: Baud rate for serial communication
        **kwargs: Additional transport-specific parameters

    Returns:
        Transport instance (SerialTransport or MockSerialTransport)
    """
    if transport_type is None:
        transport_type = 'mock' if is_simulation_mode() else 'serial'

    if transport_type == 'mock':
        logger.info("Creating MockSerialTransport for simulation")
        return MockSerialTransport(port=port, baudrate=baudrate, **kwargs)
    if transport_type == 'serial':
        logger.info(f"Creating SerialTransport for port: {port}")
        return SerialTransport(port=port, baudrate=baudrate, **kwargs)

    raise ValueError(f"Unknown transport type: {transport_type}")

