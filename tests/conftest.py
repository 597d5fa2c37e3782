"""
Pytest configuration and shared fixtures for movemaster tests.

Provides command line options, transports (scripted and simulated), robots
built on them with zero delays, and the human confirmation helper used by
hardware tests.
"""

import logging
import os
import sys
from typing import Generator, Optional

import pytest

# Add the parent directory to Python path so we can import the package
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from movemaster.robot import MovemasterRobotArm
from movemaster.transports import MockSerialTransport

from tests.utils import FAST_ROBOT_KWARGS, ScriptedTransport

logger = logging.getLogger(__name__)


# ============================================================================
# PYTEST COMMAND LINE OPTIONS
# ============================================================================

def pytest_addoption(parser):
    """Add custom command line options for the test suite."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Enable hardware tests that require an actual robot arm and human confirmation"
    )
    parser.addoption(
        "--serial",
        action="store",
        default=None,
        help="Serial port of the robot arm for hardware tests (e.g. /dev/ttyUSB0)"
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests against the simulated drive unit"
    )
    config.addinivalue_line(
        "markers", "hardware: Hardware tests that require an actual robot arm and human confirmation"
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests by default unless --run-hardware is specified."""
    if not config.getoption("--run-hardware"):
        skip_hardware = pytest.mark.skip(reason="Hardware tests disabled (use --run-hardware to enable)")
        for item in items:
            if item.get_closest_marker("hardware"):
                item.add_marker(skip_hardware)


# ============================================================================
# TRANSPORT AND ROBOT FIXTURES
# ============================================================================

@pytest.fixture
def scripted_transport() -> ScriptedTransport:
    """Transport answering queries synchronously from scripted responses."""
    return ScriptedTransport()


@pytest.fixture
def robot(scripted_transport: ScriptedTransport) -> Generator[MovemasterRobotArm, None, None]:
    """Connected robot on a scripted transport; the connect traffic is cleared."""
    robot = MovemasterRobotArm.create(transport=scripted_transport, **FAST_ROBOT_KWARGS)
    scripted_transport.written.clear()
    try:
        yield robot
    finally:
        robot.close()


@pytest.fixture
def mock_transport() -> Generator[MockSerialTransport, None, None]:
    """Connected simulated drive unit delivering responses in small chunks."""
    transport = MockSerialTransport(timeout=0.01, chunk_size=3)
    transport.connect()
    try:
        yield transport
    finally:
        transport.disconnect()


@pytest.fixture
def sim_robot(mock_transport: MockSerialTransport) -> Generator[MovemasterRobotArm, None, None]:
    """Connected robot on the simulated drive unit."""
    robot = MovemasterRobotArm.create(transport=mock_transport, **FAST_ROBOT_KWARGS)
    mock_transport.written.clear()
    try:
        yield robot
    finally:
        robot.close()


# ============================================================================
# HARDWARE FIXTURES
# ============================================================================

@pytest.fixture
def hardware_robot(request) -> Generator[MovemasterRobotArm, None, None]:
    """Robot arm on the port given with --serial."""
    port = request.config.getoption("--serial")
    if not port:
        pytest.skip("No serial port given (use --serial)")
    robot = MovemasterRobotArm.create(port)
    try:
        yield robot
    finally:
        robot.close()


@pytest.fixture
def human_prompt(request):
    """
    Provide human confirmation prompts for hardware tests.

    Automatically skips tests marked with @pytest.mark.hardware unless
    --run-hardware is specified.
    """
    run_hardware = request.config.getoption("--run-hardware")

    if request.node.get_closest_marker("hardware") and not run_hardware:
        pytest.skip("Hardware tests disabled. Use --run-hardware to enable.")

    def prompt_user(message: str, timeout: Optional[float] = None) -> bool:
        """
        Prompt user for confirmation during hardware tests.

        Returns:
            True if user confirms, False otherwise
        """
        if not run_hardware:
            return False

        print(f"\n{'='*60}")
        print("HARDWARE TEST CONFIRMATION REQUIRED")
        print(f"{'='*60}")
        print(f"{message}")
        print(f"{'='*60}")

        try:
            response = input("Continue? [y/N]: ").strip().lower()
            return response in ['y', 'yes']
        except (KeyboardInterrupt, EOFError):
            print("\nUser confirmation cancelled")
            return False

    return prompt_user
