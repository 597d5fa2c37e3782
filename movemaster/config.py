"""
Central configuration for movemaster tunables and shared constants.
"""

import logging
import os
from pathlib import Path

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


# Pause after writing a command before the controller is expected to have processed it (s)
SETTLE_DELAY_S: float = _env_float("MOVEMASTER_SETTLE_DELAY_S", 0.1)
# Pause after a failed error check before the reset command (controller beeps)
BEEP_DELAY_S: float = _env_float("MOVEMASTER_BEEP_DELAY_S", 0.01)
# Pause after the automatic reset command
RESET_DELAY_S: float = _env_float("MOVEMASTER_RESET_DELAY_S", 0.1)

# Max wait for one response frame. <= 0 waits forever.
_timeout = _env_float("MOVEMASTER_RESPONSE_TIMEOUT_S", 10.0)
RESPONSE_TIMEOUT_S: float | None = _timeout if _timeout > 0 else None

# R-axis correction policy: "absolute" or "relative"
R_MODE_DEFAULT: str = os.getenv("MOVEMASTER_R_MODE", "relative").strip().lower()

# Serial line settings of the drive unit (7E2, hardware + software handshake)
SERIAL_BAUD: int = 9600
SERIAL_READ_TIMEOUT_S: float = 0.05
LINE_TERMINATOR: str = "\n"

LOG_LEVEL_DEFAULT: str = "INFO"

# Position memory of the drive unit
MAX_POSITION_SLOTS: int = 629
TEMP_POSITION_SLOT: int = 1

# Accepted parameter ranges (inclusive)
SPEED_MIN: int = 0
SPEED_MAX: int = 9
GRIP_FORCE_MAX: int = 15
GRIP_RETENTION_TIME_MAX: int = 99

# Horizontal extender geometry defaults (mm)
EXTENDER_MIN_Z: float = 240.0
EXTENDER_MAX_Z: float = 360.0
EXTENDER_MIDDLE_Z: float = EXTENDER_MIN_Z + (EXTENDER_MAX_Z - EXTENDER_MIN_Z) / 2
EXTENDER_DEPTH_THRESHOLD: float = 40.0

# COM port persistence file stored in user config directory by default (cross-platform).
_default_com_file = Path.home() / ".movemaster" / "com_port.txt"
COM_PORT_FILE: str = os.getenv("MOVEMASTER_COM_FILE", str(_default_com_file))


def save_com_port(port: str) -> bool:
    """
    Save COM port to persistent file.

    Args:
        port: COM port string to save

    Returns:
        True if successful, False otherwise
    """
    try:
        com_port_path = Path(COM_PORT_FILE)
        com_port_path.parent.mkdir(parents=True, exist_ok=True)
        com_port_path.write_text(port.strip())
        logger.info(f"Saved COM port {port} to {COM_PORT_FILE}")
        return True
    except OSError as e:
        logger.error(f"Failed to save COM port: {e}")
        return False


def load_com_port() -> str | None:
    """
    Load saved COM port from file.

    Returns:
        COM port string if found, None otherwise
    """
    try:
        com_port_path = Path(COM_PORT_FILE)
        if com_port_path.exists():
            port = com_port_path.read_text().strip()
            if port:
                logger.info(f"Loaded COM port {port} from {COM_PORT_FILE}")
                return port
    except OSError as e:
        logger.error(f"Failed to load COM port: {e}")
    return None


def get_com_port_with_fallback() -> str:
    """
    Resolve COM port from environment or file.

    Priority:
      1) Environment variables: MOVEMASTER_COM_PORT or MOVEMASTER_SERIAL
      2) com_port.txt (if present and non-empty)

    Returns:
      Port string if available, otherwise an empty string "".
    """
    env_port = os.getenv("MOVEMASTER_COM_PORT") or os.getenv("MOVEMASTER_SERIAL")
    if env_port and env_port.strip():
        port = env_port.strip()
        logger.info(f"Using COM port from environment: {port}")
        return port

    saved_port = load_com_port()
    if saved_port:
        return saved_port

    return ""
