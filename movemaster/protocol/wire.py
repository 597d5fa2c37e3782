"""
Wire protocol helpers for the drive unit's ASCII command language.

Commands are an upper-case mnemonic followed by parameters separated by ", ".
Coordinates go out in one-decimal fixed notation with '.' as separator,
independent of the host locale. Responses are LF-terminated lines; the only
ones this module decodes are the position report of ``WH`` and the error
register of ``ER``.
"""

import logging
import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .types import Pose

logger = logging.getLogger(__name__)

PARAM_SEPARATOR = ", "
ERROR_CODE_OK = "0"

# Parameterless commands
WHERE = "WH"
ERROR_QUERY = "ER"
RESET = "RS"
HOME = "OG"
GRIPPER_CLOSE = "GC"
GRIPPER_OPEN = "GO"

# Commands the drive unit answers with a response line
# (where, position read, counter read, data read, line read, version, error)
QUERY_COMMANDS = frozenset({"WH", "PR", "CR", "DR", "LR", "VR", "ER"})

__all__ = [
    "WHERE",
    "ERROR_QUERY",
    "RESET",
    "HOME",
    "GRIPPER_CLOSE",
    "GRIPPER_OPEN",
    "ERROR_CODE_OK",
    "QUERY_COMMANDS",
    "expects_answer",
    "format_value",
    "round_value",
    "r_correction",
    "encode_move_position",
    "encode_position_clear",
    "encode_position_define",
    "encode_move_straight",
    "encode_move_continuous",
    "encode_move_joint",
    "encode_tool_length",
    "encode_grip_pressure",
    "encode_speed",
    "trim_frame",
    "parse_axis_value",
    "decode_where",
    "split_command",
]

_ONE_DECIMAL = Decimal("0.1")


def round_value(value: float) -> float:
    """Round to one decimal the way the wire format does (half away from zero)."""
    if not math.isfinite(value):
        raise ValueError(f"Axis value must be finite, got {value!r}")
    rounded = Decimal(repr(float(value))).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    # Drop the sign of a rounded negative zero
    return float(rounded) + 0.0


def format_value(value: float) -> str:
    """
    Format a coordinate for the wire: one decimal place, '.' separator.

    >>> format_value(12.345)
    '12.3'
    >>> format_value(-0.04)
    '0.0'
    """
    return f"{round_value(value):.1f}"


def _join(mnemonic: str, params: Iterable[object]) -> str:
    parts = [str(p) for p in params]
    if not parts:
        return mnemonic
    return f"{mnemonic} {PARAM_SEPARATOR.join(parts)}"


def _axes(x: float, y: float, z: float, p: float, r: float) -> list[str]:
    return [format_value(v) for v in (x, y, z, p, r)]


def r_correction(x: float, y: float) -> float:
    """Angle (degrees) of the direction from the origin to (x, y), measured from the Y axis."""
    return math.atan2(x, y) * 180.0 / math.pi


def encode_move_position(x: float, y: float, z: float, p: float, r: float) -> str:
    """MP: move directly to a position."""
    return _join("MP", _axes(x, y, z, p, r))


def encode_position_clear(slot: int) -> str:
    """PC: clear a numbered position slot."""
    return _join("PC", [int(slot)])


def encode_position_define(slot: int, x: float, y: float, z: float, p: float, r: float) -> str:
    """PD: store a position in a numbered slot."""
    return _join("PD", [int(slot), *_axes(x, y, z, p, r)])


def encode_move_straight(slot: int, interpolate_points: int, gripper_closed: bool) -> str:
    """MS: move to a numbered slot along a straight line with N interpolation points."""
    return _join("MS", [int(slot), int(interpolate_points), "C" if gripper_closed else "O"])


def encode_move_continuous(first_slot: int, last_slot: int) -> str:
    """MC: move continuously through the numbered slots between first and last."""
    return _join("MC", [int(first_slot), int(last_slot)])


def encode_move_joint(dx: float, dy: float, dz: float, dp: float, dr: float) -> str:
    """MJ: rotate each joint by the given relative amount."""
    return _join("MJ", _axes(dx, dy, dz, dp, dr))


def encode_tool_length(length_mm: int) -> str:
    return _join("TL", [int(length_mm)])


def encode_grip_pressure(starting_force: int, retained_force: int, retention_time: int) -> str:
    return _join("GP", [int(starting_force), int(retained_force), int(retention_time)])


def encode_speed(speed: int) -> str:
    return _join("SP", [int(speed)])


def split_command(line: str) -> tuple[str, list[str]]:
    """
    Split a command line into its mnemonic and parameter strings.

    >>> split_command("PD 1, 0.0, 10.0, 5.0, -90.0, 0.0")
    ('PD', ['1', '0.0', '10.0', '5.0', '-90.0', '0.0'])
    """
    text = line.strip()
    mnemonic, _, rest = text.partition(" ")
    params = [p.strip() for p in rest.split(",")] if rest.strip() else []
    return mnemonic.upper(), params


def expects_answer(command: str) -> bool:
    """Whether the drive unit sends a response line for ``command``."""
    return split_command(command)[0] in QUERY_COMMANDS


def trim_frame(frame: str) -> str:
    """Strip line terminators and surrounding spaces from a response frame."""
    return frame.strip("\r\n ")


def parse_axis_value(value: str) -> float:
    """
    Parse one axis value of a position report.

    Accepts a bare leading decimal point (".5") and a decimal comma. Anything
    unparseable becomes NaN so the other axes of the report remain usable.
    """
    text = value.strip() if value else ""
    if not text:
        return math.nan
    text = text.replace(",", ".")
    if text.startswith("."):
        text = "0" + text
    elif text[0] in "+-" and text[1:2] == ".":
        text = text[0] + "0" + text[1:]
    try:
        return float(Decimal(text))
    except (InvalidOperation, ValueError):
        logger.warning(f"Can not parse axis value {value!r}")
        return math.nan


def decode_where(response: str) -> Pose | None:
    """
    Decode the response of ``WH`` into a Pose.

    Expects exactly five comma-separated values (empty entries ignored).
    Returns None for any other count.
    """
    fields = [f for f in response.split(",") if f != ""]
    if len(fields) != 5:
        logger.error(f"Malformed position report {response!r}: {len(fields)} fields")
        return None
    return Pose(*(parse_axis_value(f) for f in fields))
