"""Parsing, arithmetic and formatting utilities."""

from datetime import datetime, timezone
from decimal import Decimal

from sui_invariant_monitor.constants import INTEREST_INDEX_DECIMALS, INTEREST_INDEX_SCALE_DEC, U128_MAX


def as_uint(value, *, maximum: int = U128_MAX) -> int | None:
    """Parse an unsigned integer from a decimal string or native int.

    Returns None for anything else (floats, bools, negatives, values above `maximum`, garbage).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        v = value.strip()
        if not (v.isascii() and v.isdigit()):
            return None
        parsed = int(v)
    else:
        return None
    if parsed < 0 or parsed > maximum:
        return None
    return parsed


def saturating_add(a: int, b: int, *, maximum: int = U128_MAX) -> int:
    """Add, clamping at `maximum` instead of overflowing."""
    return min(a + b, maximum)


def saturating_mul(a: int, b: int, *, maximum: int = U128_MAX) -> int:
    """Multiply, clamping at `maximum` instead of overflowing."""
    return min(a * b, maximum)


def abs_diff(a: int, b: int) -> int:
    """Absolute difference of two unsigned values without going negative."""
    if a > b:
        return a - b
    return b - a


def format_index(index: int) -> str:
    """Format a 1e9 fixed-point interest index as a decimal, e.g. 1000000000 -> 1.000000000."""
    return f"{(Decimal(index) / INTEREST_INDEX_SCALE_DEC):.{INTEREST_INDEX_DECIMALS}f}"


def format_sci(value: int, *, sig: int = 3) -> str:
    """Format a large integer in scientific notation."""
    if value == 0:
        return "0"
    s = format(Decimal(abs(value)), f".{max(0, sig - 1)}e")  # 1.69e+13
    mant, exp = s.split("e")
    mant = mant.rstrip("0").rstrip(".")
    exp_i = int(exp)
    sign = "-" if value < 0 else ""
    return f"{sign}{mant}e{exp_i}"


def format_timestamp(ts: int) -> str:
    """Format unix seconds as a UTC string."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
