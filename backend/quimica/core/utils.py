"""
Shared helpers used across services and routes
"""
import math
from typing import Any, Optional


def parse_id(value: Any) -> Optional[int]:
    """Coerce a route or query value into an integer id

    Args:
        value: int, numeric string, float or None

    Returns:
        The integer id, or None when the value is missing, not a finite number
        or has a fractional part
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for non-negative values (2.5 -> 3, 0.125 -> 0.13)"""
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded


def percentage(part: float, whole: float) -> int:
    """Whole-number percentage of part over whole, 0 when whole is 0"""
    if not whole:
        return 0
    return int(round_half_up(part / whole * 100))


def format_time(seconds: Optional[float]) -> str:
    """Format a countdown as H:MM:SS, or M:SS under one hour

    Args:
        seconds: Remaining seconds; None, non-finite and negative values render as 0:00

    Returns:
        Formatted string (e.g. "1:05:09" or "4:07")
    """
    if seconds is None:
        return "0:00"
    try:
        seconds = float(seconds)
    except (TypeError, ValueError):
        return "0:00"
    if not math.isfinite(seconds):
        return "0:00"

    total = max(0, int(math.floor(seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def average(values) -> float:
    """Arithmetic mean, 0 for an empty sequence"""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)
