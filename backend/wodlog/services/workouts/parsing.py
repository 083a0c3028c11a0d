"""
Amount and time parsing - athlete shorthand to numbers.

Both parsers are total: unrecognized input degrades to 0 / None and
never raises. Callers keep the original text for display.
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

Number = Union[int, float]

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_MMSS = re.compile(r"^(\d+):(\d{2})$")


def is_number(value: Any) -> bool:
    """True for finite ints/floats (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_int_prefix(text: Any) -> Optional[int]:
    """
    Parse the leading integer of a string, like JavaScript's parseInt.

    "21 reps" -> 21, " 5" -> 5, "abc" -> None
    """
    if is_number(text):
        return int(text)
    if not isinstance(text, str):
        return None
    match = _INT_PREFIX.match(text)
    if not match:
        return None
    return int(match.group(1))


def to_int(value: Any) -> Optional[int]:
    """Lenient int coercion for untrusted JSON values."""
    if is_number(value):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            number = float(stripped)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def to_float(value: Any) -> Optional[float]:
    """Lenient float coercion for untrusted JSON values."""
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


# ========================================
# Amount Parser
# ========================================

def parse_amount(amount: Union[str, Number]) -> Number:
    """
    Convert a movement amount into a total rep count.

    Rules, in order:
    - numeric input is returned as is
    - "21-15-9" (ladder/pyramid) -> sum of the dash-separated tokens (45)
    - "5x5" (sets x reps) -> product of exactly two parts (25), else 0
    - anything else -> leading integer, or 0

    Args:
        amount: Amount as written on the whiteboard

    Returns:
        Total reps (0 when the amount cannot be interpreted)
    """
    if is_number(amount):
        return amount
    if not isinstance(amount, str):
        return 0

    text = amount.strip().lower()

    if "-" in text:
        return sum(parse_int_prefix(token) or 0 for token in text.split("-"))

    if "x" in text:
        parts = text.split("x")
        if len(parts) != 2:
            return 0
        sets = parse_int_prefix(parts[0]) or 0
        reps = parse_int_prefix(parts[1]) or 0
        return sets * reps

    return parse_int_prefix(text) or 0


# ========================================
# Time Parser
# ========================================

@dataclass(frozen=True)
class TimeParse:
    """Result of parsing a written time."""
    seconds: Optional[int]
    # Colon-less values with 4+ digits ("1000": 10:00 or 100:0?)
    ambiguous: bool = False


def parse_time_detailed(value: Union[str, Number, None]) -> TimeParse:
    """
    Parse a written time into seconds, reporting ambiguous shorthand.

    Handles:
    - "1:13" -> 73 (MM:SS, any number of minute digits)
    - "113"  -> 73 (colon omitted: last two digits are seconds)
    - "45"   -> 45 (values below 60 are raw seconds)
    """
    if value is None or isinstance(value, bool):
        return TimeParse(None)

    if is_number(value):
        # Already seconds
        return TimeParse(int(value) if value >= 0 else None)

    if not isinstance(value, str):
        return TimeParse(None)

    text = value.strip()
    if not text:
        return TimeParse(None)

    if ":" in text:
        parts = text.split(":")
        if len(parts) != 2:
            return TimeParse(None)
        minutes = to_int(parts[0]) if parts[0].strip() else None
        seconds = to_int(parts[1]) if parts[1].strip() else None
        if minutes is None or seconds is None:
            return TimeParse(None)
        if minutes < 0 or seconds < 0 or seconds >= 60:
            return TimeParse(None)
        return TimeParse(minutes * 60 + seconds)

    number = parse_int_prefix(text)
    if number is None or number < 0:
        return TimeParse(None)

    if number < 60:
        return TimeParse(number)

    ambiguous = len(str(number)) >= 4
    minutes, seconds = divmod(number, 100)
    if seconds >= 60:
        # "75" or "190" cannot be M:SS; fall back to raw seconds under an hour
        if number < 3600:
            return TimeParse(number, ambiguous)
        return TimeParse(None, ambiguous)

    return TimeParse(minutes * 60 + seconds, ambiguous)


def parse_time(value: Union[str, Number, None]) -> Optional[int]:
    """Parse a written time into seconds, or None if it is not a time."""
    return parse_time_detailed(value).seconds


def parse_mmss(text: Any) -> Optional[int]:
    """
    Strict M:SS parser used for start/stop stamps.

    Returns:
        Seconds, or None unless the text is exactly digits:two-digits
    """
    if not isinstance(text, str):
        return None
    match = _MMSS.match(text.strip())
    if not match:
        return None
    minutes, seconds = int(match.group(1)), int(match.group(2))
    if seconds >= 60:
        return None
    return minutes * 60 + seconds


def format_seconds(seconds: Any) -> str:
    """Format seconds as M:SS ("73" -> "1:13")."""
    if not is_number(seconds) or seconds < 0:
        return "0:00"
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"
