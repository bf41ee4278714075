"""Code Analytics — Safe Accessors.

Null-tolerant field extraction and unit helpers shared by every parser
and engine. Provider payloads are inconsistent: fields go missing, come
back as null, or arrive as numeric strings. Nothing here raises on shape.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional, Union

Number = Union[int, float]

UNKNOWN = "unknown"


def safe_number(value: Any, default: Number = 0) -> Number:
    """Return ``value`` if it is a finite number, else ``default``.

    Numeric strings are accepted. Booleans are not numbers here.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return default
        if not math.isfinite(parsed):
            return default
        return int(parsed) if parsed.is_integer() and "." not in value else parsed
    return default


def dig(data: Any, *path: Union[str, int], default: Number = 0) -> Number:
    """Walk ``path`` through nested dicts/lists and return a number.

    Any missing or null level yields ``default``.
    """
    current = data
    for key in path:
        if current is None:
            return default
        if isinstance(key, int):
            if not isinstance(current, (list, tuple)) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        else:
            if not isinstance(current, dict):
                return default
            current = current.get(key)
    return safe_number(current, default)


def dig_mapping(data: Any, *path: str) -> dict:
    """Like :func:`dig` but returns a nested dict (empty when absent)."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return {}
        current = current.get(key)
    return current if isinstance(current, dict) else {}


def first_present(*values: Any, default: str = UNKNOWN) -> str:
    """First non-empty string among ``values``."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def safe_ratio(numerator: Number, denominator: Number, scale: float = 1.0) -> float:
    """``numerator / denominator * scale``; exactly 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    result = numerator / denominator * scale
    return result if math.isfinite(result) else 0.0


def safe_percent(numerator: Number, denominator: Number) -> float:
    return safe_ratio(numerator, denominator, 100.0)


def capped_percent(numerator: Number, denominator: Number) -> float:
    """Percentage clamped to 100, for shares of a whole."""
    return min(safe_percent(numerator, denominator), 100.0)


def cents_to_dollars(cents: Number) -> float:
    return safe_number(cents) / 100


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.isdigit():
            return parse_timestamp(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def date_key(value: Any, default: str = UNKNOWN) -> str:
    """Truncate a timestamp to its ``YYYY-MM-DD`` day.

    ISO strings keep their own calendar day (the offset is not applied);
    epoch milliseconds are read in UTC.
    """
    if isinstance(value, str) and len(value) >= 10 and value[4:5] == "-" and value[7:8] == "-":
        day = value[:10]
        try:
            datetime.strptime(day, "%Y-%m-%d")
            return day
        except ValueError:
            return default
    parsed = parse_timestamp(value)
    if parsed is None:
        return default
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%d")
