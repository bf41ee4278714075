"""Code Analytics — Date Window Helpers."""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from code_analytics.config import settings
from code_analytics.core.errors import ConfigurationError

DATE_FORMAT = "%Y-%m-%d"


def _today() -> date:
    return datetime.now(timezone.utc).date()


def validate_date(d: Optional[str]) -> Optional[str]:
    """Return the date string if valid YYYY-MM-DD, else None."""
    if not d:
        return None
    try:
        # strptime accepts "2026-1-5"; only the zero-padded form is a storage key
        if datetime.strptime(d, DATE_FORMAT).strftime(DATE_FORMAT) != d:
            return None
        return d
    except ValueError:
        return None


def resolve_dates(
    date_range: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> tuple[str, str]:
    """Resolve dashboard query parameters into (start, end) strings.

    Explicit dates win, then a named preset, then the default lookback
    window ending today.
    """
    today = _today()

    # Sanitize inputs
    start_date = validate_date(start_date)
    end_date = validate_date(end_date)

    if start_date and end_date:
        return start_date, end_date

    if date_range:
        mapping = {
            "yesterday": (today - timedelta(days=1), today - timedelta(days=1)),
            "last_7d": (today - timedelta(days=7), today - timedelta(days=1)),
            "last_14d": (today - timedelta(days=14), today - timedelta(days=1)),
            "last_30d": (today - timedelta(days=30), today - timedelta(days=1)),
            "this_month": (today.replace(day=1), today),
        }
        if date_range in mapping:
            s, e = mapping[date_range]
            return s.strftime(DATE_FORMAT), e.strftime(DATE_FORMAT)

    end = datetime.strptime(end_date, DATE_FORMAT).date() if end_date else today
    start = (
        datetime.strptime(start_date, DATE_FORMAT).date()
        if start_date
        else end - timedelta(days=settings.default_lookback_days)
    )
    return start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT)


def require_date_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[str, str]:
    """Strict validation for operations that fetch: both dates, valid, ordered."""
    if not start_date or not end_date:
        raise ConfigurationError("start_date and end_date are required")
    for name, value in (("start_date", start_date), ("end_date", end_date)):
        if validate_date(value) is None:
            raise ConfigurationError(f"{name} must be a YYYY-MM-DD date, got {value!r}")
    if start_date > end_date:
        raise ConfigurationError("start_date must not be after end_date")
    return start_date, end_date


def date_range(start_date: str, end_date: str) -> List[str]:
    """Every calendar day from start to end inclusive (empty if reversed)."""
    start = datetime.strptime(start_date, DATE_FORMAT).date()
    stop = datetime.strptime(end_date, DATE_FORMAT).date()
    return [
        (start + timedelta(days=i)).strftime(DATE_FORMAT)
        for i in range((stop - start).days + 1)
    ]


def days_in_range(start_date: str, end_date: str) -> int:
    """Inclusive day count, without building the list."""
    start = datetime.strptime(start_date, DATE_FORMAT).date()
    stop = datetime.strptime(end_date, DATE_FORMAT).date()
    return max((stop - start).days + 1, 0)


def yesterday() -> str:
    return (_today() - timedelta(days=1)).strftime(DATE_FORMAT)
