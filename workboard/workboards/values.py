"""Value coercion shared by filters, formulas and sorting."""

from __future__ import annotations

from datetime import date, datetime, timezone


def parse_datetime(value) -> datetime | None:
    """Coerce ISO strings, dates and epoch milliseconds to an aware UTC datetime.

    Returns None for missing values; raises ValueError for unparseable ones.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_millis(value) -> float | None:
    """Epoch milliseconds for a timestamp-ish value, None when missing or unparseable."""
    try:
        dt = parse_datetime(value)
    except ValueError:
        return None
    if dt is None:
        return None
    return dt.timestamp() * 1000


def to_number(value) -> float | None:
    """Numeric coercion: None for missing or non-numeric values."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_bool(value) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    return None


def days_between(earlier: datetime, now: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``now``, floored at 0."""
    return max(0, (now - earlier).days)
