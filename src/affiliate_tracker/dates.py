"""Calendar-date normalization.

Stored entry dates arrive in several shapes: native datetimes from pymongo,
plain dates, ISO strings from JSON/CSV input, epoch milliseconds, or
timestamp wrappers from other document stores. `to_calendar_date` is the one
place those are turned into a naive `datetime`; everything downstream
compares only naive datetimes.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any

EPOCH = datetime(1970, 1, 1)

# Wrapper types (pandas.Timestamp, protobuf Timestamp, ...) expose one of these
_CONVERTERS = ("to_pydatetime", "ToDatetime", "to_datetime")


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_calendar_date(value: Any) -> datetime:
    """Normalize a stored date value to a naive `datetime`.

    Timezone-aware values are converted to UTC first. Numbers are read as
    epoch milliseconds.

    Raises:
        ValueError: if the value cannot be interpreted as a date.
    """
    for attr in _CONVERTERS:
        converter = getattr(value, attr, None)
        if callable(converter):
            converted = converter()
            if isinstance(converted, datetime):
                return _naive(converted)

    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, bool):
        raise ValueError(f"Cannot interpret {value!r} as a date")
    if isinstance(value, (int, float)):
        return EPOCH + timedelta(milliseconds=value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _naive(datetime.fromisoformat(text))
        except ValueError as exc:
            raise ValueError(f"Cannot parse date string {value!r}") from exc

    raise ValueError(f"Cannot interpret {type(value).__name__} value as a date")


def start_of_day(value: datetime) -> datetime:
    """Return 00:00:00.000 of the given day."""
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    """Return 23:59:59.999 of the given day (millisecond precision, as BSON stores it)."""
    return datetime.combine(value.date(), time(23, 59, 59, 999000))


def epoch_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch, reading naive datetimes as UTC."""
    return int((_naive(value) - EPOCH) / timedelta(milliseconds=1))
