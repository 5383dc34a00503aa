"""Date-range presets used by the dashboard and report screens.

Every resolved range covers whole calendar days: `start` is moved to
00:00:00.000 and `end` to 23:59:59.999, so entries stored with any
time-of-day still fall inside their day.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from affiliate_tracker.dates import end_of_day, start_of_day, to_calendar_date
from affiliate_tracker.models import DateRange, Preset


class RangeConfigurationError(ValueError):
    """Raised when a date range cannot be resolved from the given inputs."""


_ROLLING_DAYS = {
    Preset.LAST_7_DAYS: 7,
    Preset.LAST_30_DAYS: 30,
    Preset.LAST_90_DAYS: 90,
}


def parse_preset(value: str | Preset) -> Preset:
    """Return the `Preset` for a name such as "30d" or "MTD"."""
    if isinstance(value, Preset):
        return value
    try:
        return Preset(value.strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in Preset)
        raise RangeConfigurationError(
            f"Unknown date range preset {value!r} (expected one of: {choices})"
        ) from None


def quarter_start(day: datetime) -> datetime:
    """First day of the calendar quarter containing `day`."""
    month = (day.month - 1) // 3 * 3 + 1
    return day.replace(month=month, day=1)


def resolve_preset_range(
    preset: str | Preset,
    now: datetime | None = None,
    start: object | None = None,
    end: object | None = None,
) -> DateRange:
    """Resolve a preset into an inclusive whole-day `DateRange`.

    Args:
        preset: One of 7d, 30d, 90d, mtd, qtd, ytd, custom (case-insensitive).
        now: Reference time; defaults to the current local time.
        start: Start bound, required for `custom` and ignored otherwise.
        end: End bound, required for `custom` and ignored otherwise.

    Raises:
        RangeConfigurationError: for an unknown preset, a `custom` range with
            a missing bound, or a `custom` range whose start is after its end.
    """
    kind = parse_preset(preset)
    now = to_calendar_date(now) if now is not None else datetime.now()

    if kind is Preset.CUSTOM:
        missing = [name for name, v in (("start", start), ("end", end)) if v is None]
        if missing:
            raise RangeConfigurationError(
                f"Custom date range requires both start and end; missing {' and '.join(missing)}"
            )
        range_start = to_calendar_date(start)
        range_end = to_calendar_date(end)
        if range_start.date() > range_end.date():
            raise RangeConfigurationError(
                f"Custom date range start {range_start:%Y-%m-%d} is after end {range_end:%Y-%m-%d}"
            )
    elif kind in _ROLLING_DAYS:
        range_start = now - timedelta(days=_ROLLING_DAYS[kind])
        range_end = now
    elif kind is Preset.MONTH_TO_DATE:
        range_start = now.replace(day=1)
        range_end = now
    elif kind is Preset.QUARTER_TO_DATE:
        range_start = quarter_start(now)
        range_end = now
    else:
        range_start = now.replace(month=1, day=1)
        range_end = now

    return DateRange(start=start_of_day(range_start), end=end_of_day(range_end))
