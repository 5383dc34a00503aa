"""Entry filtering and sorting.

Functions in this module return new lists and never mutate their input.
They accept plain `Entry` values or `DerivedEntry` values; filters that need
ROI (`roi_range`) and sorts on `profit`/`roi_pct` derive on the fly when
given plain entries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Literal, TypeVar

from affiliate_tracker.aggregate.derive import derive_record, effective_revenue
from affiliate_tracker.dates import to_calendar_date
from affiliate_tracker.models import DerivedEntry, Entry, EntryFilters, EntryStatus, ValueRange

E = TypeVar("E", bound=Entry)

SortField = Literal["date", "spend", "earnings", "revenue", "profit", "roi_pct", "created_at"]


def _derived(entry: Entry) -> DerivedEntry:
    return entry if isinstance(entry, DerivedEntry) else derive_record(entry)


def _in_range(value: float | None, bounds: ValueRange | None) -> bool:
    if bounds is None:
        return True
    if value is None:
        return False
    return bounds.min <= value <= bounds.max


def filter_by_date_range(entries: Iterable[E], start: datetime, end: datetime) -> list[E]:
    """Keep entries whose date falls within [start, end], both inclusive."""
    lo = to_calendar_date(start)
    hi = to_calendar_date(end)
    return [e for e in entries if lo <= e.date <= hi]


def filter_by_status(entries: Iterable[E], include_archived: bool) -> list[E]:
    """Keep only active entries unless `include_archived` is set."""
    if include_archived:
        return list(entries)
    return [e for e in entries if e.status is EntryStatus.ACTIVE]


def filter_entries(entries: Iterable[E], filters: EntryFilters) -> list[E]:
    """Apply every filter set on `filters`.

    Earnings and revenue ranges both compare the effective revenue. Entries
    without an ROI (zero spend) never match an ROI range. Note search is a
    case-insensitive substring match.
    """
    out = list(entries)

    if filters.date_range is not None:
        out = filter_by_date_range(out, filters.date_range.start, filters.date_range.end)
    if filters.statuses:
        allowed = set(filters.statuses)
        out = [e for e in out if e.status in allowed]
    if filters.spend_range is not None:
        out = [e for e in out if _in_range(e.spend, filters.spend_range)]
    for bounds in (filters.earnings_range, filters.revenue_range):
        if bounds is not None:
            out = [e for e in out if _in_range(effective_revenue(e), bounds)]
    if filters.roi_range is not None:
        out = [e for e in out if _in_range(_derived(e).roi_pct, filters.roi_range)]
    if filters.search_text:
        needle = filters.search_text.strip().lower()
        out = [e for e in out if needle in (e.notes or "").lower()]

    return out


def sort_entries(
    entries: Iterable[E],
    field: SortField = "date",
    direction: Literal["asc", "desc"] = "desc",
) -> list[E]:
    """Sort entries by one field; entries missing the value go last."""

    def value(e: E) -> object:
        if field in ("earnings", "revenue"):
            return effective_revenue(e)
        if field in ("profit", "roi_pct"):
            return getattr(_derived(e), field)
        return getattr(e, field)

    items = list(entries)
    present = [e for e in items if value(e) is not None]
    missing = [e for e in items if value(e) is None]
    return sorted(present, key=value, reverse=direction == "desc") + missing
