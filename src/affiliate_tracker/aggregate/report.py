"""Compose the dashboard/report view from a list of fetched entries."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from pydantic import BaseModel

from affiliate_tracker.aggregate.buckets import (
    ad_network_spend,
    bucket_by,
    cpa_network_revenue,
    summarize,
)
from affiliate_tracker.aggregate.derive import derive_records
from affiliate_tracker.aggregate.filters import filter_by_date_range, filter_by_status, sort_entries
from affiliate_tracker.aggregate.ranges import Preset, resolve_preset_range
from affiliate_tracker.models import (
    Bucket,
    DateRange,
    DerivedEntry,
    Entry,
    Granularity,
    NetworkTotal,
    SummaryTotals,
)

log = logging.getLogger(__name__)


class Report(BaseModel):
    """Everything the report screen renders for one request."""
    date_range: DateRange
    granularity: Granularity
    entries: list[DerivedEntry]
    buckets: list[Bucket]
    totals: SummaryTotals
    ad_networks: list[NetworkTotal]
    cpa_networks: list[NetworkTotal]


def build_report(
    entries: Iterable[Entry],
    *,
    preset: str | Preset = Preset.LAST_30_DAYS,
    granularity: Granularity = "day",
    include_archived: bool = False,
    now: datetime | None = None,
    start: object | None = None,
    end: object | None = None,
) -> Report:
    """Resolve the range, filter, derive, then bucket and summarize.

    Args:
        entries: Entries fetched from the store (any order).
        preset: Date range preset; `custom` needs `start` and `end`.
        granularity: Bucket size for the chart.
        include_archived: Keep archived entries when True.
        now: Reference time for presets (defaults to now).

    Raises:
        RangeConfigurationError: if the range cannot be resolved.
    """
    date_range = resolve_preset_range(preset, now=now, start=start, end=end)

    selected = filter_by_date_range(entries, date_range.start, date_range.end)
    selected = filter_by_status(selected, include_archived)
    derived = derive_records(selected)

    log.debug(
        "Report %s..%s: %d entries, granularity=%s",
        date_range.start.date(),
        date_range.end.date(),
        len(derived),
        granularity,
    )

    return Report(
        date_range=date_range,
        granularity=granularity,
        entries=sort_entries(derived, "date", "desc"),
        buckets=bucket_by(derived, granularity),
        totals=summarize(derived),
        ad_networks=ad_network_spend(derived),
        cpa_networks=cpa_network_revenue(derived),
    )
