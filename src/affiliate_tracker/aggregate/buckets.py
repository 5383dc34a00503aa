"""Time buckets, summary totals and network breakdowns.

Expectations:
- Input: entries (plain or derived) already filtered to the range and
  statuses the caller wants.
- Outputs: `Bucket` lists sorted chronologically, `SummaryTotals`, and
  `NetworkTotal` lists, all plain pydantic models.

Bucket labels follow the dashboard's display format:

- day:   "Mar 1, 2025"
- week:  "Mar 3 - Mar 9, 2025" (a 7-day window starting at the entry's own date)
- month: "Mar 2025"
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

import pandas as pd

from affiliate_tracker.aggregate.derive import derive_record, effective_revenue
from affiliate_tracker.dates import epoch_millis, start_of_day
from affiliate_tracker.models import (
    Bucket,
    DerivedEntry,
    Entry,
    Granularity,
    NetworkTotal,
    SummaryTotals,
)

# Locale-independent month abbreviations
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

BUCKET_COLUMNS = ["key", "sort_key", "spend", "earnings", "profit", "roi", "count"]


def _month_day(d: datetime) -> str:
    return f"{_MONTHS[d.month - 1]} {d.day}"


def period_of(value: datetime, granularity: Granularity) -> tuple[str, datetime]:
    """Return the `(label, period_start)` pair for one entry date.

    Weekly windows are anchored at the entry's own date rather than a
    calendar week, so entries a few days apart land in different buckets.
    """
    day = start_of_day(value)
    if granularity == "day":
        return f"{_month_day(day)}, {day.year}", day
    if granularity == "week":
        end = day + timedelta(days=6)
        return f"{_month_day(day)} - {_month_day(end)}, {end.year}", day
    if granularity == "month":
        return f"{_MONTHS[day.month - 1]} {day.year}", day.replace(day=1)
    raise ValueError(f"Unknown granularity {granularity!r} (expected day, week or month)")


def bucket_by(entries: Iterable[Entry], granularity: Granularity = "day") -> list[Bucket]:
    """Group entries into time buckets.

    Args:
        entries: Entries to aggregate.
        granularity: `day`, `week` or `month`.

    Returns:
        One `Bucket` per period label, sorted ascending by period start.
        Bucket ROI is 0 when the bucket has no spend.
    """
    rows = []
    for e in entries:
        key, start = period_of(e.date, granularity)
        rows.append(
            {
                "key": key,
                "sort_key": epoch_millis(start),
                "spend": float(e.spend),
                "earnings": float(effective_revenue(e)),
            }
        )
    if not rows:
        return []

    df = pd.DataFrame(rows)
    grouped = (
        df.groupby("key", sort=False)
        .agg(
            spend=("spend", "sum"),
            earnings=("earnings", "sum"),
            count=("spend", "size"),
            sort_key=("sort_key", "min"),
        )
        .reset_index()
    )
    grouped["profit"] = grouped["earnings"] - grouped["spend"]
    spend_nonzero = grouped["spend"].where(grouped["spend"] > 0)
    grouped["roi"] = (grouped["profit"] / spend_nonzero * 100.0).fillna(0.0)
    grouped = grouped.sort_values("sort_key", kind="stable")

    return [
        Bucket(
            key=str(r["key"]),
            sort_key=int(r["sort_key"]),
            spend=float(r["spend"]),
            earnings=float(r["earnings"]),
            profit=float(r["profit"]),
            roi=float(r["roi"]),
            count=int(r["count"]),
        )
        for r in grouped.to_dict("records")
    ]


def summarize(entries: Iterable[Entry]) -> SummaryTotals:
    """Return count, spend, earnings, profit and average ROI.

    `avg_roi` averages per-entry ROI over entries with spend > 0 only; it is
    None when no entry has spend.
    """
    derived = [e if isinstance(e, DerivedEntry) else derive_record(e) for e in entries]
    spend = sum(e.spend for e in derived)
    earnings = sum(effective_revenue(e) for e in derived)

    rois = [e.roi_pct for e in derived if e.spend > 0 and e.roi_pct is not None]
    avg_roi = sum(rois) / len(rois) if rois else None

    return SummaryTotals(
        count=len(derived),
        spend=float(spend),
        earnings=float(earnings),
        profit=float(earnings - spend),
        avg_roi=avg_roi,
    )


def ad_network_spend(entries: Iterable[Entry]) -> list[NetworkTotal]:
    """Sum per-account ad spend by ad network.

    `count` is the number of entries that carry spend lines for the network.
    """
    totals: dict[str, list[float]] = {}
    for e in entries:
        for network, lines in e.ad_spend_details.items():
            if not lines:
                continue
            acc = totals.setdefault(network, [0.0, 0])
            acc[0] += sum(line.spend for line in lines)
            acc[1] += 1
    return [
        NetworkTotal(network=n, amount=amount, count=int(count))
        for n, (amount, count) in sorted(totals.items())
    ]


def cpa_network_revenue(entries: Iterable[Entry]) -> list[NetworkTotal]:
    """Sum revenue by CPA network."""
    totals: dict[str, list[float]] = {}
    for e in entries:
        for network, amount in e.revenue_sources.items():
            acc = totals.setdefault(network, [0.0, 0])
            acc[0] += amount
            acc[1] += 1
    return [
        NetworkTotal(network=n, amount=amount, count=int(count))
        for n, (amount, count) in sorted(totals.items())
    ]


def buckets_frame(buckets: Iterable[Bucket]) -> pd.DataFrame:
    """Return buckets as a DataFrame ready for charting, in bucket order."""
    records = [b.model_dump() for b in buckets]
    if not records:
        return pd.DataFrame(columns=BUCKET_COLUMNS)
    return pd.DataFrame(records, columns=BUCKET_COLUMNS)
