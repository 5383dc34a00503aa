"""Per-entry profit and ROI derivation."""

from __future__ import annotations

from typing import Iterable

from affiliate_tracker.models import DerivedEntry, Entry


def effective_revenue(entry: Entry) -> float:
    """Return `revenue`, falling back to legacy `earnings`, then zero."""
    if entry.revenue is not None:
        return entry.revenue
    if entry.earnings is not None:
        return entry.earnings
    return 0.0


def derive_record(entry: Entry) -> DerivedEntry:
    """Attach `profit` and `roi_pct` to an entry.

    A persisted `profit` is returned as-is, even when it disagrees with
    `revenue - spend`. `roi_pct` is None when spend is zero.

    Args:
        entry: Stored entry.

    Returns:
        A new `DerivedEntry`; the input is not modified.
    """
    profit = entry.profit
    if profit is None:
        profit = effective_revenue(entry) - entry.spend
    roi_pct = (profit / entry.spend) * 100 if entry.spend > 0 else None

    data = entry.model_dump()
    data.update(profit=profit, roi_pct=roi_pct)
    return DerivedEntry.model_validate(data)


def derive_records(entries: Iterable[Entry]) -> list[DerivedEntry]:
    """Derive every entry in order."""
    return [derive_record(e) for e in entries]
