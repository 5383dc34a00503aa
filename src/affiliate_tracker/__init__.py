"""affiliate_tracker package.

Contains the entry store for daily ad spend and revenue records, the
derivation and time-bucketing pipeline used by the dashboard and reports,
user preference persistence with debounced auto-save, and a small CLI.

Architecture:
- Entries are stored as documents in MongoDB
- Entry → DerivedEntry → Buckets / SummaryTotals, computed on read
- Pydantic models validate the storage boundary
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
