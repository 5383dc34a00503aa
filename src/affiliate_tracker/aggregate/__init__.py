"""Entry aggregation helpers.

This package turns stored entries into the values the dashboard and reports
render: derived profit/ROI per entry, date-range presets, filtered subsets,
time buckets (day/week/month) and summary totals. Everything here is pure
computation over in-memory lists; fetching entries is the caller's job.
"""
