"""Command-line interface for recording entries and printing reports.

Provides subcommands: `add`, `archive`, and `report`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv
from pydantic import ValidationError

from affiliate_tracker.aggregate.buckets import buckets_frame
from affiliate_tracker.aggregate.ranges import Preset, RangeConfigurationError, resolve_preset_range
from affiliate_tracker.aggregate.report import Report, build_report
from affiliate_tracker.config import get_settings
from affiliate_tracker.db import ENTRIES_COLLECTION, ensure_indexes, get_client, get_db
from affiliate_tracker.formatters import format_currency, format_percentage
from affiliate_tracker.logging_config import configure_logging
from affiliate_tracker.models import CreateEntry, EntryStatus, UpdateEntry
from affiliate_tracker.store.entries import EntryStore, EntryStoreError

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _entry_store() -> EntryStore:
    """Connect using the environment settings and return the entry store."""
    s = get_settings()
    client = get_client(s.mongo_uri, tls=s.mongo_tls)
    db = get_db(client, s.mongo_db)
    ensure_indexes(db)
    return EntryStore(db[ENTRIES_COLLECTION])


def render_report(report: Report, currency: str = "USD") -> str:
    """Render buckets and totals as plain text."""
    lines = [
        f"Report {report.date_range.start:%Y-%m-%d} to {report.date_range.end:%Y-%m-%d} "
        f"by {report.granularity}",
        "",
    ]

    df = buckets_frame(report.buckets)
    if df.empty:
        lines.append("No entries in range.")
    else:
        table = pd.DataFrame(
            {
                "period": df["key"],
                "spend": df["spend"].map(lambda v: format_currency(v, currency)),
                "earnings": df["earnings"].map(lambda v: format_currency(v, currency)),
                "profit": df["profit"].map(lambda v: format_currency(v, currency)),
                "roi": df["roi"].map(format_percentage),
                "entries": df["count"],
            }
        )
        lines.append(table.to_string(index=False))

    t = report.totals
    lines += [
        "",
        f"Entries:  {t.count}",
        f"Spend:    {format_currency(t.spend, currency)}",
        f"Earnings: {format_currency(t.earnings, currency)}",
        f"Profit:   {format_currency(t.profit, currency)}",
        f"Avg ROI:  {format_percentage(t.avg_roi)}",
    ]
    return "\n".join(lines)


# --------------------------------------------------
# Commands
# --------------------------------------------------
def cmd_add(args: argparse.Namespace) -> None:
    """Validate and insert one entry."""
    data = CreateEntry(
        date=args.date,
        spend=args.spend,
        revenue=args.revenue,
        currency=args.currency or get_settings().default_currency,
        notes=args.notes,
        status=EntryStatus(args.status),
    )
    entry_id = _entry_store().create_entry(args.owner, data)
    print(entry_id)


def cmd_archive(args: argparse.Namespace) -> None:
    """Mark an entry as archived."""
    _entry_store().update_entry(args.entry_id, UpdateEntry(status=EntryStatus.ARCHIVED))
    log.info("Archived entry %s", args.entry_id)


def cmd_report(args: argparse.Namespace) -> None:
    """Fetch an owner's entries and print (or export) the report."""
    date_range = resolve_preset_range(args.preset, start=args.start, end=args.end)
    entries = _entry_store().fetch_records(args.owner, date_range)

    report = build_report(
        entries,
        preset=args.preset,
        granularity=args.group_by,
        include_archived=args.include_archived,
        start=args.start,
        end=args.end,
    )

    if args.csv is not None:
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        buckets_frame(report.buckets).to_csv(args.csv, index=False)
        log.info("Wrote %d buckets to %s", len(report.buckets), args.csv)

    currency = report.entries[0].currency if report.entries else get_settings().default_currency
    print(render_report(report, currency))


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="affiliate-tracker")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_add = sub.add_parser("add", help="record a day of spend and revenue")
    p_add.add_argument("--owner", required=True)
    p_add.add_argument("--date", required=True, help="business day, YYYY-MM-DD")
    p_add.add_argument("--spend", type=float, default=0.0)
    p_add.add_argument("--revenue", type=float, default=None)
    p_add.add_argument("--currency", default=None)
    p_add.add_argument("--notes", default=None)
    p_add.add_argument("--status", choices=[s.value for s in EntryStatus], default="active")

    p_archive = sub.add_parser("archive", help="archive an entry")
    p_archive.add_argument("entry_id")

    p_report = sub.add_parser("report", help="print profit/ROI buckets and totals")
    p_report.add_argument("--owner", required=True)
    p_report.add_argument("--preset", choices=[p.value for p in Preset], default="30d")
    p_report.add_argument("--start", default=None, help="custom range start, YYYY-MM-DD")
    p_report.add_argument("--end", default=None, help="custom range end, YYYY-MM-DD")
    p_report.add_argument("--group-by", choices=["day", "week", "month"], default="day")
    p_report.add_argument("--include-archived", action="store_true")
    p_report.add_argument("--csv", type=Path, default=None)

    return p


COMMANDS = {
    "add": cmd_add,
    "archive": cmd_archive,
    "report": cmd_report,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    configure_logging(Path("logs/affiliate_tracker.log"))

    args = build_parser().parse_args(argv)

    try:
        COMMANDS[args.cmd](args)
    except (RangeConfigurationError, EntryStoreError, ValidationError) as exc:
        log.error("%s failed: %s", args.cmd, exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
