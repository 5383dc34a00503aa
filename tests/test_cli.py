from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from affiliate_tracker import cli
from affiliate_tracker.aggregate.report import build_report
from affiliate_tracker.formatters import format_currency, format_percentage


def test_parser_report_defaults() -> None:
    args = cli.build_parser().parse_args(["report", "--owner", "u1"])
    assert (args.preset, args.group_by, args.include_archived, args.csv) == ("30d", "day", False, None)


def test_parser_rejects_unknown_preset() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["report", "--owner", "u1", "--preset", "14d"])


def test_render_report(make_entry) -> None:
    report = build_report(
        [make_entry(date=datetime(2025, 3, 1), spend=100, revenue=150)],
        preset="mtd",
        now=datetime(2025, 3, 15),
    )
    text = cli.render_report(report)
    assert "Report 2025-03-01 to 2025-03-15 by day" in text
    assert "Mar 1, 2025" in text
    assert "Profit:   $50" in text
    assert "Avg ROI:  50.0%" in text


def test_render_empty_report() -> None:
    report = build_report([], preset="7d", now=datetime(2025, 3, 15))
    text = cli.render_report(report)
    assert "No entries in range." in text
    assert "Avg ROI:  n/a" in text


def test_report_command_writes_csv(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, make_entry, capsys) -> None:
    store = MagicMock()
    store.fetch_records.return_value = [
        make_entry(date=datetime(2025, 3, 1), spend=10, revenue=15),
    ]
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "_entry_store", lambda: store)

    out = tmp_path / "out" / "buckets.csv"
    cli.main([
        "report", "--owner", "u1", "--preset", "custom",
        "--start", "2025-03-01", "--end", "2025-03-31", "--csv", str(out),
    ])

    assert store.fetch_records.call_args.args[0] == "u1"
    assert out.read_text().splitlines()[0] == "key,sort_key,spend,earnings,profit,roi,count"
    assert "Mar 1, 2025" in capsys.readouterr().out


def test_custom_report_without_bounds_exits(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "_entry_store", MagicMock)
    with pytest.raises(SystemExit) as exc:
        cli.main(["report", "--owner", "u1", "--preset", "custom"])
    assert exc.value.code == 2


def test_formatters() -> None:
    assert format_currency(1234.5) == "$1,234.5"
    assert format_currency(-20, "USD") == "-$20"
    assert format_currency(3, "CHF") == "CHF 3"
    assert format_percentage(12.345) == "12.3%"
    assert format_percentage(None) == "n/a"
