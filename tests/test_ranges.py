from __future__ import annotations

from datetime import date, datetime

import pytest

from affiliate_tracker.aggregate.ranges import (
    Preset,
    RangeConfigurationError,
    parse_preset,
    resolve_preset_range,
)

NOW = datetime(2025, 3, 15, 14, 30, 5)


def test_mtd_covers_whole_days() -> None:
    r = resolve_preset_range("mtd", now=NOW)
    assert r.start == datetime(2025, 3, 1, 0, 0, 0, 0)
    assert r.end == datetime(2025, 3, 15, 23, 59, 59, 999000)


@pytest.mark.parametrize(
    ("preset", "expected_start"),
    [
        ("7d", datetime(2025, 3, 8)),
        ("30d", datetime(2025, 2, 13)),
        ("90d", datetime(2024, 12, 15)),
        ("qtd", datetime(2025, 1, 1)),
        ("ytd", datetime(2025, 1, 1)),
    ],
)
def test_presets(preset: str, expected_start: datetime) -> None:
    r = resolve_preset_range(preset, now=NOW)
    assert r.start == expected_start
    assert r.end == datetime(2025, 3, 15, 23, 59, 59, 999000)


def test_qtd_later_quarters() -> None:
    assert resolve_preset_range("qtd", now=datetime(2025, 8, 20)).start == datetime(2025, 7, 1)
    assert resolve_preset_range("qtd", now=datetime(2025, 12, 31)).start == datetime(2025, 10, 1)


def test_preset_names_are_case_insensitive() -> None:
    assert parse_preset("MTD") is Preset.MONTH_TO_DATE
    assert resolve_preset_range("YTD", now=NOW).start == datetime(2025, 1, 1)


def test_custom_range_normalized() -> None:
    r = resolve_preset_range("custom", now=NOW, start="2025-02-03T10:00:00", end=date(2025, 2, 9))
    assert r.start == datetime(2025, 2, 3)
    assert r.end == datetime(2025, 2, 9, 23, 59, 59, 999000)


@pytest.mark.parametrize(
    ("start", "end", "missing"),
    [(None, None, "start and end"), (date(2025, 1, 1), None, "end"), (None, date(2025, 1, 1), "start")],
)
def test_custom_range_requires_bounds(start, end, missing: str) -> None:
    with pytest.raises(RangeConfigurationError, match=f"missing {missing}"):
        resolve_preset_range("custom", now=NOW, start=start, end=end)


def test_custom_range_rejects_inverted_bounds() -> None:
    with pytest.raises(RangeConfigurationError, match="after end"):
        resolve_preset_range("custom", start=date(2025, 3, 2), end=date(2025, 3, 1))


def test_unknown_preset() -> None:
    with pytest.raises(RangeConfigurationError, match="Unknown date range preset"):
        resolve_preset_range("14d", now=NOW)


def test_configuration_error_is_value_error() -> None:
    assert issubclass(RangeConfigurationError, ValueError)
