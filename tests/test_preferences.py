from __future__ import annotations

import logging
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from affiliate_tracker.preferences import AutoSaveScheduler, PreferencesStore, deep_merge


class FakeTimer:
    """Records the callback instead of running it on a thread."""

    def __init__(self, delay: float, fn: Callable[[], None]) -> None:
        self.delay = delay
        self.fn = fn
        self.started = False
        self.cancelled = False
        self.daemon = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fn()


@pytest.fixture
def timers() -> list[FakeTimer]:
    return []


@pytest.fixture
def saves() -> list[tuple[str, dict[str, Any]]]:
    return []


@pytest.fixture
def scheduler(timers: list[FakeTimer], saves: list) -> AutoSaveScheduler:
    def factory(delay: float, fn: Callable[[], None]) -> FakeTimer:
        t = FakeTimer(delay, fn)
        timers.append(t)
        return t

    return AutoSaveScheduler(
        lambda key, updates: saves.append((key, updates)),
        delay=2.0,
        timer_factory=factory,  # type: ignore[arg-type]
    )


def test_deep_merge_nested() -> None:
    base = {"a": 1, "nested": {"x": 1, "y": 2}}
    merged = deep_merge(base, {"nested": {"y": 3, "z": 4}, "b": 2})
    assert merged == {"a": 1, "b": 2, "nested": {"x": 1, "y": 3, "z": 4}}
    assert base == {"a": 1, "nested": {"x": 1, "y": 2}}


def test_schedule_fires_after_delay(scheduler, timers, saves) -> None:
    scheduler.schedule("u1", {"theme": "dark"})
    assert timers[0].started and timers[0].delay == 2.0
    assert saves == []

    timers[0].fire()
    assert saves == [("u1", {"theme": "dark"})]
    assert scheduler.pending_keys == []


def test_reschedule_supersedes_and_merges(scheduler, timers, saves) -> None:
    scheduler.schedule("u1", {"theme": "dark"})
    scheduler.schedule("u1", {"include_archived": True})

    assert timers[0].cancelled
    timers[0].fire()  # superseded timer that still ran is ignored
    assert saves == []

    timers[1].fire()
    assert saves == [("u1", {"theme": "dark", "include_archived": True})]


def test_keys_are_independent(scheduler, timers, saves) -> None:
    scheduler.schedule("u1", {"theme": "dark"})
    scheduler.schedule("u2", {"theme": "light"})
    assert not timers[0].cancelled
    assert scheduler.pending_keys == ["u1", "u2"]


def test_cancel_and_flush(scheduler, timers, saves) -> None:
    scheduler.schedule("u1", {"theme": "dark"})
    assert scheduler.cancel("u1") is True
    assert scheduler.cancel("u1") is False
    assert timers[0].cancelled

    scheduler.schedule("u2", {"theme": "light"})
    assert scheduler.flush("u2") is True
    assert saves == [("u2", {"theme": "light"})]
    assert scheduler.flush("u2") is False


def test_shutdown_flushes_everything(scheduler, timers, saves) -> None:
    scheduler.schedule("u1", {"theme": "dark"})
    scheduler.schedule("u2", {"theme": "light"})
    scheduler.shutdown()
    assert sorted(k for k, _ in saves) == ["u1", "u2"]
    assert all(t.cancelled for t in timers)
    assert scheduler.pending_keys == []


def test_shutdown_without_flush_drops_pending(scheduler, timers, saves) -> None:
    scheduler.schedule("u1", {"theme": "dark"})
    scheduler.shutdown(flush=False)
    assert saves == []
    assert timers[0].cancelled


def test_failed_autosave_is_logged(timers, caplog: pytest.LogCaptureFixture) -> None:
    def boom(key: str, updates: dict) -> None:
        raise RuntimeError("db down")

    def factory(delay: float, fn: Callable[[], None]) -> FakeTimer:
        t = FakeTimer(delay, fn)
        timers.append(t)
        return t

    s = AutoSaveScheduler(boom, timer_factory=factory)  # type: ignore[arg-type]
    s.schedule("u1", {"theme": "dark"})
    with caplog.at_level(logging.ERROR):
        timers[0].fire()
    assert "Auto-save failed for u1" in caplog.text
    assert s.pending_keys == []


def test_preferences_store_defaults_when_missing() -> None:
    coll = MagicMock()
    coll.find_one.return_value = None
    prefs = PreferencesStore(coll).get("u1")
    assert prefs.default_granularity == "day"


def test_preferences_store_merges_and_upserts() -> None:
    coll = MagicMock()
    coll.find_one.return_value = {"owner_id": "u1", "theme": "dark", "currency": "USD"}

    PreferencesStore(coll).save("u1", {"include_archived": True})

    selector, update = coll.update_one.call_args.args
    assert selector == {"owner_id": "u1"}
    assert update["$set"]["theme"] == "dark"
    assert update["$set"]["include_archived"] is True
    assert "created_at" not in update["$set"]
    assert coll.update_one.call_args.kwargs["upsert"] is True


def test_preferences_store_rejects_invalid_values() -> None:
    coll = MagicMock()
    coll.find_one.return_value = None
    with pytest.raises(ValueError):
        PreferencesStore(coll).save("u1", {"default_granularity": "year"})
    coll.update_one.assert_not_called()


def test_preferences_store_rejects_unknown_preset() -> None:
    coll = MagicMock()
    coll.find_one.return_value = None
    with pytest.raises(ValueError):
        PreferencesStore(coll).save("u1", {"default_preset": "14d"})
    coll.update_one.assert_not_called()


def test_autosave_writes_merged_preferences(timers) -> None:
    coll = MagicMock()
    coll.find_one.return_value = {"owner_id": "u1", "theme": "dark"}

    def factory(delay: float, fn: Callable[[], None]) -> FakeTimer:
        t = FakeTimer(delay, fn)
        timers.append(t)
        return t

    s = AutoSaveScheduler(PreferencesStore(coll).save, delay=0.5, timer_factory=factory)  # type: ignore[arg-type]
    s.schedule("u1", {"default_preset": "mtd"})
    s.schedule("u1", {"default_granularity": "week"})
    assert timers[1].delay == 0.5
    coll.update_one.assert_not_called()

    timers[1].fire()

    coll.update_one.assert_called_once()
    saved = coll.update_one.call_args.args[1]["$set"]
    assert saved["theme"] == "dark"
    assert (saved["default_preset"], saved["default_granularity"]) == ("mtd", "week")
