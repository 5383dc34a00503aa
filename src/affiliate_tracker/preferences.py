"""User preferences with debounced auto-save.

`PreferencesStore` persists one document per owner, deep-merging partial
updates into what is stored. `AutoSaveScheduler` keeps an explicit map from
owner key to a pending delayed save: scheduling again for the same key
cancels the pending timer and folds the new updates into it, and
`shutdown()` tears every pending timer down.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from pymongo.collection import Collection

from affiliate_tracker.models import UserPreferences

log = logging.getLogger(__name__)

SaveFn = Callable[[str, dict[str, Any]], None]
TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


def deep_merge(base: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge `updates` into a copy of `base`.

    Nested mappings are merged key by key; any other value in `updates`
    replaces the one in `base`.
    """
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class PreferencesStore:
    """One preferences document per owner."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        self._collection = collection

    def get(self, owner_id: str) -> UserPreferences:
        """Return stored preferences, or defaults when none are saved."""
        doc = self._collection.find_one({"owner_id": owner_id}, {"_id": 0})
        return UserPreferences.model_validate(doc or {})

    def save(self, owner_id: str, updates: Mapping[str, Any]) -> None:
        """Deep-merge `updates` into the stored document and write it back."""
        current = self._collection.find_one({"owner_id": owner_id}, {"_id": 0})
        merged = deep_merge(current or {}, updates)

        # Validate the merged result before it is written
        UserPreferences.model_validate(merged)

        now = datetime.now(timezone.utc)
        merged.update(owner_id=owner_id, updated_at=now)
        if current is None:
            merged["created_at"] = now

        self._collection.update_one(
            {"owner_id": owner_id},
            {"$set": merged},
            upsert=True,
        )
        log.info("Saved preferences for owner=%s", owner_id)


class AutoSaveScheduler:
    """Debounce saves per key.

    Args:
        save: Called as `save(key, updates)` once the delay elapses.
        delay: Debounce delay in seconds.
        timer_factory: Builds the delayed task; defaults to `threading.Timer`.
    """

    def __init__(
        self,
        save: SaveFn,
        delay: float = 2.0,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self._save = save
        self._delay = delay
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}
        self._pending: dict[str, dict[str, Any]] = {}

    @property
    def pending_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    def schedule(self, key: str, updates: Mapping[str, Any]) -> None:
        """Schedule a save for `key`, superseding any pending one."""
        with self._lock:
            previous = self._timers.pop(key, None)
            if previous is not None:
                previous.cancel()
            self._pending[key] = deep_merge(self._pending.get(key, {}), updates)

            timer = self._timer_factory(self._delay, lambda: self._fire(key, timer))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()

    def cancel(self, key: str) -> bool:
        """Drop the pending save for `key`; returns True if one was pending."""
        with self._lock:
            timer = self._timers.pop(key, None)
            self._pending.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self, key: str) -> bool:
        """Run the pending save for `key` now; returns True if one ran."""
        with self._lock:
            timer = self._timers.pop(key, None)
            updates = self._pending.pop(key, None)
        if timer is not None:
            timer.cancel()
        if updates is None:
            return False
        self._save(key, updates)
        return True

    def shutdown(self, flush: bool = True) -> None:
        """Cancel every pending timer, saving pending updates first if `flush`."""
        for key in self.pending_keys:
            if flush:
                try:
                    self.flush(key)
                except Exception:
                    log.exception("Auto-save flush failed for %s", key)
            else:
                self.cancel(key)

    def _fire(self, key: str, timer: threading.Timer) -> None:
        with self._lock:
            # Ignore a timer that was superseded after it started running
            if self._timers.get(key) is not timer:
                return
            del self._timers[key]
            updates = self._pending.pop(key, {})
        try:
            self._save(key, updates)
        except Exception:
            log.exception("Auto-save failed for %s", key)
