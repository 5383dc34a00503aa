"""Entry persistence on a MongoDB collection.

Module notes:
- Documents use snake_case field names matching `Entry`; `_id` is exposed
  as the string `id`.
- Dates are stored as BSON datetimes (millisecond precision).
- Database errors are logged and re-raised as `EntryStoreError`.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from affiliate_tracker.dates import end_of_day, start_of_day
from affiliate_tracker.models import (
    CreateEntry,
    DateRange,
    Entry,
    EntryPage,
    UpdateEntry,
)

log = logging.getLogger(__name__)

_SORT = [("date", DESCENDING), ("_id", DESCENDING)]


class EntryStoreError(RuntimeError):
    """Raised when an entry cannot be read or written."""


@contextmanager
def _db_errors(action: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        log.error("Error trying to %s: %s", action, exc)
        raise EntryStoreError(f"Failed to {action}") from exc


def _object_id(entry_id: str) -> ObjectId:
    try:
        return ObjectId(entry_id)
    except (InvalidId, TypeError) as exc:
        raise EntryStoreError(f"Invalid entry id {entry_id!r}") from exc


def _to_entry(doc: dict[str, Any]) -> Entry:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return Entry.model_validate(data)


def _to_doc(data: dict[str, Any]) -> dict[str, Any]:
    """Convert enum values to their stored strings."""
    if "status" in data:
        data["status"] = getattr(data["status"], "value", data["status"])
    return data


class EntryStore:
    """Read and write entries in a single collection."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        self._collection = collection

    def fetch_records(self, owner_id: str, date_range: DateRange | None = None) -> list[Entry]:
        """Return an owner's entries, newest first.

        Args:
            owner_id: Owner to fetch for.
            date_range: Optional inclusive bounds, widened to whole days.

        Returns:
            Validated `Entry` values.
        """
        query: dict[str, Any] = {"owner_id": owner_id}
        if date_range is not None:
            query["date"] = {
                "$gte": start_of_day(date_range.start),
                "$lte": end_of_day(date_range.end),
            }

        with _db_errors("get entries"):
            docs = list(self._collection.find(query).sort(_SORT))

        log.debug("Fetched %d entries for owner=%s", len(docs), owner_id)
        return [_to_entry(d) for d in docs]

    def create_entry(self, owner_id: str, data: CreateEntry) -> str:
        """Insert a new entry and return its id.

        Profit is persisted as `revenue - spend` when both are non-zero and
        no explicit profit was given.
        """
        doc = _to_doc(data.model_dump(exclude_none=True))
        if data.profit is None and data.revenue and data.spend:
            doc["profit"] = data.revenue - data.spend

        now = datetime.now(timezone.utc)
        doc.update(owner_id=owner_id, created_at=now, updated_at=now)

        with _db_errors("create entry"):
            result = self._collection.insert_one(doc)

        entry_id = str(result.inserted_id)
        log.info("Created entry %s for owner=%s", entry_id, owner_id)
        return entry_id

    def get_entry(self, entry_id: str) -> Entry | None:
        """Return one entry, or None if it does not exist."""
        oid = _object_id(entry_id)
        with _db_errors("get entry"):
            doc = self._collection.find_one({"_id": oid})
        return _to_entry(doc) if doc is not None else None

    def update_entry(self, entry_id: str, data: UpdateEntry) -> None:
        """Apply the fields set on `data`.

        When revenue changes without an explicit profit, the persisted profit
        is recomputed against the new spend, or the stored spend if spend is
        not part of the update.

        Raises:
            EntryStoreError: if the entry does not exist or the write fails.
        """
        oid = _object_id(entry_id)
        changes = _to_doc(data.model_dump(exclude_unset=True, exclude_none=True))

        if "revenue" in changes and "profit" not in changes:
            spend = changes.get("spend")
            if spend is None:
                existing = self.get_entry(entry_id)
                spend = existing.spend if existing is not None else 0.0
            changes["profit"] = changes["revenue"] - spend

        changes["updated_at"] = datetime.now(timezone.utc)

        with _db_errors("update entry"):
            result = self._collection.update_one({"_id": oid}, {"$set": changes})
        if result.matched_count == 0:
            raise EntryStoreError(f"Entry {entry_id} not found")

        log.info("Updated entry %s (%s)", entry_id, ", ".join(sorted(changes)))

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry; deleting a missing entry is not an error."""
        oid = _object_id(entry_id)
        with _db_errors("delete entry"):
            self._collection.delete_one({"_id": oid})
        log.info("Deleted entry %s", entry_id)

    def list_entries(
        self,
        owner_id: str,
        limit: int = 50,
        after: str | None = None,
    ) -> EntryPage:
        """Return one page of entries, newest first.

        Args:
            owner_id: Owner to list for.
            limit: Page size.
            after: `next_cursor` of the previous page.
        """
        query: dict[str, Any] = {"owner_id": owner_id}

        if after is not None:
            oid = _object_id(after)
            with _db_errors("get entries"):
                anchor = self._collection.find_one({"_id": oid}, {"date": 1})
            if anchor is None:
                raise EntryStoreError(f"Unknown page cursor {after!r}")
            query["$or"] = [
                {"date": {"$lt": anchor["date"]}},
                {"date": anchor["date"], "_id": {"$lt": oid}},
            ]

        with _db_errors("get entries"):
            docs = list(self._collection.find(query).sort(_SORT).limit(limit))

        entries = [_to_entry(d) for d in docs]
        has_more = len(entries) == limit
        return EntryPage(
            entries=entries,
            has_more=has_more,
            next_cursor=entries[-1].id if entries and has_more else None,
        )
