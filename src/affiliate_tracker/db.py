"""MongoDB helpers.

Centralizes creation of Mongo clients and collection handles used by the
entry and preference stores.
"""

from __future__ import annotations

from typing import Any

import certifi
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

ENTRIES_COLLECTION = "entries"
PREFERENCES_COLLECTION = "user_preferences"


def get_client(uri: str, tls: bool = False) -> MongoClient[dict[str, Any]]:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Connect with TLS, verifying against the certifi CA bundle.

    Returns:
        Configured MongoClient instance.
    """
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient.

    Args:
        client: PyMongo MongoClient.
        db_name: Database name.

    Returns:
        A Database object.
    """
    return client[db_name]


def ensure_indexes(db: Database[dict[str, Any]]) -> None:
    """Create the indexes the stores query on (idempotent)."""
    entries: Collection[dict[str, Any]] = db[ENTRIES_COLLECTION]
    entries.create_index([("owner_id", ASCENDING), ("date", DESCENDING)])
    db[PREFERENCES_COLLECTION].create_index("owner_id", unique=True)
