"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads environment variables (including a check that `AUTOSAVE_DELAY` is a
usable number of seconds).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Container for application configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI.
        mongo_db: Target MongoDB database name.
        mongo_tls: Whether to connect with TLS using the certifi CA bundle.
        default_currency: Currency code applied to new entries.
        autosave_delay: Debounce delay (seconds) for preference auto-save.
    """
    mongo_uri: str
    mongo_db: str
    mongo_tls: bool
    default_currency: str
    autosave_delay: float


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `AUTOSAVE_DELAY` is not a non-negative number or
            `DEFAULT_CURRENCY` is not a 3-letter code.
    """
    mongo_uri = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db = os.getenv("MONGO_DB", "affiliate_tracker")
    mongo_tls = os.getenv("MONGO_TLS", "false").strip().lower() in _TRUTHY
    default_currency = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper()
    raw_delay = os.getenv("AUTOSAVE_DELAY", "2.0").strip()

    try:
        autosave_delay = float(raw_delay)
    except ValueError:
        autosave_delay = -1.0
    if autosave_delay < 0:
        raise RuntimeError(
            f"AUTOSAVE_DELAY must be a non-negative number of seconds, got {raw_delay!r}."
        )

    if len(default_currency) != 3 or not default_currency.isalpha():
        raise RuntimeError(
            "DEFAULT_CURRENCY must be a 3-letter ISO code (example: 'USD')."
        )

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        mongo_tls=mongo_tls,
        default_currency=default_currency,
        autosave_delay=autosave_delay,
    )
