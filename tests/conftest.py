from __future__ import annotations

from datetime import datetime
from itertools import count
from typing import Any, Callable

import pytest

from affiliate_tracker.models import Entry

_ids = count(1)


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    """Build a validated `Entry`; keyword arguments override the defaults."""

    def _make(**overrides: Any) -> Entry:
        data: dict[str, Any] = {
            "id": f"e{next(_ids)}",
            "owner_id": "u1",
            "date": datetime(2025, 3, 1),
            "spend": 0.0,
            "status": "active",
            "currency": "USD",
        }
        data.update(overrides)
        return Entry.model_validate(data)

    return _make
