from __future__ import annotations

import pytest

from affiliate_tracker.config import get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("MONGO_URI", "MONGO_DB", "MONGO_TLS", "DEFAULT_CURRENCY", "AUTOSAVE_DELAY"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s.mongo_uri == "mongodb://localhost:27017"
    assert s.mongo_db == "affiliate_tracker"
    assert s.mongo_tls is False
    assert s.default_currency == "USD"
    assert s.autosave_delay == 2.0


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_TLS", "true")
    monkeypatch.setenv("DEFAULT_CURRENCY", "eur")
    monkeypatch.setenv("AUTOSAVE_DELAY", "0.5")
    s = get_settings()
    assert s.mongo_tls is True
    assert s.default_currency == "EUR"
    assert s.autosave_delay == 0.5


@pytest.mark.parametrize("value", ["soon", "-1"])
def test_settings_reject_bad_autosave_delay(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("AUTOSAVE_DELAY", value)
    with pytest.raises(RuntimeError, match="AUTOSAVE_DELAY"):
        get_settings()
