import pytest

from rokadi.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.delenv("LEDGER_ALLOW_OVERDRAFT", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
