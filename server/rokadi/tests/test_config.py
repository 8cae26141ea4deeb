import pytest

from rokadi.config import DEFAULT_CORS_ORIGINS, DEFAULT_DATABASE_URL, load_settings, should_use_ssl


@pytest.mark.parametrize(
    "url,flag,expected",
    [
        ("postgresql://u:p@db.abc.supabase.co:5432/postgres", None, True),
        ("postgresql://u:p@localhost/ledger?sslmode=require", None, True),
        ("postgresql://u:p@localhost/ledger", None, False),
        ("postgresql://u:p@db.abc.supabase.co:5432/postgres", "false", False),
        ("sqlite+pysqlite:///./rokadi.db", "yes", True),
        ("", None, False),
    ],
)
def test_should_use_ssl(url, flag, expected):
    assert should_use_ssl(url, flag) is expected


def test_load_settings_defaults(monkeypatch):
    for name in ("DATABASE_URL", "DATABASE_SSL", "CORS_ORIGINS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.database_ssl is False
    assert settings.allow_overdraft is True
    assert settings.log_level == "INFO"
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@pooler.supabase.com:6543/postgres")
    monkeypatch.setenv("LEDGER_ALLOW_OVERDRAFT", "off")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CORS_ORIGINS", "https://rokadi.example, ,http://localhost:3000")

    settings = load_settings()

    assert settings.database_ssl is True
    assert settings.allow_overdraft is False
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins == ("https://rokadi.example", "http://localhost:3000")


def test_unknown_overdraft_flag_keeps_default(monkeypatch):
    monkeypatch.setenv("LEDGER_ALLOW_OVERDRAFT", "maybe")
    assert load_settings().allow_overdraft is True
