import os
import re
from dataclasses import dataclass, field
from functools import lru_cache

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./rokadi.db"
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}

_SSL_URL_PATTERNS = (
    re.compile(r"sslmode=require", re.IGNORECASE),
    re.compile(r"supabase\.(co|com)", re.IGNORECASE),
    re.compile(r"pooler\.supabase\.com", re.IGNORECASE),
)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in TRUTHY:
        return True
    if raw in FALSY:
        return False
    return default


def should_use_ssl(database_url: str, flag: str | None = None) -> bool:
    """Explicit DATABASE_SSL wins; otherwise infer from well-known hosted URLs."""
    normalized = (flag or "").strip().lower()
    if normalized in TRUTHY:
        return True
    if normalized in FALSY:
        return False
    if not database_url:
        return False
    return any(pattern.search(database_url) for pattern in _SSL_URL_PATTERNS)


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    database_ssl: bool = False
    allow_overdraft: bool = True
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    origins = os.getenv("CORS_ORIGINS")
    return Settings(
        database_url=database_url,
        database_ssl=should_use_ssl(database_url, os.getenv("DATABASE_SSL")),
        allow_overdraft=_env_flag("LEDGER_ALLOW_OVERDRAFT", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) if origins else DEFAULT_CORS_ORIGINS,
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
