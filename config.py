# config.py
# Values come from the environment (a local .env is loaded first).
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

LOG = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Paging defaults
DEFAULT_LIMIT = 100
DEFAULT_OFFSET = 0

# MySQL caps identifiers at 64 characters
MAX_IDENTIFIER_LENGTH = 64

# Shortcut routes (single-database mode): route name -> table
SHORTCUT_TABLES = {
    "deals": "deal",
    "companies": "company",
    "contacts": "contact",
    "leads": "lead",
}


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        LOG.warning("ignoring non-numeric %s=%r, using %s", key, raw, default)
        return default


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        LOG.warning("ignoring non-numeric %s=%r, using %s", key, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = ""
    db_password: str = ""
    db_name: Optional[str] = None
    port: int = 3000
    pool_size: int = 10
    pool_timeout: float = 30.0   # seconds a request waits for a free connection
    query_timeout: int = 120     # seconds
    log_level: str = "INFO"
    api_title: str = "Bitrix24 MySQL API"

    @property
    def single_database(self) -> bool:
        """True when a fixed database is configured (DB_NAME set)."""
        return bool(self.db_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            db_host=env.get("DB_HOST") or "localhost",
            db_port=_env_int(env, "DB_PORT", 3306),
            db_user=env.get("DB_USER", ""),
            db_password=env.get("DB_PASSWORD", ""),
            db_name=env.get("DB_NAME") or None,
            port=_env_int(env, "PORT", 3000),
            pool_size=_env_int(env, "DB_POOL_SIZE", 10),
            pool_timeout=_env_float(env, "DB_POOL_TIMEOUT", 30.0),
            query_timeout=_env_int(env, "QUERY_TIMEOUT", 120),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            api_title=env.get("API_TITLE") or "Bitrix24 MySQL API",
        )
