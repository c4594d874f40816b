"""
core/config.py -- EventDesk settings, read once from the environment.

Every environment variable the app understands is a field on Settings. Other
modules ask get_settings() for values and never read os.environ themselves.

Sources, highest priority first: process environment, then .env in the
working directory, then the defaults below. Names are the upper-cased field
names (token_expire_seconds -> TOKEN_EXPIRE_SECONDS). List fields take a JSON
array: ALLOWED_HOSTS='["localhost", "api.example.org"]'.

get_settings() is memoized with lru_cache, so the environment is read on the
first call only. Tests that change the environment build Settings(...)
directly or clear the cache.

Signing keys:
  SECRET_KEY signs every new token. PREVIOUS_SECRET_KEYS lists retired keys
  whose tokens are still accepted; drop a key from the list to revoke them.
  Keys under 32 characters are refused at startup. With DEBUG=true and no
  SECRET_KEY a random key is generated, so tokens die with the process.

Storage:
  STORE_BACKEND=sql (default) keeps data in DATABASE_URL. A plain in-memory
  SQLite URL (sqlite:///:memory:) is refused there; STORE_BACKEND=memory is
  the in-memory store.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or resources/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("eventdesk.config")

_MIN_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Typed view of the EventDesk environment.

    Every field has a default except the effective signing key, which the
    validator either generates (DEBUG) or demands.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    secret_key: str = ""  # "" until validate_signing_keys resolves it
    previous_secret_keys: list[str] = []
    token_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    store_backend: Literal["sql", "memory"] = "sql"
    database_url: str = "sqlite:///eventdesk.db"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    register_rate_limit: str = "5/minute"
    login_rate_limit: str = "10/minute"
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    @model_validator(mode="after")
    def validate_signing_keys(self) -> "Settings":
        """Resolve SECRET_KEY and check every key and the token lifetime.

        A missing SECRET_KEY is replaced by a random one under DEBUG and is a
        startup error otherwise.
        """
        if not self.secret_key:
            if not self.debug:
                raise ValueError(
                    "SECRET_KEY is required unless DEBUG=true. "
                    "Set it in the environment or in .env (at least 32 characters)."
                )
            self.secret_key = secrets.token_hex(32)
            logger.warning("SECRET_KEY not set; using a random key for this process only (DEBUG)")

        if len(self.secret_key) < _MIN_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_KEY_LENGTH} characters.")
        short = [i for i, k in enumerate(self.previous_secret_keys) if len(k) < _MIN_KEY_LENGTH]
        if short:
            raise ValueError(f"PREVIOUS_SECRET_KEYS entries {short} are shorter than {_MIN_KEY_LENGTH} characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        return self

    @model_validator(mode="after")
    def validate_database_url(self) -> "Settings":
        """Refuse a private in-memory SQLite database for the sql backend.

        Each pooled connection would get its own empty database, and requests
        run on different threads. STORE_BACKEND=memory is the in-memory option.
        """
        if self.store_backend == "sql" and _is_private_memory_sqlite(self.database_url):
            raise ValueError(
                "DATABASE_URL points at an in-memory SQLite database, which is not shared "
                "between request threads. Use STORE_BACKEND=memory instead."
            )
        return self


def _is_private_memory_sqlite(url: str) -> bool:
    if not url.startswith("sqlite"):
        return False
    if "mode=memory" in url and "cache=shared" in url:
        return False
    return url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:") or ":memory:" in url or "mode=memory" in url


@lru_cache
def get_settings() -> Settings:
    """Settings built from the environment on first call, cached afterwards."""
    return Settings()
