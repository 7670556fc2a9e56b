"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for wuzzlmoasta happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl_seconds -> SESSION_TTL_SECONDS).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Rejects settings that would make the server start in a broken
      state (missing resources directory, negative TTL).

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("wuzzlmoasta.config")

_DEFAULT_USERS_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'wuzzlmoasta_users.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    host: str = "0.0.0.0"
    port: int = 8080
    allowed_hosts: list[str] = ["*"]

    # Empty string means "use the packaged web/templates and web/static".
    # When set, views are read from <resources_dir>/views and reloaded on change.
    resources_dir: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    users_db_url: str = _DEFAULT_USERS_DB_URL
    secure_cookies: bool = False
    # 0 = sessions never expire; they live until logout or process restart.
    session_ttl_seconds: int = 0
    session_purge_interval_seconds: int = 300

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Refuse to start with settings that cannot work.

        resources_dir: a configured but missing directory is a hard failure
            rather than a silent fallback to the packaged resources.
        session_ttl_seconds: negative lifetimes are meaningless.
        session_purge_interval_seconds: the purge loop sleeps this long between
            passes, so it must be positive.
        """
        if self.resources_dir and not Path(self.resources_dir).is_dir():
            raise ValueError(f"folder `{self.resources_dir}` does not exist")
        if self.session_ttl_seconds < 0:
            raise ValueError("SESSION_TTL_SECONDS must be >= 0 (0 disables expiry).")
        if self.session_purge_interval_seconds <= 0:
            raise ValueError("SESSION_PURGE_INTERVAL_SECONDS must be positive.")
        if self.session_ttl_seconds == 0:
            logger.debug("Session expiry disabled; sessions live until logout or restart")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
