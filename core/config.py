"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Entry happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      composition root (api/main.py) and api/limiter.py call it; stores, the
      resolver and the paste service receive the Settings object as a constructor
      argument so tests can hand them a private instance.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. admin_password -> ADMIN_PASSWORD).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Dev mode (DEBUG=true) generates an admin password when none is
      configured; production mode runs without an admin override and warns.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
logs/ or pastes/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models import MIN_PASSWORD_LENGTH

logger = logging.getLogger("entry.config")

DEFAULT_LOG_EVENTS = [
    "session",
    "create_paste",
    "edit_paste",
    "delete_paste",
    "view_paste",
    "comment",
    "report",
    "custom_domain",
    "access_admin",
    "error",
]


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

    debug: bool = False
    version: str = "0.1.0"

    # Empty string disables the instance-wide admin override.
    admin_password: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    data_location: str = "./data"
    # Empty means "derive a SQLite file under data_location".
    paste_db_url: str = ""
    log_db_url: str = ""

    # ------------------------------------------------------------------
    # Logs and sessions
    # ------------------------------------------------------------------

    log_events: list[str] = DEFAULT_LOG_EVENTS
    log_clear_on_start: bool = False

    # Associate an anonymous session with the paste it creates.
    auto_tag: bool = True

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    paste_rate_limit: str = "30/minute"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    expiry_check_seconds: int = 60

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def sessions_enabled(self) -> bool:
        return "session" in self.log_events

    def log_enabled(self, event: str) -> bool:
        return event in self.log_events

    def resolved_paste_db_url(self) -> str:
        if self.paste_db_url:
            return self.paste_db_url
        return f"sqlite:///{Path(self.data_location) / 'entry.sqlite'}"

    def resolved_log_db_url(self) -> str:
        if self.log_db_url:
            return self.log_db_url
        return f"sqlite:///{Path(self.data_location) / 'log.sqlite'}"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_admin_password(self) -> "Settings":
        """Enforce the admin password policy.

        Dev mode (DEBUG=true): auto-generate a random admin password with a
            warning so the admin endpoints are usable locally.

        Production mode: an empty admin password is allowed but disables the
            admin override everywhere; warn so the operator notices.

        Both modes: a configured password must be longer than the paste
            password minimum, otherwise it is weaker than any edit password.
        """
        if not self.admin_password:
            if self.debug:
                self.admin_password = secrets.token_hex(16)
                logger.warning("Using auto-generated ADMIN_PASSWORD (debug mode).")
            else:
                logger.warning("ADMIN_PASSWORD is not set -- admin override is disabled.")
            return self
        if len(self.admin_password) <= MIN_PASSWORD_LENGTH:
            raise ValueError(f"ADMIN_PASSWORD must be more than {MIN_PASSWORD_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
