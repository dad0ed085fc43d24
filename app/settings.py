# app/settings.py
# Role: Centralized configuration for LocalFinTrack.
#       Values come from environment variables (prefix LOCALFINTRACK_) or a .env file.

"""
Application settings.

Every tunable the app reads lives here, so startup fails early
with a clear pydantic error when something is misconfigured.
"""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (where main.py / db.py live)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Default on-disk locations
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "database", "localfintrack.db")
DEFAULT_BACKUP_DIR = os.path.join(BASE_DIR, "backups")


class Settings(BaseSettings):
    """Runtime configuration loaded from env vars and .env."""

    model_config = SettingsConfigDict(
        env_prefix="LOCALFINTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(
        default=f"sqlite:///{DEFAULT_DB_PATH}",
        description="SQLAlchemy URL of the local store",
    )
    backup_dir: str = Field(
        default=DEFAULT_BACKUP_DIR,
        description="Folder where database backups are written",
    )

    session_secret: str = Field(
        default="localfintrack-dev-secret",
        description="Key used to sign the client session cookie",
    )
    session_days: int = Field(
        default=7,
        ge=1,
        description="Session lifetime, refreshed on every user activity",
    )

    min_password_length: int = Field(default=8, ge=1)
    temp_password_length: int = Field(default=12, ge=8)

    bootstrap_username: str = Field(default="admin")
    bootstrap_password: str = Field(default="Admin@123")

    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=False,
        description="Render log lines as JSON instead of the console format",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite:///")

    @property
    def sqlite_path(self) -> str | None:
        """Filesystem path of the SQLite store, or None for other backends / in-memory."""
        if not self.is_sqlite:
            return None
        path = self.database_url[len("sqlite:///"):]
        if not path or path == ":memory:":
            return None
        return path


@lru_cache()
def get_settings() -> Settings:
    """
    Settings singleton.

    Call get_settings.cache_clear() to reload (tests do this after
    patching the environment).
    """
    return Settings()
