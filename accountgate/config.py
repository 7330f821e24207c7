"""
Application Configuration.

Pydantic Settings model for the AccountGate service.
All configuration is loaded from environment variables and .env files.
The model is frozen: construct one ``AppConfig`` at process start and
inject it wherever it is needed (token codec, notifier, hasher).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Session tokens ---
    SECRET_KEY: SecretStr = SecretStr("")
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_DAYS: int = Field(default=365, ge=1)

    # --- Activation / reset tokens ---
    TOKEN_LENGTH: int = Field(default=10, ge=6, le=128)
    RESET_TTL_SECONDS: int = Field(default=7200, ge=1)

    # --- Credentials ---
    BCRYPT_ROUNDS: int = Field(default=10, ge=4, le=31)
    MIN_PASSWORD_LENGTH: int = 6

    # --- Roles ---
    ADMIN_ROLE: str = "ADMIN"

    # --- Links embedded in outbound email ---
    APP_BASE_URL: str = "http://localhost:3000"

    # --- Email / SMTP ---
    MAIL_ENABLED: bool = False
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: SecretStr = SecretStr("")
    MAIL_FROM: str = "no-reply@example.com"

    # --- Storage ---
    SQLITE_PATH: str = "accounts.db"

    # --- Logging ---
    LOG_FILE: str = "accountgate.log"
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a log line instead of a silent placeholder.
        """
        _log = logging.getLogger("accountgate.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SECRET_KEY.get_secret_value():
            _log.warning(
                "SECRET_KEY is empty; session tokens cannot be issued "
                "until a signing key is configured."
            )

        if not self.MAIL_ENABLED:
            _log.warning(
                "MAIL_ENABLED is false; outbound email is logged, not sent."
            )

        return self

    @property
    def log_level(self) -> int:
        """Numeric logging level for ``LOG_LEVEL`` (defaults to INFO)."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO

    def validate_email_config(self) -> None:
        """Validate that SMTP configuration is complete.

        Raises:
            ValueError: If required email settings are missing.
        """
        if not self.MAIL_USERNAME or not self.MAIL_PASSWORD.get_secret_value():
            raise ValueError("MAIL_USERNAME and MAIL_PASSWORD must be set")
        if not self.MAIL_SERVER:
            raise ValueError("MAIL_SERVER must be set")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Only the entry point should call this.  Core classes receive the
    config through their constructors so that tests can build their own.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
