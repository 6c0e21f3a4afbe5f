"""Checkinbot application settings loaded from environment and ``.env`` files.

Uses :mod:`pydantic_settings` to parse environment variables (and optionally
an ``.env`` file) into a validated settings object.

The field name is the **lowercase** version of the env-var name
(e.g. ``CYCLE_INTERVAL_MS`` → ``cycle_interval_ms``).  Durations are
configured in milliseconds and exposed to asyncio in seconds through the
``*_s`` properties.

Typical usage::

    from checkinbot.core.settings import Settings

    settings = Settings()                 # loads from env + .env
    await asyncio.sleep(settings.account_delay_s)
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "DEFAULT_USER_AGENT"]

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Central application configuration.

    Values are loaded in priority order:

    1. Actual environment variables (highest priority).
    2. ``.env`` file in the working directory.
    3. Field defaults (lowest priority).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    wallet_path: str = Field(
        default="wallet.txt",
        min_length=1,
        description="File holding one credential per line ('#' lines are comments).",
    )

    # ------------------------------------------------------------------
    # Remote service
    # ------------------------------------------------------------------
    checkin_url: str = Field(
        default="https://www.coresky.com/api/taskwall/meme/sign",
        min_length=1,
        description="Daily check-in endpoint.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every attempt.",
    )

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------
    cycle_interval_ms: int = Field(
        default=86_400_000,
        ge=1,
        description="Milliseconds between the end of one cycle and the next.",
    )
    account_delay_ms: int = Field(
        default=3_000,
        ge=0,
        description="Milliseconds to wait between consecutive accounts.",
    )
    attempt_timeout_ms: int = Field(
        default=15_000,
        ge=1,
        description="Timeout bound of one remote check-in attempt.",
    )

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------
    dashboard_refresh_s: float = Field(
        default=1.0,
        gt=0.0,
        description="Seconds between dashboard re-renders.",
    )
    log_history: int = Field(
        default=100,
        ge=1,
        description="Number of recent log events kept for the dashboard.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(default="INFO", description="Logging level.")
    log_format: str = Field(default="text", description="Log format: 'text' or 'json'.")
    log_file: str = Field(
        default="",
        description="Write operator logs to this file instead of stderr.",
    )

    # ------------------------------------------------------------------
    # Field validators
    # ------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got {v!r}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, v: str) -> str:
        allowed = {"text", "json"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v_lower

    # ------------------------------------------------------------------
    # Derived helpers
    # ------------------------------------------------------------------

    @property
    def cycle_interval_s(self) -> float:
        return self.cycle_interval_ms / 1000

    @property
    def account_delay_s(self) -> float:
        return self.account_delay_ms / 1000

    @property
    def attempt_timeout_s(self) -> float:
        return self.attempt_timeout_ms / 1000
