"""Runtime settings for cadence.

Manifesto:
    Timing constants (settle delay, display window, log bound) are
    configuration, not magic numbers scattered through the engine. They are
    read once from the environment and handed to the components that need
    them, so every job uses the same values.

Fields
──────
log_level                 : structlog level
json_logs                 : force JSON (True) / console (False) rendering; auto when unset
data_dir                  : directory holding ``jobs.json`` and ``executions.json``
timezone                  : IANA zone for recurrence evaluation; local zone when unset
settle_delay_seconds      : pause before recomputing the next occurrence after a fire
max_log_entries           : execution log bound
completed_display_seconds : how long a job shows ``completed`` after a run
duration_min_ms / max_ms  : range of the simulated execution duration

Examples:
    >>> import os
    >>> os.environ["CADENCE_SETTLE_DELAY_SECONDS"] = "2"
    >>> CadenceSettings().settle_delay_seconds
    2.0
"""

from __future__ import annotations

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CadenceSettings(BaseSettings):
    """Settings read from ``CADENCE_*`` environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".cadence",
        description="Directory for persisted jobs and execution log",
    )

    # ── Scheduling ───────────────────────────────────────────────
    timezone: str | None = None
    settle_delay_seconds: float = Field(default=1.0, gt=0)
    max_log_entries: int = Field(default=100, ge=1)
    completed_display_seconds: float = Field(default=3.0, ge=0)
    duration_min_ms: float = Field(default=500.0, ge=0)
    duration_max_ms: float = Field(default=1500.0, ge=0)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str | None) -> str | None:
        if value:
            try:
                ZoneInfo(value)
            except ZoneInfoNotFoundError as exc:
                raise ValueError(f"unknown timezone: {value}") from exc
        return value or None

    @model_validator(mode="after")
    def _duration_range(self) -> "CadenceSettings":
        if self.duration_min_ms > self.duration_max_ms:
            raise ValueError("duration_min_ms must not exceed duration_max_ms")
        return self

    def zone(self) -> tzinfo | None:
        """Configured zone, or None for the host's local zone."""
        return ZoneInfo(self.timezone) if self.timezone else None


@lru_cache
def get_settings() -> CadenceSettings:
    """Get cached settings instance."""
    return CadenceSettings()
