"""
Input schemas for job creation and edits.

User input is validated here, strictly, before it reaches the job list.
Definitions loaded from disk skip this layer; the engine copes with
malformed ones by leaving them unscheduled.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cadence.core.models import ScheduleConfig, ScheduleType


class ScheduleConfigIn(BaseModel):
    """Recurrence fields; which ones matter depends on the schedule type."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    minute: int | None = Field(default=None, ge=0, le=59, description="Minute of the hour (hourly)")
    time: str | None = Field(
        default=None,
        pattern=r"^([01]\d|2[0-3]):[0-5]\d$",
        description="HH:MM (daily, weekly)",
    )
    day_of_week: int | None = Field(
        default=None,
        ge=0,
        le=6,
        alias="dayOfWeek",
        description="0=Sunday .. 6=Saturday (weekly)",
    )

    def for_type(self, schedule_type: ScheduleType) -> ScheduleConfig:
        """Keep only the fields meaningful for ``schedule_type``, filling defaults."""
        if schedule_type is ScheduleType.HOURLY:
            return ScheduleConfig(minute=self.minute if self.minute is not None else 0)
        time = self.time or "00:00"
        if schedule_type is ScheduleType.DAILY:
            return ScheduleConfig(time=time)
        return ScheduleConfig(
            time=time,
            day_of_week=self.day_of_week if self.day_of_week is not None else 0,
        )


class JobCreate(BaseModel):
    """New job definition."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(description="Display name (required, trimmed)")
    description: str = Field(default="", description="Free-form description")
    schedule_type: ScheduleType
    schedule_config: ScheduleConfigIn = Field(default_factory=ScheduleConfigIn)

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Job name is required")
        return value

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str) -> str:
        return value.strip()

    def to_config(self) -> ScheduleConfig:
        return self.schedule_config.for_type(self.schedule_type)


class JobUpdate(BaseModel):
    """Partial edit; unset fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    schedule_type: ScheduleType | None = None
    schedule_config: ScheduleConfigIn | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Job name is required")
        return value

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None

    @model_validator(mode="after")
    def _config_follows_type(self) -> "JobUpdate":
        if self.schedule_type is not None and self.schedule_config is None:
            raise ValueError("schedule_config is required when changing schedule_type")
        return self
