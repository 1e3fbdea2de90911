"""Job and execution record models.

Manifesto:
    The host owns job definitions; the engine only reads a snapshot of
    them at each reconcile. Execution records are owned by the execution
    log and outlive the job they describe, so they copy the job name
    instead of referencing the job.

Both models serialize to plain dicts with ISO-8601 timestamps
(``to_dict`` / ``from_dict``) for JSON persistence.

Tags:
    cadence, models, dataclasses, scheduling
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from cadence.core.timestamps import from_iso8601, to_iso8601


class ScheduleType(str, Enum):
    """Recurrence rule tags."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class JobStatus(str, Enum):
    """Host-side job status. Only ``ACTIVE`` jobs get a timer."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"  # transient display state after a run


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Schedule config
# ---------------------------------------------------------------------------


@dataclass
class ScheduleConfig:
    """Variant payload selected by ``Job.schedule_type``.

    hourly: ``minute`` (0-59)
    daily:  ``time`` ("HH:MM")
    weekly: ``day_of_week`` (0-6, 0=Sunday) and ``time``

    Values are stored as given; the recurrence calculator validates them.
    """

    minute: Any = None
    time: Any = None
    day_of_week: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("minute", self.minute),
                ("time", self.time),
                ("day_of_week", self.day_of_week),
            )
            if value is not None
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScheduleConfig:
        """Build from a dict; camelCase ``dayOfWeek`` is accepted too."""
        data = data or {}
        day = data.get("day_of_week", data.get("dayOfWeek"))
        return cls(minute=data.get("minute"), time=data.get("time"), day_of_week=day)


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------


@dataclass
class Job:
    """Recurring job definition."""

    id: str
    name: str
    schedule_type: str
    schedule_config: ScheduleConfig = field(default_factory=ScheduleConfig)
    description: str = ""
    status: str = JobStatus.ACTIVE.value
    last_run: datetime | None = None
    next_run: datetime | None = None
    execution_count: int = 0
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == JobStatus.ACTIVE.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "schedule_type": self.schedule_type,
            "schedule_config": self.schedule_config.to_dict(),
            "status": self.status,
            "last_run": to_iso8601(self.last_run),
            "next_run": to_iso8601(self.next_run),
            "execution_count": self.execution_count,
            "created_at": to_iso8601(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            description=str(data.get("description") or ""),
            schedule_type=str(data.get("schedule_type", data.get("scheduleType", ""))),
            schedule_config=ScheduleConfig.from_dict(
                data.get("schedule_config", data.get("scheduleConfig"))
            ),
            status=str(data.get("status", JobStatus.ACTIVE.value)),
            last_run=from_iso8601(data.get("last_run", data.get("lastRun"))),
            next_run=from_iso8601(data.get("next_run", data.get("nextRun"))),
            execution_count=int(data.get("execution_count", data.get("executionCount", 0)) or 0),
            created_at=from_iso8601(data.get("created_at", data.get("createdAt"))),
        )


# ---------------------------------------------------------------------------
# Execution records
# ---------------------------------------------------------------------------


@dataclass
class JobExecution:
    """One logged firing of a job (scheduled or manual)."""

    id: str
    job_id: str
    job_name: str
    executed_at: datetime
    status: str = ExecutionStatus.SUCCESS.value
    output: str = ""
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "job_name": self.job_name,
            "executed_at": to_iso8601(self.executed_at),
            "status": self.status,
            "output": self.output,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobExecution:
        executed_at = from_iso8601(data.get("executed_at", data.get("executedAt")))
        if executed_at is None:
            raise ValueError("executed_at is required")
        return cls(
            id=str(data["id"]),
            job_id=str(data["job_id"] if "job_id" in data else data["jobId"]),
            job_name=str(data.get("job_name", data.get("jobName", ""))),
            executed_at=executed_at,
            status=str(data.get("status", ExecutionStatus.SUCCESS.value)),
            output=str(data.get("output", "")),
            duration_ms=float(data.get("duration_ms", data.get("durationMs", 0.0))),
        )


@dataclass
class ExecutionStats:
    """Aggregate over one job's logged executions."""

    count: int = 0
    success_count: int = 0
    failed_count: int = 0
    last_execution_time: datetime | None = None
    average_duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "success_count": self.success_count,
            "failed_count": self.failed_count,
            "last_execution_time": to_iso8601(self.last_execution_time),
            "average_duration_ms": self.average_duration_ms,
        }
