"""Typed models for jobs and execution records."""

from cadence.core.models.job import (
    ExecutionStats,
    ExecutionStatus,
    Job,
    JobExecution,
    JobStatus,
    ScheduleConfig,
    ScheduleType,
)

__all__ = [
    "ExecutionStats",
    "ExecutionStatus",
    "Job",
    "JobExecution",
    "JobStatus",
    "ScheduleConfig",
    "ScheduleType",
]
