"""
Shared pytest fixtures for cadence tests.

This module provides:
- A virtual-clock timer backend starting on a known Wednesday morning
- Job factories with sensible defaults
- Settings isolated from the developer's environment and .env file

Usage:
    Fixtures are auto-discovered by pytest; request them by name.
"""

import random
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Ensure cadence package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cadence.core.execution_log import ExecutionLog
from cadence.core.models import Job, JobStatus, ScheduleConfig
from cadence.core.scheduling import ManualTimerBackend, SchedulingEngine
from cadence.core.settings import CadenceSettings
from cadence.core.timestamps import new_id

# Wednesday 2026-03-04 10:45 UTC
WEDNESDAY_1045 = datetime(2026, 3, 4, 10, 45, tzinfo=UTC)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def start() -> datetime:
    return WEDNESDAY_1045


@pytest.fixture
def backend(start) -> ManualTimerBackend:
    return ManualTimerBackend(start)


@pytest.fixture
def log() -> ExecutionLog:
    return ExecutionLog()


@pytest.fixture
def make_job():
    """Factory for Job definitions."""

    def _make(
        name: str = "Greeter",
        schedule_type: str = "hourly",
        status: str = JobStatus.ACTIVE.value,
        job_id: str | None = None,
        **config,
    ) -> Job:
        return Job(
            id=job_id or new_id(),
            name=name,
            schedule_type=schedule_type,
            schedule_config=ScheduleConfig(**config),
            status=status,
            created_at=WEDNESDAY_1045,
        )

    return _make


@pytest.fixture
def executed():
    """Records on_execute callbacks as (job_id, job_name) tuples."""
    return []


@pytest.fixture
def field_updates():
    """Records on_job_fields_update callbacks as (job_id, fields) tuples."""
    return []


@pytest.fixture
def engine(backend, log, executed, field_updates) -> SchedulingEngine:
    return SchedulingEngine(
        backend,
        log,
        on_execute=lambda job_id, name: executed.append((job_id, name)),
        on_job_fields_update=lambda job_id, fields: field_updates.append((job_id, fields)),
        settle_delay_seconds=1.0,
        rng=random.Random(42),
    )


@pytest.fixture
def settings(tmp_path) -> CadenceSettings:
    return CadenceSettings(
        _env_file=None,
        data_dir=tmp_path / "state",
        settle_delay_seconds=1.0,
        completed_display_seconds=3.0,
    )
