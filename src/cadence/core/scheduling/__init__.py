"""Scheduling engine package for cadence.

Manifesto:
    Recurring jobs need more than "sleep until the next slot". The engine
    computes each job's next fire time from its recurrence rule, keeps
    exactly one pending timer per active job, re-arms after every fire,
    and reconciles against the host's job list by cancelling everything
    and re-arming from the snapshot it is given.

┌──────────────────────────────────────────────────────────────────────────────┐
│  CADENCE SCHEDULING                                                           │
│                                                                               │
│  Quick Start:                                                                 │
│  ┌──────────────────────────────────────────────────────────────────────┐   │
│  │   from cadence.core.scheduling import create_engine                  │   │
│  │                                                                      │   │
│  │   async def main():                                                  │   │
│  │       engine = create_engine(on_execute=print)                       │   │
│  │       engine.reschedule_all(jobs)                                    │   │
│  │       await asyncio.Event().wait()                                   │   │
│  └──────────────────────────────────────────────────────────────────────┘   │
│                                                                               │
│  Components:                                                                  │
│  - recurrence      next_fire_time(type, config, now)                         │
│  - registry        TimerRegistry, TimerState (IDLE/ARMED/FIRED)              │
│  - engine          SchedulingEngine                                          │
│  - backends        AsyncioTimerBackend (default), ManualTimerBackend         │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    cadence, scheduling, timers, recurrence, reconciliation
"""

from __future__ import annotations

import random

from cadence.core.execution_log import ExecutionLog
from cadence.core.settings import CadenceSettings, get_settings

from .asyncio_backend import AsyncioTimerBackend
from .engine import (
    DEFAULT_SETTLE_DELAY_SECONDS,
    EngineEvent,
    EngineHealth,
    EngineStats,
    EventKind,
    ExecuteCallback,
    FieldsUpdateCallback,
    SchedulingEngine,
)
from .manual_backend import ManualTimerBackend
from .protocol import BackendHealth, TimerBackend, TimerHandle
from .recurrence import compute_next_fire_time, cron_expression, next_fire_time
from .registry import TimerEntry, TimerRegistry, TimerState

__all__ = [
    # Protocol
    "TimerBackend",
    "TimerHandle",
    "BackendHealth",
    # Backends
    "AsyncioTimerBackend",
    "ManualTimerBackend",
    # Recurrence
    "next_fire_time",
    "compute_next_fire_time",
    "cron_expression",
    # Registry
    "TimerRegistry",
    "TimerEntry",
    "TimerState",
    # Engine
    "SchedulingEngine",
    "EngineEvent",
    "EngineHealth",
    "EngineStats",
    "EventKind",
    "DEFAULT_SETTLE_DELAY_SECONDS",
    "create_engine",
]


def create_engine(
    backend: TimerBackend | None = None,
    execution_log: ExecutionLog | None = None,
    *,
    on_execute: ExecuteCallback | None = None,
    on_job_fields_update: FieldsUpdateCallback | None = None,
    settings: CadenceSettings | None = None,
    rng: random.Random | None = None,
) -> SchedulingEngine:
    """Factory wiring an engine from settings.

    Args:
        backend: Timer backend (AsyncioTimerBackend in the configured zone by default)
        execution_log: Log to record into (bounded by ``max_log_entries`` by default)
        on_execute: Execution callback
        on_job_fields_update: Field-update callback
        settings: Settings (``get_settings()`` by default)
        rng: Random source for simulated durations

    Example:
        >>> engine = create_engine(on_execute=lambda job_id, name: print(name))
    """
    settings = settings or get_settings()
    return SchedulingEngine(
        backend or AsyncioTimerBackend(zone=settings.zone()),
        execution_log if execution_log is not None else ExecutionLog(settings.max_log_entries),
        on_execute=on_execute,
        on_job_fields_update=on_job_fields_update,
        settle_delay_seconds=settings.settle_delay_seconds,
        rng=rng,
        duration_range_ms=(settings.duration_min_ms, settings.duration_max_ms),
    )
