"""Scheduling engine - one timer per active job, reconciled from snapshots.

Manifesto:
    The engine holds no job list of its own, only "what I have armed".
    The host hands it a full snapshot after every change and the engine
    cancels everything and re-arms from scratch. No timer can outlive the
    job definition it was armed for, and a paused or deleted job can never
    fire.

┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULING ENGINE                                                            │
│                                                                               │
│   reschedule_all(jobs)                                                        │
│      │  registry.cancel_all()                                                 │
│      ▼                                                                        │
│   schedule_job(job)  (active jobs only, input order)                          │
│      │  next_fire_time(type, config, backend.now())                           │
│      │    └── None ──► inert (unschedulable event)                            │
│      │  delay = next_run - now                                                │
│      ├── delay ≤ 0 ──► execute now ─┐                                         │
│      └── delay > 0 ──► ARMED        │                                         │
│                         │ fire      │                                         │
│                         ▼           ▼                                         │
│                       FIRED ── settle delay ──► schedule_job(job)             │
│                                                                               │
│   execute(job_id, job_name)                                                   │
│      log.record(...) ──► on_execute(job_id, job_name) ──► EXECUTED event      │
│                                                                               │
│   Host notifications: on_job_fields_update(job_id, {"next_run": ...})         │
│   on every arm, plus an event queue drained with drain_events().              │
└──────────────────────────────────────────────────────────────────────────────┘

All engine work runs on the backend's single loop: no locks, and a job's
own firings are strictly sequential.
"""

from __future__ import annotations

import copy
import random
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from cadence.core.execution_log import ExecutionLog, simulated_duration_ms
from cadence.core.logging import LogContext, get_logger
from cadence.core.models import Job, JobExecution, JobStatus
from cadence.core.timestamps import to_iso8601

from .protocol import TimerBackend
from .recurrence import next_fire_time
from .registry import TimerEntry, TimerRegistry, TimerState

logger = get_logger(__name__)

DEFAULT_SETTLE_DELAY_SECONDS = 1.0
MAX_PENDING_EVENTS = 1000

ExecuteCallback = Callable[[str, str], None]
FieldsUpdateCallback = Callable[[str, dict[str, Any]], None]


class EventKind(str, Enum):
    ARMED = "armed"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    UNSCHEDULABLE = "unschedulable"


@dataclass
class EngineEvent:
    """Something the host may want to react to."""

    kind: EventKind
    job_id: str
    at: datetime
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class EngineStats:
    """Counters since construction or the last reset."""

    arms: int = 0
    executions: int = 0
    cancellations: int = 0
    unschedulable: int = 0
    callback_errors: int = 0
    last_execution: datetime | None = None


@dataclass
class EngineHealth:
    """Health status for the engine."""

    healthy: bool
    backend: dict[str, Any]
    scheduled: int = 0
    armed: int = 0
    stats: EngineStats = field(default_factory=EngineStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "scheduled": self.scheduled,
            "armed": self.armed,
            "stats": {
                "arms": self.stats.arms,
                "executions": self.stats.executions,
                "cancellations": self.stats.cancellations,
                "unschedulable": self.stats.unschedulable,
                "callback_errors": self.stats.callback_errors,
                "last_execution": to_iso8601(self.stats.last_execution),
            },
        }


class SchedulingEngine:
    """Arms, fires, and re-arms one timer per active job.

    Example:
        >>> backend = ManualTimerBackend(datetime(2026, 3, 4, 10, 45, tzinfo=UTC))
        >>> engine = SchedulingEngine(backend, ExecutionLog())
        >>> engine.reschedule_all([job])          # hourly, minute=30
        >>> engine.get_next_run(job.id)
        datetime.datetime(2026, 3, 4, 11, 30, tzinfo=datetime.timezone.utc)
        >>> backend.advance(45 * 60)              # 11:30 fires
        1
    """

    def __init__(
        self,
        backend: TimerBackend,
        execution_log: ExecutionLog | None = None,
        *,
        on_execute: ExecuteCallback | None = None,
        on_job_fields_update: FieldsUpdateCallback | None = None,
        settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS,
        rng: random.Random | None = None,
        duration_range_ms: tuple[float, float] = (500.0, 1500.0),
        registry: TimerRegistry | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            backend: Timer backend supplying ``now()`` and ``call_later()``
            execution_log: Log receiving one record per execution
            on_execute: Called as ``on_execute(job_id, job_name)`` after logging
            on_job_fields_update: Called as ``on_job_fields_update(job_id, fields)``
                with ``{"next_run": datetime}`` whenever a job is armed
            settle_delay_seconds: Pause between a fire and the next
                recurrence computation, identical for every job
            rng: Source of simulated durations (seed it for reproducibility)
            duration_range_ms: Simulated duration bounds in milliseconds
            registry: Timer registry (a fresh one by default)
        """
        if settle_delay_seconds <= 0:
            raise ValueError("settle_delay_seconds must be positive")
        self.backend = backend
        self.execution_log = execution_log if execution_log is not None else ExecutionLog()
        self.on_execute = on_execute
        self.on_job_fields_update = on_job_fields_update
        self.settle_delay_seconds = settle_delay_seconds
        self._rng = rng or random.Random()
        self._duration_range_ms = duration_range_ms
        self._registry = registry if registry is not None else TimerRegistry()
        self._events: deque[EngineEvent] = deque(maxlen=MAX_PENDING_EVENTS)
        self._stats = EngineStats()

    # === Scheduling ===

    def schedule_job(self, job: Job) -> datetime | None:
        """Arm (or re-arm) the timer for ``job``.

        Any existing timer for the job is cancelled first. Returns the
        computed next run, or None when the job is not active or cannot be
        scheduled.
        """
        self._registry.cancel(job.id)

        if job.status != JobStatus.ACTIVE.value:
            return None

        now = self.backend.now()
        next_run = next_fire_time(job.schedule_type, job.schedule_config, now)
        if next_run is None:
            self._stats.unschedulable += 1
            self._emit(EventKind.UNSCHEDULABLE, job.id, schedule_type=job.schedule_type)
            return None

        snapshot = copy.deepcopy(job)
        # Re-read the clock: time may have moved since the computation
        delay = next_run.timestamp() - self.backend.now().timestamp()

        if delay <= 0:
            logger.info("job_due_immediately", job_id=job.id, job_name=job.name)
            self._fire(snapshot, next_run)
            return next_run

        entry = self._registry.arm(snapshot, next_run)
        entry.handle = self.backend.call_later(delay, lambda: self._on_timer(entry))
        self._stats.arms += 1

        logger.info(
            "job_armed",
            job_id=job.id,
            job_name=job.name,
            next_run=next_run.isoformat(),
            delay_seconds=round(delay, 3),
        )
        self._emit(EventKind.ARMED, job.id, next_run=next_run)
        self._notify(self.on_job_fields_update, job.id, {"next_run": next_run})
        return next_run

    def cancel_job(self, job_id: str) -> bool:
        """Cancel the pending timer for ``job_id``; no-op when none exists."""
        cancelled = self._registry.cancel(job_id)
        if cancelled:
            self._stats.cancellations += 1
            logger.info("job_cancelled", job_id=job_id)
            self._emit(EventKind.CANCELLED, job_id)
        return cancelled

    def reschedule_all(self, jobs: Iterable[Job]) -> list[str]:
        """Reconcile against a full job snapshot.

        Cancels every timer, then schedules each active job in input order.
        Returns the ids that ended up with a pending timer.
        """
        cancelled = self._registry.cancel_all()
        considered = 0
        for job in jobs:
            considered += 1
            if job.status == JobStatus.ACTIVE.value:
                self.schedule_job(job)

        scheduled = self._registry.ids()
        logger.info(
            "reschedule_all",
            jobs=considered,
            cancelled=cancelled,
            scheduled=len(scheduled),
        )
        return scheduled

    def shutdown(self) -> None:
        """Cancel every pending timer."""
        count = self._registry.cancel_all()
        logger.info("engine_shutdown", cancelled=count)

    # === Execution ===

    def execute(self, job_id: str, job_name: str) -> JobExecution:
        """Run the job's side effect once: log it and notify the host."""
        now = self.backend.now()
        low, high = self._duration_range_ms
        with LogContext(job_id=job_id, job_name=job_name):
            execution = self.execution_log.record(
                job_id,
                job_name,
                executed_at=now,
                duration_ms=simulated_duration_ms(self._rng, low, high),
            )
            logger.info("job_executed", output=execution.output, executed_at=now.isoformat())

        self._stats.executions += 1
        self._stats.last_execution = now
        self._emit(EventKind.EXECUTED, job_id, execution_id=execution.id, executed_at=now)
        self._notify(self.on_execute, job_id, job_name)
        return execution

    def _on_timer(self, entry: TimerEntry) -> None:
        if self._registry.get(entry.job_id) is not entry or entry.state is not TimerState.ARMED:
            return
        self._fire(entry.job, entry.next_run)

    def _fire(self, job: Job, fired_slot: datetime | None) -> None:
        entry = self._registry.mark_fired(job, fired_slot)
        self.execute(job.id, job.name)

        # A callback may have reconciled while we were executing
        if self._registry.get(job.id) is not entry:
            return
        entry.handle = self.backend.call_later(
            self.settle_delay_seconds, lambda: self._after_settle(job, entry)
        )

    def _after_settle(self, job: Job, entry: TimerEntry) -> None:
        if self._registry.get(job.id) is not entry:
            return
        self.schedule_job(job)

    # === Queries ===

    def get_next_run(self, job_id: str) -> datetime | None:
        entry = self._registry.get(job_id)
        return entry.next_run if entry else None

    def get_all_scheduled_jobs(self) -> list[str]:
        """Ids of jobs with a pending timer (armed or settling)."""
        return self._registry.ids()

    def get_state(self, job_id: str) -> TimerState:
        entry = self._registry.get(job_id)
        return entry.state if entry else TimerState.IDLE

    def drain_events(self) -> list[EngineEvent]:
        """Return and clear the events recorded since the last drain."""
        events = list(self._events)
        self._events.clear()
        return events

    # === Health & Stats ===

    def health(self) -> EngineHealth:
        backend_health = self.backend.health()
        return EngineHealth(
            healthy=bool(backend_health.get("healthy", False)),
            backend=backend_health,
            scheduled=len(self._registry),
            armed=self._registry.armed_count(),
            stats=self._stats,
        )

    def get_stats(self) -> EngineStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = EngineStats()

    # === Internals ===

    def _emit(self, kind: EventKind, job_id: str, **fields: Any) -> None:
        self._events.append(
            EngineEvent(kind=kind, job_id=job_id, at=self.backend.now(), fields=fields)
        )

    def _notify(self, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self._stats.callback_errors += 1
            logger.exception("host_callback_failed", job_id=args[0] if args else None)
