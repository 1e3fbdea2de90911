"""Job service - the host side of the scheduling engine.

The service owns the job list and is its only mutator. Every change to the
list ends in a full reconcile (``engine.reschedule_all``), and the engine
reports back only through the two callbacks wired here:

    on_execute(job_id, job_name)
        last_run = now, execution_count += 1, status = completed,
        then a display-window timer reverts status to active

    on_job_fields_update(job_id, {"next_run": ...})
        merged into the job record

``completed`` is a display state. Snapshots handed to the engine present
completed jobs as active, so a reconcile during the display window keeps
them scheduled.
"""

from __future__ import annotations

import dataclasses
import random
from typing import Any

import pydantic

from cadence.core.errors import JobNotFoundError, JobPausedError, ValidationError
from cadence.core.execution_log import ExecutionLog
from cadence.core.logging import get_logger
from cadence.core.models import ExecutionStats, Job, JobExecution, JobStatus, ScheduleType
from cadence.core.persistence import JsonStateStore
from cadence.core.scheduling import SchedulingEngine, TimerBackend, TimerHandle
from cadence.core.settings import CadenceSettings, get_settings
from cadence.core.timestamps import new_id

from .schemas import JobCreate, JobUpdate, ScheduleConfigIn

logger = get_logger(__name__)

# Fields the engine may write through on_job_fields_update
ENGINE_WRITABLE_FIELDS = frozenset({"next_run"})


def _validated(model: type[pydantic.BaseModel], data: Any) -> Any:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ValidationError(first.get("msg", str(e)), field=field, cause=e) from e


class JobService:
    """Job list CRUD wired to a ``SchedulingEngine``.

    Example:
        >>> service = JobService(ManualTimerBackend(start), settings=settings)
        >>> job = service.add_job({"name": "Ping", "schedule_type": "hourly",
        ...                        "schedule_config": {"minute": 30}})
        >>> service.get_job(job.id).next_run
        datetime.datetime(2026, 3, 4, 11, 30, tzinfo=datetime.timezone.utc)
    """

    def __init__(
        self,
        backend: TimerBackend,
        *,
        store: JsonStateStore | None = None,
        settings: CadenceSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.backend = backend
        self.store = store
        self.completed_display_seconds = settings.completed_display_seconds
        self.execution_log = ExecutionLog(settings.max_log_entries)
        self.engine = SchedulingEngine(
            backend,
            self.execution_log,
            on_execute=self._handle_execute,
            on_job_fields_update=self._handle_fields_update,
            settle_delay_seconds=settings.settle_delay_seconds,
            rng=rng,
            duration_range_ms=(settings.duration_min_ms, settings.duration_max_ms),
        )
        self._jobs: dict[str, Job] = {}
        self._display_timers: dict[str, TimerHandle] = {}
        self._saving_suspended = False

    # === Lifecycle ===

    def load(self) -> list[Job]:
        """Restore jobs and execution history from the store, then reconcile."""
        if self.store is None:
            return self.list_jobs()

        jobs = self.store.load_jobs()
        self.execution_log.restore(self.store.load_executions())
        self._jobs = {}
        for job in jobs:
            # A display window cannot survive a restart
            if job.status == JobStatus.COMPLETED.value:
                job.status = JobStatus.ACTIVE.value
            self._jobs[job.id] = job

        logger.info("jobs_loaded", jobs=len(self._jobs), executions=len(self.execution_log))
        self._reconcile()
        return self.list_jobs()

    def close(self) -> None:
        """Cancel every engine and display-window timer."""
        self.engine.shutdown()
        for handle in self._display_timers.values():
            handle.cancel()
        self._display_timers.clear()

    # === Queries ===

    def get_job(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def active_count(self) -> int:
        return sum(1 for j in self._jobs.values() if j.status == JobStatus.ACTIVE.value)

    def executions(self) -> list[JobExecution]:
        return self.execution_log.list()

    def executions_for(self, job_id: str) -> list[JobExecution]:
        return self.execution_log.list_for_job(job_id)

    def stats(self, job_id: str) -> ExecutionStats:
        return self.execution_log.stats(job_id)

    # === Mutations ===

    def add_job(self, data: JobCreate | dict[str, Any]) -> Job:
        """Create an active job and schedule it."""
        payload: JobCreate = _validated(JobCreate, data)
        job = Job(
            id=new_id(),
            name=payload.name,
            description=payload.description,
            schedule_type=payload.schedule_type.value,
            schedule_config=payload.to_config(),
            status=JobStatus.ACTIVE.value,
            created_at=self.backend.now(),
        )
        self._jobs[job.id] = job
        logger.info("job_created", job_id=job.id, job_name=job.name, schedule_type=job.schedule_type)
        self._reconcile()
        return job

    def update_job(self, job_id: str, data: JobUpdate | dict[str, Any]) -> Job:
        """Edit name, description, or schedule; the job is re-armed."""
        job = self.get_job(job_id)
        update: JobUpdate = _validated(JobUpdate, data)

        if update.name is not None:
            job.name = update.name
        if update.description is not None:
            job.description = update.description
        if update.schedule_type is not None or update.schedule_config is not None:
            schedule_type = update.schedule_type or _existing_type(job)
            config = update.schedule_config or ScheduleConfigIn()
            job.schedule_type = schedule_type.value
            job.schedule_config = config.for_type(schedule_type)

        logger.info("job_updated", job_id=job.id, job_name=job.name)
        self._reconcile()
        return job

    def pause_job(self, job_id: str) -> Job:
        return self._set_status(job_id, JobStatus.PAUSED)

    def resume_job(self, job_id: str) -> Job:
        return self._set_status(job_id, JobStatus.ACTIVE)

    def toggle_pause(self, job_id: str) -> Job:
        """Paused jobs resume; anything else pauses."""
        job = self.get_job(job_id)
        if job.status == JobStatus.PAUSED.value:
            return self._set_status(job_id, JobStatus.ACTIVE)
        return self._set_status(job_id, JobStatus.PAUSED)

    def delete_job(self, job_id: str) -> None:
        """Cancel the job's timer, then remove it. History is kept."""
        job = self.get_job(job_id)
        self.engine.cancel_job(job_id)
        display = self._display_timers.pop(job_id, None)
        if display is not None:
            display.cancel()
        del self._jobs[job_id]
        logger.info("job_deleted", job_id=job_id, job_name=job.name)
        self._reconcile()

    def run_now(self, job_id: str) -> JobExecution:
        """Execute a job immediately, outside its schedule.

        Raises:
            JobNotFoundError: unknown id
            JobPausedError: the job is paused
        """
        job = self.get_job(job_id)
        if job.status == JobStatus.PAUSED.value:
            raise JobPausedError(
                f"Cannot run paused job {job.name!r}", field="status", value=job.status
            ).with_context(job_id=job.id, job_name=job.name)
        return self.engine.execute(job.id, job.name)

    def clear_executions(self) -> None:
        self.execution_log.clear()
        if self.store is not None:
            self.store.clear_executions()
        logger.info("execution_log_cleared")

    # === Engine callbacks ===

    def _handle_execute(self, job_id: str, job_name: str) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            # Manual runs and fires can race a delete; history is still logged
            self._save()
            return

        job.last_run = self.backend.now()
        job.execution_count += 1
        if job.status != JobStatus.PAUSED.value:
            job.status = JobStatus.COMPLETED.value
            self._arm_display_window(job_id)
        self._save()

    def _handle_fields_update(self, job_id: str, fields: dict[str, Any]) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            return
        for key, value in fields.items():
            if key in ENGINE_WRITABLE_FIELDS:
                setattr(job, key, value)
        self._save()

    def _arm_display_window(self, job_id: str) -> None:
        previous = self._display_timers.pop(job_id, None)
        if previous is not None:
            previous.cancel()
        self._display_timers[job_id] = self.backend.call_later(
            self.completed_display_seconds, lambda: self._end_display_window(job_id)
        )

    def _end_display_window(self, job_id: str) -> None:
        self._display_timers.pop(job_id, None)
        job = self._jobs.get(job_id)
        if job is not None and job.status == JobStatus.COMPLETED.value:
            job.status = JobStatus.ACTIVE.value
            self._save()

    # === Internals ===

    def _set_status(self, job_id: str, status: JobStatus) -> Job:
        job = self.get_job(job_id)
        if status is JobStatus.PAUSED:
            display = self._display_timers.pop(job_id, None)
            if display is not None:
                display.cancel()
        job.status = status.value
        if status is JobStatus.PAUSED:
            job.next_run = None
        logger.info("job_status_changed", job_id=job.id, status=job.status)
        self._reconcile()
        return job

    def _snapshot(self) -> list[Job]:
        return [
            dataclasses.replace(job, status=JobStatus.ACTIVE.value)
            if job.status == JobStatus.COMPLETED.value
            else job
            for job in self._jobs.values()
        ]

    def _reconcile(self) -> None:
        self._saving_suspended = True
        try:
            self.engine.reschedule_all(self._snapshot())
        finally:
            self._saving_suspended = False
        self._save()

    def _save(self) -> None:
        if self.store is None or self._saving_suspended:
            return
        self.store.save_jobs(self._jobs.values())
        self.store.save_executions(self.execution_log.list())


def _existing_type(job: Job) -> ScheduleType:
    try:
        return ScheduleType(job.schedule_type)
    except ValueError:
        raise ValidationError(
            f"Job has unknown schedule type {job.schedule_type!r}; set schedule_type explicitly",
            field="schedule_type",
            value=job.schedule_type,
        ).with_context(job_id=job.id) from None
