"""Host side of cadence: the job list, input schemas, and persistence wiring.

Example:
    >>> import asyncio
    >>> from cadence.host import create_service
    >>>
    >>> async def main():
    ...     service = create_service()          # loads ~/.cadence state
    ...     service.add_job({"name": "Ping", "schedule_type": "hourly",
    ...                      "schedule_config": {"minute": 0}})
    ...     await asyncio.Event().wait()
"""

from __future__ import annotations

import random

from cadence.core.logging import configure_from_settings
from cadence.core.persistence import JsonStateStore
from cadence.core.scheduling import AsyncioTimerBackend, TimerBackend
from cadence.core.settings import CadenceSettings, get_settings

from .schemas import JobCreate, JobUpdate, ScheduleConfigIn
from .service import JobService

__all__ = [
    "JobCreate",
    "JobUpdate",
    "ScheduleConfigIn",
    "JobService",
    "create_service",
]


def create_service(
    settings: CadenceSettings | None = None,
    backend: TimerBackend | None = None,
    *,
    persist: bool = True,
    configure_logs: bool = True,
    rng: random.Random | None = None,
) -> JobService:
    """Build a ``JobService`` from settings and load persisted state.

    Must be called from a running event loop when the default asyncio
    backend is used.

    Args:
        settings: Settings (``get_settings()`` by default)
        backend: Timer backend (AsyncioTimerBackend in the configured zone by default)
        persist: Read and write ``settings.data_dir``
        configure_logs: Apply ``configure_logging`` from settings
        rng: Random source for simulated durations
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_from_settings(settings)
    store = JsonStateStore(settings.data_dir) if persist else None
    service = JobService(
        backend or AsyncioTimerBackend(zone=settings.zone()),
        store=store,
        settings=settings,
        rng=rng,
    )
    service.load()
    return service
