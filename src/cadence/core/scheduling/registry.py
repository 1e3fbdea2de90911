"""Timer registry: at most one pending timer per job id.

Each entry walks a small state machine:

    IDLE ──arm──► ARMED ──fire──► FIRED ──settle──► ARMED (next occurrence)
      ▲             │               │
      └──cancel─────┴───────────────┘

In ``FIRED`` the entry holds the settle timer, so cancelling a job during
the settle window also stops its re-arm. Removing an entry always cancels
its handle first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from cadence.core.models import Job

from .protocol import TimerHandle


class TimerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    FIRED = "fired"


@dataclass(eq=False)
class TimerEntry:
    """Registry slot for one job."""

    job: Job
    state: TimerState
    handle: TimerHandle | None = None
    next_run: datetime | None = None

    @property
    def job_id(self) -> str:
        return self.job.id


class TimerRegistry:
    """Mapping of job id to its single pending timer.

    Owned by one engine; the engine is the only caller that mutates it.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TimerEntry] = {}

    def arm(
        self,
        job: Job,
        next_run: datetime,
        handle: TimerHandle | None = None,
    ) -> TimerEntry:
        """Record an armed fire timer, replacing (and cancelling) any previous one."""
        self.cancel(job.id)
        entry = TimerEntry(job=job, state=TimerState.ARMED, handle=handle, next_run=next_run)
        self._entries[job.id] = entry
        return entry

    def mark_fired(self, job: Job, next_run: datetime | None) -> TimerEntry:
        """Move ``job`` to FIRED; the settle handle is attached by the caller."""
        entry = self._entries.get(job.id)
        if entry is None:
            entry = TimerEntry(job=job, state=TimerState.FIRED, next_run=next_run)
            self._entries[job.id] = entry
        else:
            entry.state = TimerState.FIRED
            entry.handle = None
        return entry

    def get(self, job_id: str) -> TimerEntry | None:
        return self._entries.get(job_id)

    def cancel(self, job_id: str) -> bool:
        """Cancel and remove the entry for ``job_id``; False when absent."""
        entry = self._entries.pop(job_id, None)
        if entry is None:
            return False
        try:
            if entry.handle is not None:
                entry.handle.cancel()
        finally:
            entry.handle = None
            entry.state = TimerState.IDLE
        return True

    def cancel_all(self) -> int:
        """Cancel every entry; returns how many were removed."""
        count = 0
        for job_id in list(self._entries):
            if self.cancel(job_id):
                count += 1
        return count

    def ids(self) -> list[str]:
        """Job ids with a pending timer, in arming order."""
        return list(self._entries)

    def armed_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.state is TimerState.ARMED)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
