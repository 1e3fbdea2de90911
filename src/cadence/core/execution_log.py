"""Bounded, append-only store of job executions.

Manifesto:
    The log is the only record of what actually ran. It is independent of
    the job list (entries survive job deletion), newest-first, and bounded:
    past ``max_entries`` the oldest entries are evicted silently.

┌──────────────────────────────────────────────────────────────┐
│  append(e)  ──►  [ e_n, e_n-1, ..., e_1 ]  ──► evict oldest   │
│                   newest            oldest    past the bound  │
└──────────────────────────────────────────────────────────────┘

Tags:
    cadence, execution-log, history, bounded-store
"""

from __future__ import annotations

import random
from collections import deque
from collections.abc import Iterable
from datetime import datetime

from cadence.core.models import ExecutionStats, ExecutionStatus, JobExecution
from cadence.core.timestamps import new_id

DEFAULT_MAX_ENTRIES = 100


def hello_output(job_name: str) -> str:
    """The fixed side effect every job produces."""
    return f"Hello World from {job_name}!"


class ExecutionLog:
    """Newest-first execution history holding at most ``max_entries`` records.

    Example:
        >>> log = ExecutionLog()
        >>> log.record("job-1", "Backup", executed_at=now, duration_ms=812.0)
        >>> log.list()[0].output
        'Hello World from Backup!'
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        # Index 0 is the newest entry; maxlen evicts from the right (oldest)
        self._entries: deque[JobExecution] = deque(maxlen=max_entries)

    @classmethod
    def from_records(
        cls,
        records: Iterable[JobExecution],
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> ExecutionLog:
        """Rebuild from persisted records in stored (newest-first) order."""
        log = cls(max_entries=max_entries)
        log.restore(records)
        return log

    def restore(self, records: Iterable[JobExecution]) -> None:
        """Replace the contents with persisted records (newest first).

        Records past the bound are the oldest and are dropped.
        """
        self._entries.clear()
        for record in records:
            if len(self._entries) >= self.max_entries:
                break
            self._entries.append(record)

    def append(self, execution: JobExecution) -> JobExecution:
        """Insert at the head, evicting the oldest entry past the bound."""
        self._entries.appendleft(execution)
        return execution

    def record(
        self,
        job_id: str,
        job_name: str,
        *,
        executed_at: datetime,
        duration_ms: float,
    ) -> JobExecution:
        """Build and append a successful execution of ``job_name``."""
        return self.append(
            JobExecution(
                id=new_id(),
                job_id=job_id,
                job_name=job_name,
                executed_at=executed_at,
                status=ExecutionStatus.SUCCESS.value,
                output=hello_output(job_name),
                duration_ms=duration_ms,
            )
        )

    def list(self) -> list[JobExecution]:
        """All entries, newest first."""
        return list(self._entries)

    def list_for_job(self, job_id: str) -> list[JobExecution]:
        """Entries for one job, newest first."""
        return [e for e in self._entries if e.job_id == job_id]

    def clear(self) -> None:
        self._entries.clear()

    def stats(self, job_id: str) -> ExecutionStats:
        """Aggregate counts and average duration for one job."""
        entries = self.list_for_job(job_id)
        if not entries:
            return ExecutionStats()
        return ExecutionStats(
            count=len(entries),
            success_count=sum(1 for e in entries if e.status == ExecutionStatus.SUCCESS.value),
            failed_count=sum(1 for e in entries if e.status == ExecutionStatus.FAILED.value),
            last_execution_time=entries[0].executed_at,
            average_duration_ms=sum(e.duration_ms for e in entries) / len(entries),
        )

    def __len__(self) -> int:
        return len(self._entries)


def simulated_duration_ms(
    rng: random.Random,
    low_ms: float = 500.0,
    high_ms: float = 1500.0,
) -> float:
    """Simulated execution duration, uniform in ``[low_ms, high_ms]``."""
    return rng.uniform(low_ms, high_ms)
