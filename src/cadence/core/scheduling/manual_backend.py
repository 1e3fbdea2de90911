"""Virtual-clock timer backend.

Time only moves when ``advance()`` / ``advance_to()`` is called. Due timers
fire in due-time order (ties in arming order), and the clock is set to each
timer's due time before its callback runs, so callbacks that arm further
timers see a consistent ``now()``. Used for deterministic tests and for
simulating hours of schedule activity instantly.

Example:
    >>> backend = ManualTimerBackend(datetime(2026, 3, 4, 10, 45, tzinfo=UTC))
    >>> backend.call_later(60, lambda: print("one minute later"))
    >>> backend.advance(120)
    one minute later
    1
"""

from __future__ import annotations

import heapq
import itertools
from datetime import UTC, datetime, timedelta
from typing import Any

from .protocol import BackendHealth, TimerCallback

# Rebuild the heap once this many entries are queued and most are dead
_COMPACT_MIN = 64


def _shift(moment: datetime, seconds: float) -> datetime:
    """``moment`` plus elapsed seconds, shifted in UTC so DST changes count as real time."""
    return (moment.astimezone(UTC) + timedelta(seconds=seconds)).astimezone(moment.tzinfo)


class _ManualTimer:
    __slots__ = ("due", "_callback", "_cancelled", "_fired")

    def __init__(self, due: datetime, callback: TimerCallback) -> None:
        self.due = due
        self._callback = callback
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def live(self) -> bool:
        return not (self._cancelled or self._fired)

    def fire(self) -> None:
        self._fired = True
        self._callback()


class ManualTimerBackend:
    """Timer backend driven by an explicitly advanced virtual clock."""

    name = "manual"

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._queue: list[tuple[datetime, int, _ManualTimer]] = []
        self._seq = itertools.count()
        self._fired = 0

    def now(self) -> datetime:
        return self._now

    def set_now(self, moment: datetime) -> None:
        """Move the clock without firing anything (simulates clock drift)."""
        self._now = moment

    def call_later(self, delay_seconds: float, callback: TimerCallback) -> _ManualTimer:
        due = _shift(self._now, max(0.0, delay_seconds))
        timer = _ManualTimer(due, callback)
        self._compact()
        heapq.heappush(self._queue, (due.astimezone(UTC), next(self._seq), timer))
        return timer

    def _compact(self) -> None:
        if len(self._queue) < _COMPACT_MIN:
            return
        live = [entry for entry in self._queue if entry[2].live]
        if len(live) * 2 < len(self._queue):
            heapq.heapify(live)
            self._queue = live

    def advance(self, seconds: float) -> int:
        """Advance the clock by ``seconds``; returns the number of timers fired."""
        return self.advance_to(_shift(self._now, seconds))

    def advance_to(self, target: datetime) -> int:
        """Fire every live timer due at or before ``target``, in order."""
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            _, _, timer = heapq.heappop(self._queue)
            if not timer.live:
                continue
            if timer.due.astimezone(UTC) > self._now.astimezone(UTC):
                self._now = timer.due
            timer.fire()
            self._fired += 1
            fired += 1
        if target.astimezone(UTC) > self._now.astimezone(UTC):
            self._now = target
        return fired

    def next_due(self) -> datetime | None:
        """Due time of the earliest live timer."""
        live = [(key, timer.due) for key, _, timer in self._queue if timer.live]
        return min(live)[1] if live else None

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if timer.live)

    def health(self) -> dict[str, Any]:
        return BackendHealth(
            healthy=True,
            backend=self.name,
            pending=self.pending,
            fired=self._fired,
            extra={"now": self._now.isoformat(), "queued": len(self._queue)},
        ).to_dict()
