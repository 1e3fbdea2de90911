"""Event-loop timer backend.

This is the DEFAULT backend. Timers are ``loop.call_later`` handles on a
single asyncio event loop, so every callback runs on that loop and no two
callbacks ever overlap; the engine needs no locks.

┌──────────────────────────────────────────────────────────────────────┐
│   call_later(delay, cb)                                              │
│      │                                                               │
│      ▼                                                               │
│   loop.call_later(delay, _run) ──► _run(): pending.discard(timer)     │
│      │                                     fired += 1                 │
│      ▼                                     cb()                       │
│   _LoopTimer (cancel → handle.cancel(), pending.discard)             │
└──────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Any

from cadence.core.timestamps import now_in

from .protocol import BackendHealth, TimerCallback

logger = logging.getLogger(__name__)


class _LoopTimer:
    """Handle returned by ``AsyncioTimerBackend.call_later``."""

    __slots__ = ("_backend", "_handle")

    def __init__(self, backend: AsyncioTimerBackend) -> None:
        self._backend = backend
        self._handle: asyncio.TimerHandle | None = None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._backend._pending.discard(self)

    def cancelled(self) -> bool:
        return self._handle is not None and self._handle.cancelled()


class AsyncioTimerBackend:
    """Timer backend bound to one asyncio event loop.

    The loop is captured on first use from the running loop unless one is
    passed explicitly; all timers must then be armed from that loop.

    Example:
        >>> async def main():
        ...     backend = AsyncioTimerBackend()
        ...     backend.call_later(0.5, lambda: print("fired"))
        ...     await asyncio.sleep(1)
    """

    name = "asyncio"

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        zone: tzinfo | None = None,
    ) -> None:
        self._loop = loop
        self._zone = zone
        self._pending: set[_LoopTimer] = set()
        self._fired = 0

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> datetime:
        return now_in(self._zone)

    def call_later(self, delay_seconds: float, callback: TimerCallback) -> _LoopTimer:
        timer = _LoopTimer(self)

        def _run() -> None:
            self._pending.discard(timer)
            self._fired += 1
            callback()

        timer._handle = self.loop.call_later(max(0.0, delay_seconds), _run)
        self._pending.add(timer)
        return timer

    @property
    def pending(self) -> int:
        return len(self._pending)

    def cancel_all(self) -> None:
        """Cancel every pending timer armed through this backend."""
        for timer in list(self._pending):
            timer.cancel()
        logger.debug("AsyncioTimerBackend cancelled all pending timers")

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        """Return structured health status."""
        running = self._loop is not None and not self._loop.is_closed()
        return BackendHealth(
            healthy=running,
            backend=self.name,
            pending=len(self._pending),
            fired=self._fired,
        )
