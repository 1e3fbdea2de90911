"""Timer backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMER BACKEND PROTOCOL                                                       │
│                                                                               │
│  The engine never sleeps and never reads the wall clock directly. A backend  │
│  supplies both:                                                               │
│                                                                               │
│   ┌──────────────────────┐   now()            ┌──────────────────────┐       │
│   │  AsyncioTimerBackend │ ◄───────────────── │  SchedulingEngine    │       │
│   │  (event loop)        │   call_later(d,cb) │                      │       │
│   └──────────────────────┘ ◄───────────────── │  - recurrence        │       │
│                                               │  - registry          │       │
│   ┌──────────────────────┐                    │  - execution log     │       │
│   │  ManualTimerBackend  │ ◄───────────────── │                      │       │
│   │  (virtual clock)     │                    └──────────────────────┘       │
│   └──────────────────────┘                                                    │
│                                                                               │
│  Contract:                                                                    │
│  - call_later returns immediately with a handle                              │
│  - callbacks run one at a time on a single loop                              │
│  - handle.cancel() is synchronous: a cancelled callback never runs           │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

TimerCallback = Callable[[], None]


@runtime_checkable
class TimerHandle(Protocol):
    """Pending one-shot timer."""

    def cancel(self) -> None:
        """Release the timer; its callback will not run afterwards."""
        ...

    def cancelled(self) -> bool:
        ...


@runtime_checkable
class TimerBackend(Protocol):
    """Protocol for pluggable timer backends.

    Implementations:
        - AsyncioTimerBackend: asyncio event loop (default)
        - ManualTimerBackend: virtual clock advanced explicitly (tests, simulation)
    """

    name: str

    def now(self) -> datetime:
        """Current time as seen by this backend."""
        ...

    def call_later(self, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        """Arm a one-shot timer running ``callback`` after ``delay_seconds``."""
        ...

    def health(self) -> dict[str, Any]:
        """Return backend health status.

        Returns:
            dict with at least:
                - healthy: bool
                - backend: str
                - pending: int, timers armed and not yet fired or cancelled
        """
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    pending: int = 0
    fired: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "pending": self.pending,
            "fired": self.fired,
            **self.extra,
        }
