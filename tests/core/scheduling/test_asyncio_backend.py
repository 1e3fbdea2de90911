"""Tests for cadence.core.scheduling.asyncio_backend - event-loop timers."""

from __future__ import annotations

import asyncio
from datetime import timedelta, timezone

import pytest

from cadence.core.models import Job, ScheduleConfig
from cadence.core.scheduling import (
    AsyncioTimerBackend,
    BackendHealth,
    SchedulingEngine,
    TimerBackend,
)

pytestmark = pytest.mark.integration


class TestAsyncioBackendInit:
    def test_default_state(self):
        backend = AsyncioTimerBackend()
        assert backend.name == "asyncio"
        assert backend.pending == 0

    def test_satisfies_protocol(self):
        assert isinstance(AsyncioTimerBackend(), TimerBackend)

    def test_unbound_backend_is_unhealthy(self):
        h = AsyncioTimerBackend().health()
        assert h["healthy"] is False
        assert h["backend"] == "asyncio"
        assert h["fired"] == 0

    def test_get_health_returns_backend_health(self):
        assert isinstance(AsyncioTimerBackend().get_health(), BackendHealth)

    def test_now_uses_configured_zone(self):
        zone = timezone(timedelta(hours=9))
        assert AsyncioTimerBackend(zone=zone).now().utcoffset() == timedelta(hours=9)

    def test_now_defaults_to_aware_local_time(self):
        assert AsyncioTimerBackend().now().tzinfo is not None


class TestAsyncioBackendTimers:
    @pytest.mark.asyncio
    async def test_call_later_fires(self):
        backend = AsyncioTimerBackend()
        fired = asyncio.Event()
        backend.call_later(0.01, fired.set)

        assert backend.pending == 1
        await asyncio.wait_for(fired.wait(), timeout=2)
        assert backend.pending == 0
        assert backend.health()["fired"] == 1
        assert backend.health()["healthy"] is True

    @pytest.mark.asyncio
    async def test_cancel(self):
        backend = AsyncioTimerBackend()
        calls = []
        handle = backend.call_later(0.01, lambda: calls.append(1))
        handle.cancel()

        await asyncio.sleep(0.05)
        assert calls == []
        assert handle.cancelled() is True
        assert backend.pending == 0

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        backend = AsyncioTimerBackend()
        calls = []
        for _ in range(3):
            backend.call_later(0.01, lambda: calls.append(1))
        backend.cancel_all()

        await asyncio.sleep(0.05)
        assert calls == []
        assert backend.pending == 0


class TestAsyncioEngine:
    @pytest.mark.asyncio
    async def test_engine_arms_on_loop_and_shutdown_cancels(self):
        backend = AsyncioTimerBackend()
        engine = SchedulingEngine(backend)
        now = backend.now()
        job = Job(
            id="loop-job",
            name="Loop",
            schedule_type="hourly",
            schedule_config=ScheduleConfig(minute=now.minute),
        )

        assert engine.reschedule_all([job]) == ["loop-job"]
        next_run = engine.get_next_run("loop-job")
        assert now < next_run <= now + timedelta(hours=1)
        assert backend.pending == 1
        assert engine.health().healthy is True

        engine.shutdown()
        assert backend.pending == 0

    @pytest.mark.asyncio
    async def test_manual_execute_on_loop(self):
        backend = AsyncioTimerBackend()
        executed = []
        engine = SchedulingEngine(backend, on_execute=lambda job_id, name: executed.append(name))
        done = asyncio.Event()

        backend.call_later(0.01, lambda: (engine.execute("x", "Loop"), done.set()))
        await asyncio.wait_for(done.wait(), timeout=2)

        assert executed == ["Loop"]
        assert engine.execution_log.list()[0].output == "Hello World from Loop!"
