"""Tests for cadence.core.scheduling.manual_backend - virtual clock."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from cadence.core.scheduling import ManualTimerBackend, TimerBackend, TimerHandle


class TestManualClock:
    def test_satisfies_protocol(self, backend):
        assert isinstance(backend, TimerBackend)
        assert isinstance(backend.call_later(1, lambda: None), TimerHandle)

    def test_time_moves_only_on_advance(self, backend, start):
        assert backend.now() == start
        backend.advance(90)
        assert backend.now() == start + timedelta(seconds=90)

    def test_set_now_does_not_fire(self, backend, start):
        calls = []
        backend.call_later(10, lambda: calls.append(1))
        backend.set_now(start + timedelta(hours=1))
        assert calls == []
        assert backend.pending == 1


class TestManualTimers:
    def test_fires_in_due_order_with_ties_in_arming_order(self, backend):
        calls = []
        backend.call_later(30, lambda: calls.append("b"))
        backend.call_later(10, lambda: calls.append("a"))
        backend.call_later(30, lambda: calls.append("c"))

        assert backend.advance(60) == 3
        assert calls == ["a", "b", "c"]

    def test_clock_set_to_due_time_during_callback(self, backend, start):
        seen = []
        backend.call_later(10, lambda: seen.append(backend.now()))
        backend.advance(100)
        assert seen == [start + timedelta(seconds=10)]
        assert backend.now() == start + timedelta(seconds=100)

    def test_timers_armed_by_callbacks_fire_in_same_advance(self, backend):
        calls = []

        def first():
            calls.append("first")
            backend.call_later(5, lambda: calls.append("second"))

        backend.call_later(5, first)
        assert backend.advance(20) == 2
        assert calls == ["first", "second"]

    def test_cancelled_timer_never_fires(self, backend):
        calls = []
        handle = backend.call_later(5, lambda: calls.append(1))
        handle.cancel()
        assert handle.cancelled() is True
        assert backend.advance(10) == 0
        assert calls == []
        assert backend.pending == 0

    def test_negative_delay_is_due_now(self, backend, start):
        calls = []
        backend.call_later(-5, lambda: calls.append(backend.now()))
        backend.advance(0)
        assert calls == [start]

    def test_next_due(self, backend, start):
        assert backend.next_due() is None
        backend.call_later(20, lambda: None)
        early = backend.call_later(10, lambda: None)
        assert backend.next_due() == start + timedelta(seconds=10)
        early.cancel()
        assert backend.next_due() == start + timedelta(seconds=20)

    def test_advance_to(self, backend):
        calls = []
        backend.call_later(3600, lambda: calls.append(1))
        target = datetime(2026, 3, 4, 11, 45, tzinfo=UTC)
        assert backend.advance_to(target) == 1
        assert backend.now() == target

    def test_cancelled_timers_are_dropped_from_queue(self, backend):
        survivor_fired = []
        backend.call_later(3600, lambda: survivor_fired.append(True))
        for _ in range(1000):
            backend.call_later(60, lambda: None).cancel()
        assert backend.pending == 1
        assert backend.health()["queued"] < 100
        backend.advance(3600)
        assert survivor_fired == [True]


class TestManualZones:
    def test_delay_is_elapsed_time_across_dst(self):
        new_york = ZoneInfo("America/New_York")
        backend = ManualTimerBackend(datetime(2026, 3, 8, 1, 30, tzinfo=new_york))
        timer = backend.call_later(3600, lambda: None)
        assert timer.due.replace(tzinfo=None) == datetime(2026, 3, 8, 3, 30)
        assert timer.due.utcoffset() == timedelta(hours=-4)

    def test_advance_keeps_zone(self):
        new_york = ZoneInfo("America/New_York")
        backend = ManualTimerBackend(datetime(2026, 11, 1, 0, 30, tzinfo=new_york))
        backend.advance(2 * 3600)
        assert backend.now().tzinfo is new_york
        assert backend.now().astimezone(UTC) == datetime(2026, 11, 1, 6, 30, tzinfo=UTC)


class TestManualHealth:
    def test_health(self, backend):
        backend.call_later(5, lambda: None)
        backend.call_later(50, lambda: None)
        backend.advance(10)
        h = backend.health()
        assert h["healthy"] is True
        assert h["backend"] == "manual"
        assert h["pending"] == 1
        assert h["fired"] == 1
        assert h["now"] == backend.now().isoformat()
        assert h["queued"] == 1
