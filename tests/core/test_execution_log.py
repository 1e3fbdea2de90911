"""Tests for cadence.core.execution_log - bounded newest-first history."""

import random
from datetime import UTC, datetime, timedelta

import pytest

from cadence.core.execution_log import (
    DEFAULT_MAX_ENTRIES,
    ExecutionLog,
    hello_output,
    simulated_duration_ms,
)
from cadence.core.models import ExecutionStats, JobExecution

T0 = datetime(2026, 3, 4, 10, 0, tzinfo=UTC)


def _record(log, n, job_id="j1", name="Ping"):
    return log.record(job_id, name, executed_at=T0 + timedelta(minutes=n), duration_ms=float(n))


class TestExecutionLog:
    def test_rejects_zero_bound(self):
        with pytest.raises(ValueError):
            ExecutionLog(0)

    def test_record_builds_success_entry(self):
        log = ExecutionLog()
        execution = log.record("j1", "Backup", executed_at=T0, duration_ms=700.0)
        assert execution.status == "success"
        assert execution.output == hello_output("Backup") == "Hello World from Backup!"
        assert execution.id
        assert len(log) == 1

    def test_newest_first(self):
        log = ExecutionLog()
        first = _record(log, 1)
        second = _record(log, 2)
        assert log.list() == [second, first]

    def test_bound_keeps_exact_last_entries_in_order(self):
        log = ExecutionLog()
        records = [_record(log, n) for n in range(150)]

        assert DEFAULT_MAX_ENTRIES == 100
        assert len(log) == 100
        assert log.list() == list(reversed(records[50:]))

    def test_list_for_job(self):
        log = ExecutionLog()
        _record(log, 1, job_id="a")
        b = _record(log, 2, job_id="b")
        _record(log, 3, job_id="a")
        assert [e.job_id for e in log.list_for_job("a")] == ["a", "a"]
        assert log.list_for_job("b") == [b]

    def test_list_is_a_copy(self):
        log = ExecutionLog()
        _record(log, 1)
        log.list().clear()
        assert len(log) == 1

    def test_clear(self):
        log = ExecutionLog()
        _record(log, 1)
        log.clear()
        assert log.list() == []


class TestRestore:
    def test_from_records_keeps_stored_order(self):
        records = [
            JobExecution(id=f"e{n}", job_id="j1", job_name="Ping", executed_at=T0 - timedelta(minutes=n))
            for n in range(5)
        ]
        log = ExecutionLog.from_records(records)
        assert log.list() == records

    def test_restore_truncates_oldest_past_bound(self):
        records = [
            JobExecution(id=f"e{n}", job_id="j1", job_name="Ping", executed_at=T0)
            for n in range(10)
        ]
        log = ExecutionLog.from_records(records, max_entries=3)
        assert [e.id for e in log.list()] == ["e0", "e1", "e2"]

    def test_restore_replaces_contents(self):
        log = ExecutionLog()
        _record(log, 1)
        log.restore([])
        assert len(log) == 0


class TestStats:
    def test_empty(self):
        assert ExecutionLog().stats("none") == ExecutionStats()

    def test_aggregates(self):
        log = ExecutionLog()
        _record(log, 2)
        _record(log, 4)
        _record(log, 9, job_id="other")
        stats = log.stats("j1")
        assert stats.count == 2
        assert stats.success_count == 2
        assert stats.failed_count == 0
        assert stats.last_execution_time == T0 + timedelta(minutes=4)
        assert stats.average_duration_ms == 3.0


class TestSimulatedDuration:
    def test_within_range(self):
        rng = random.Random(0)
        for _ in range(50):
            assert 500.0 <= simulated_duration_ms(rng) <= 1500.0
