"""Tests for cadence.core.persistence - JSON state files."""

import json
from datetime import UTC, datetime

import pytest

from cadence.core.errors import PersistedStateCorruptError, StorageError
from cadence.core.models import Job, JobExecution, ScheduleConfig
from cadence.core.persistence import JsonStateStore

T0 = datetime(2026, 3, 4, 10, 45, tzinfo=UTC)

pytestmark = pytest.mark.integration


@pytest.fixture
def store(tmp_path) -> JsonStateStore:
    return JsonStateStore(tmp_path / "state")


def _job(job_id="j1", **kwargs) -> Job:
    return Job(
        id=job_id,
        name=kwargs.pop("name", "Backup"),
        schedule_type=kwargs.pop("schedule_type", "daily"),
        schedule_config=kwargs.pop("schedule_config", ScheduleConfig(time="09:00")),
        created_at=T0,
        **kwargs,
    )


class TestJobs:
    def test_missing_file_is_empty(self, store):
        assert store.load_jobs() == []

    def test_round_trip_preserves_order(self, store):
        jobs = [_job("b"), _job("a", next_run=T0, execution_count=2)]
        store.save_jobs(jobs)
        assert store.load_jobs() == jobs

    def test_timestamps_are_iso_strings_on_disk(self, store):
        store.save_jobs([_job(last_run=T0)])
        raw = json.loads(store.jobs_path.read_text())
        assert raw[0]["last_run"] == "2026-03-04T10:45:00+00:00"
        assert raw[0]["schedule_config"] == {"time": "09:00"}

    def test_invalid_json_raises(self, store):
        store.data_dir.mkdir(parents=True)
        store.jobs_path.write_text("{not json")
        with pytest.raises(PersistedStateCorruptError) as exc_info:
            store.load_jobs()
        assert exc_info.value.context.path == str(store.jobs_path)

    def test_non_array_raises(self, store):
        store.data_dir.mkdir(parents=True)
        store.jobs_path.write_text('{"id": "j1"}')
        with pytest.raises(PersistedStateCorruptError):
            store.load_jobs()

    def test_malformed_record_raises(self, store):
        store.data_dir.mkdir(parents=True)
        store.jobs_path.write_text('[{"name": "no id"}]')
        with pytest.raises(PersistedStateCorruptError, match="Malformed job record"):
            store.load_jobs()

    def test_write_leaves_no_temp_files(self, store):
        store.save_jobs([_job()])
        store.save_jobs([_job(), _job("j2")])
        assert sorted(p.name for p in store.data_dir.iterdir()) == ["jobs.json"]

    def test_unwritable_location_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = JsonStateStore(blocker / "state")
        with pytest.raises(StorageError):
            store.save_jobs([_job()])


class TestExecutions:
    def test_round_trip(self, store):
        executions = [
            JobExecution(id="e2", job_id="j1", job_name="Backup", executed_at=T0, duration_ms=700.0),
            JobExecution(id="e1", job_id="j1", job_name="Backup", executed_at=T0, duration_ms=900.0),
        ]
        store.save_executions(executions)
        assert store.load_executions() == executions

    def test_missing_file_is_empty(self, store):
        assert store.load_executions() == []

    def test_corrupt_file_is_discarded(self, store):
        store.data_dir.mkdir(parents=True)
        store.executions_path.write_text("[[[")
        assert store.load_executions() == []

    def test_malformed_record_is_discarded(self, store):
        store.data_dir.mkdir(parents=True)
        store.executions_path.write_text('[{"id": "e1"}]')
        assert store.load_executions() == []

    def test_loads_camel_case_records(self, store):
        store.data_dir.mkdir(parents=True)
        store.executions_path.write_text(
            json.dumps(
                [
                    {
                        "id": "e1",
                        "jobId": "j1",
                        "jobName": "Backup",
                        "executedAt": "2026-03-04T10:45:00.000Z",
                        "status": "success",
                        "output": "Hello World from Backup!",
                        "durationMs": 640,
                    }
                ]
            )
        )
        [execution] = store.load_executions()
        assert execution.job_id == "j1"
        assert execution.executed_at == T0
        assert execution.duration_ms == 640.0

    def test_clear(self, store):
        store.save_executions([])
        store.clear_executions()
        assert not store.executions_path.exists()
        store.clear_executions()
