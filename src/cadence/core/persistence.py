"""JSON file persistence for the job list and the execution log.

Two files under ``data_dir``:

    jobs.json        [ Job.to_dict(), ... ]            host order
    executions.json  [ JobExecution.to_dict(), ... ]   newest first

Timestamps are ISO-8601 strings and are parsed back into datetimes on load.
Writes go to a temp file in the same directory and are then renamed over
the target, so a crash mid-write leaves the previous file intact.

Corrupt state:
    - executions.json: recovered locally, logged, treated as empty
    - jobs.json: raises PersistedStateCorruptError; discarding job
      definitions silently would lose them on the next save
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from cadence.core.errors import PersistedStateCorruptError, StorageError
from cadence.core.models import Job, JobExecution

logger = logging.getLogger(__name__)

JOBS_FILE = "jobs.json"
EXECUTIONS_FILE = "executions.json"


class JsonStateStore:
    """Reads and writes job and execution records as JSON arrays."""

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)

    @property
    def jobs_path(self) -> Path:
        return self.data_dir / JOBS_FILE

    @property
    def executions_path(self) -> Path:
        return self.data_dir / EXECUTIONS_FILE

    # === Jobs ===

    def load_jobs(self) -> list[Job]:
        """Load job definitions; empty when the file does not exist.

        Raises:
            PersistedStateCorruptError: file exists but cannot be parsed
        """
        records = self._read_array(self.jobs_path)
        if records is None:
            return []
        try:
            return [Job.from_dict(r) for r in records]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistedStateCorruptError(
                f"Malformed job record in {self.jobs_path}", cause=e
            ).with_context(path=str(self.jobs_path)) from e

    def save_jobs(self, jobs: Iterable[Job]) -> None:
        self._write_array(self.jobs_path, [j.to_dict() for j in jobs])

    # === Executions ===

    def load_executions(self) -> list[JobExecution]:
        """Load the execution log; a missing or corrupt file yields []."""
        try:
            records = self._read_array(self.executions_path)
            if records is None:
                return []
            return [JobExecution.from_dict(r) for r in records]
        except PersistedStateCorruptError as e:
            logger.warning(f"Discarding corrupt execution log: {e.message}")
            return []
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding execution log with malformed record: {e}")
            return []

    def save_executions(self, executions: Iterable[JobExecution]) -> None:
        self._write_array(self.executions_path, [e.to_dict() for e in executions])

    def clear_executions(self) -> None:
        self.executions_path.unlink(missing_ok=True)

    # === File helpers ===

    def _read_array(self, path: Path) -> list[dict[str, Any]] | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PersistedStateCorruptError(
                f"Invalid JSON in {path}", cause=e
            ).with_context(path=str(path)) from e
        except OSError as e:
            raise StorageError(f"Cannot read {path}", cause=e).with_context(path=str(path)) from e
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise PersistedStateCorruptError(
                f"Expected a JSON array of records in {path}"
            ).with_context(path=str(path))
        return data

    def _write_array(self, path: Path, records: list[dict[str, Any]]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(records, fh, indent=2)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {path}", cause=e).with_context(path=str(path)) from e
