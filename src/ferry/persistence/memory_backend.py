"""In-memory backends for unit tests and local runs, dict-backed."""

from __future__ import annotations

import time
import uuid
from copy import deepcopy
from typing import Any

from ferry.core.exceptions import JobNotFoundError
from ferry.models.job import ImportJob


class MemoryEntityRepository:
    """Dict-backed IEntityRepository with optional failure injection.

    ``fail_on_create`` makes the N-th create call (1-based) raise;
    ``fail_on_delete`` lists record ids whose delete raises;
    ``create_delay`` and ``delete_delay`` slow every call, for timeout tests.
    """

    def __init__(
        self,
        fail_on_create: int | None = None,
        fail_on_delete: set[str] | None = None,
        create_delay: float = 0.0,
        delete_delay: float = 0.0,
    ) -> None:
        self._records: dict[str, dict[str, dict[str, Any]]] = {}
        self.fail_on_create = fail_on_create
        self.fail_on_delete = set(fail_on_delete or ())
        self.create_delay = create_delay
        self.delete_delay = delete_delay
        self.create_calls = 0
        self.delete_calls: list[str] = []

    def create(self, target: str, fields: dict[str, Any]) -> str:
        self.create_calls += 1
        if self.fail_on_create is not None and self.create_calls == self.fail_on_create:
            raise RuntimeError(f"simulated create failure on call {self.create_calls}")
        if self.create_delay:
            time.sleep(self.create_delay)
        record_id = uuid.uuid4().hex
        self._records.setdefault(target, {})[record_id] = deepcopy(fields)
        return record_id

    def delete(self, target: str, record_id: str) -> None:
        self.delete_calls.append(record_id)
        if record_id in self.fail_on_delete:
            raise RuntimeError(f"simulated delete failure for {record_id}")
        if self.delete_delay:
            time.sleep(self.delete_delay)
        del self._records[target][record_id]

    def get(self, target: str, record_id: str) -> dict[str, Any]:
        return self._records[target][record_id]

    def count(self, target: str) -> int:
        return len(self._records.get(target, {}))

    def all(self, target: str) -> list[dict[str, Any]]:
        return list(self._records.get(target, {}).values())


class MemoryJobStore:
    """Dict-backed IJobStore; stores copies so callers cannot mutate saved state."""

    def __init__(self) -> None:
        self._jobs: dict[str, ImportJob] = {}

    def save(self, job: ImportJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)

    def get(self, job_id: str) -> ImportJob:
        try:
            return self._jobs[job_id].model_copy(deep=True)
        except KeyError as exc:
            raise JobNotFoundError(f"No import job {job_id!r}") from exc

    def list_recent(self, limit: int = 10) -> list[ImportJob]:
        jobs = sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)
        return [j.model_copy(deep=True) for j in jobs[:limit]]

    def delete(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)
