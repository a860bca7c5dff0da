"""Redis job store implementing IJobStore."""

from __future__ import annotations

import redis

from ferry.core.exceptions import CacheError, JobNotFoundError
from ferry.models.job import ImportJob

RECENT_KEY = "import_jobs:recent"


def job_key(job_id: str) -> str:
    return f"import_job:{job_id}"


class RedisJobStore:
    """IJobStore backed by Redis: one JSON value per job plus a recency index."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 ttl: int = 7 * 24 * 3600) -> None:
        self._ttl = ttl
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def save(self, job: ImportJob) -> None:
        try:
            self._client.setex(job_key(job.id), self._ttl, job.model_dump_json())
            self._client.zadd(RECENT_KEY, {job.id: job.created_at.timestamp()})
        except Exception as exc:
            raise CacheError(f"Redis save failed for job={job.id!r}: {exc}") from exc

    def get(self, job_id: str) -> ImportJob:
        try:
            raw = self._client.get(job_key(job_id))
        except Exception as exc:
            raise CacheError(f"Redis GET failed for job={job_id!r}: {exc}") from exc
        if raw is None:
            raise JobNotFoundError(f"No import job {job_id!r}")
        return ImportJob.model_validate_json(raw)

    def list_recent(self, limit: int = 10) -> list[ImportJob]:
        try:
            ids = self._client.zrevrange(RECENT_KEY, 0, -1)
            jobs: list[ImportJob] = []
            for job_id in ids:
                raw = self._client.get(job_key(job_id))
                if raw is None:
                    self._client.zrem(RECENT_KEY, job_id)  # expired
                    continue
                jobs.append(ImportJob.model_validate_json(raw))
                if len(jobs) >= limit:
                    break
            return jobs
        except Exception as exc:
            raise CacheError(f"Redis list of recent jobs failed: {exc}") from exc

    def delete(self, job_id: str) -> None:
        try:
            self._client.delete(job_key(job_id))
            self._client.zrem(RECENT_KEY, job_id)
        except Exception as exc:
            raise CacheError(f"Redis DELETE failed for job={job_id!r}: {exc}") from exc
