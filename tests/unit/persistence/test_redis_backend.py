"""Unit tests for RedisJobStore using fakeredis."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import fakeredis
import pytest

from ferry.core.exceptions import CacheError, JobNotFoundError
from ferry.models.job import ImportJob, ImportStatus, ImportTarget
from ferry.persistence.redis_backend import RECENT_KEY, RedisJobStore, job_key


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_client(fake_server):
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def store(fake_client):
    with patch("redis.Redis", return_value=fake_client):
        return RedisJobStore(host="localhost", port=6379, db=0, ttl=300)


def _job(**kwargs) -> ImportJob:
    return ImportJob(target=ImportTarget.CLIENTS, **kwargs)


class TestSaveAndGet:
    def test_round_trips_job(self, store):
        job = _job(file_name="clients.csv", total_rows=3)
        store.save(job)
        loaded = store.get(job.id)
        assert loaded.file_name == "clients.csv"
        assert loaded.total_rows == 3
        assert loaded.status == ImportStatus.UPLOADING

    def test_sets_ttl(self, store, fake_client):
        job = _job()
        store.save(job)
        assert 0 < fake_client.ttl(job_key(job.id)) <= 300

    def test_missing_job_raises(self, store):
        with pytest.raises(JobNotFoundError):
            store.get("nope")

    def test_save_overwrites(self, store):
        job = _job()
        store.save(job)
        job.status = ImportStatus.MAPPING
        store.save(job)
        assert store.get(job.id).status == ImportStatus.MAPPING


class TestListRecent:
    def test_newest_first_and_limited(self, store):
        base = _job()
        jobs = [_job(created_at=base.created_at + timedelta(minutes=i)) for i in range(3)]
        for job in jobs:
            store.save(job)
        recent = store.list_recent(limit=2)
        assert [j.id for j in recent] == [jobs[2].id, jobs[1].id]

    def test_drops_expired_entries(self, store, fake_client):
        job = _job()
        store.save(job)
        fake_client.delete(job_key(job.id))
        assert store.list_recent() == []
        assert fake_client.zcard(RECENT_KEY) == 0


class TestDelete:
    def test_removes_job_and_index_entry(self, store, fake_client):
        job = _job()
        store.save(job)
        store.delete(job.id)
        with pytest.raises(JobNotFoundError):
            store.get(job.id)
        assert fake_client.zcard(RECENT_KEY) == 0

    def test_noop_on_missing_job(self, store):
        store.delete("never_existed")  # should not raise


class TestErrorWrapping:
    def test_get_wraps_redis_error(self):
        s = RedisJobStore.__new__(RedisJobStore)
        s._client = None  # will cause AttributeError -> CacheError
        with pytest.raises(CacheError):
            s.get("k")

    def test_save_wraps_redis_error(self):
        s = RedisJobStore.__new__(RedisJobStore)
        s._client = None
        s._ttl = 60
        with pytest.raises(CacheError):
            s.save(_job())
