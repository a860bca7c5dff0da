"""Tests for create_persistence wiring."""

from __future__ import annotations

from unittest.mock import patch

import fakeredis
from moto import mock_aws

from ferry.core.config import AppSettings
from ferry.persistence import create_persistence
from ferry.persistence.dynamodb_backend import DynamoDBEntityRepository, DynamoDBJobStore
from ferry.persistence.memory_backend import MemoryEntityRepository, MemoryJobStore
from ferry.persistence.redis_backend import RedisJobStore


def test_memory_backend_by_default():
    repository, job_store = create_persistence(AppSettings())
    assert isinstance(repository, MemoryEntityRepository)
    assert isinstance(job_store, MemoryJobStore)


def test_dynamodb_backend():
    with mock_aws():
        repository, job_store = create_persistence(AppSettings(persistence_backend="dynamodb"))
    assert isinstance(repository, DynamoDBEntityRepository)
    assert isinstance(job_store, DynamoDBJobStore)


def test_redis_backend_keeps_entities_in_dynamodb():
    with mock_aws(), patch("redis.Redis", return_value=fakeredis.FakeRedis(decode_responses=True)):
        repository, job_store = create_persistence(AppSettings(persistence_backend="redis"))
    assert isinstance(repository, DynamoDBEntityRepository)
    assert isinstance(job_store, RedisJobStore)
