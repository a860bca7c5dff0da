"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from ferry.core.config import AppSettings
from ferry.core.protocols import IEntityRepository, IJobStore
from ferry.persistence.dynamodb_backend import DynamoDBEntityRepository, DynamoDBJobStore
from ferry.persistence.memory_backend import MemoryEntityRepository, MemoryJobStore
from ferry.persistence.redis_backend import RedisJobStore


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IEntityRepository, IJobStore]:
    """Create wired-up persistence backends from application settings.

    ``memory`` keeps everything in-process; ``dynamodb`` uses DynamoDB for
    both entities and jobs; ``redis`` keeps job state in Redis and entities
    in DynamoDB.

    Returns:
        Tuple of (entity_repository, job_store).
    """
    if settings is None:
        settings = AppSettings()

    if settings.persistence_backend == "memory":
        return MemoryEntityRepository(), MemoryJobStore()

    repository = DynamoDBEntityRepository(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    if settings.persistence_backend == "redis":
        job_store: IJobStore = RedisJobStore(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            ttl=settings.redis.job_ttl_seconds,
        )
    else:
        job_store = DynamoDBJobStore(
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )

    return repository, job_store
