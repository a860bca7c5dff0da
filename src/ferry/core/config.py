"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class ImportConfig(BaseSettings):
    """Import pipeline tuning."""

    model_config = {"env_prefix": "FERRY_IMPORT_"}

    batch_size: int = 500
    mapping_threshold: float = 0.5
    repository_timeout_seconds: float = 10.0
    # How long a failed run waits for timed-out calls that were already running.
    late_result_grace_seconds: float = 30.0
    delimiter_sample_lines: int = 5
    max_file_bytes: int = 10 * 1024 * 1024
    recent_jobs_limit: int = 10


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "FERRY_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis job-state store configuration."""

    model_config = {"env_prefix": "FERRY_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    job_ttl_seconds: int = 7 * 24 * 3600


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "FERRY_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    persistence_backend: Literal["memory", "dynamodb", "redis"] = "memory"

    imports: ImportConfig = ImportConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
