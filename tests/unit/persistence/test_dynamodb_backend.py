"""Unit tests for the DynamoDB job store and entity repository using moto."""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from ferry.core.exceptions import JobNotFoundError, StoreError
from ferry.models.job import ImportJob, ImportStatus, ImportTarget
from ferry.persistence.dynamodb_backend import DynamoDBEntityRepository, DynamoDBJobStore

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "scripts"))

from create_tables import create_tables  # noqa: E402

TABLE_SUFFIX = "-test"
REGION = "us-east-1"


@pytest.fixture
def aws():
    with mock_aws():
        create_tables(boto3.resource("dynamodb", region_name=REGION), suffix=TABLE_SUFFIX)
        yield


@pytest.fixture
def job_store(aws):
    return DynamoDBJobStore(table_suffix=TABLE_SUFFIX, region=REGION)


@pytest.fixture
def repository(aws):
    return DynamoDBEntityRepository(table_suffix=TABLE_SUFFIX, region=REGION)


class TestJobStore:
    def test_save_and_get(self, job_store):
        job = ImportJob(target=ImportTarget.PROJECTS, file_name="projects.csv")
        job.status = ImportStatus.MAPPING
        job_store.save(job)
        loaded = job_store.get(job.id)
        assert loaded.status == ImportStatus.MAPPING
        assert loaded.target == ImportTarget.PROJECTS
        assert loaded.created_at == job.created_at

    def test_get_missing_raises(self, job_store):
        with pytest.raises(JobNotFoundError):
            job_store.get("missing")

    def test_list_recent_newest_first(self, job_store):
        first = ImportJob(target=ImportTarget.CLIENTS)
        second = ImportJob(target=ImportTarget.CLIENTS, created_at=first.created_at + timedelta(seconds=5))
        job_store.save(first)
        job_store.save(second)
        assert [j.id for j in job_store.list_recent(limit=1)] == [second.id]
        assert len(job_store.list_recent()) == 2

    def test_list_recent_reads_the_index_without_scanning(self, job_store, monkeypatch):
        base = ImportJob(target=ImportTarget.CLIENTS).created_at
        jobs = [
            ImportJob(target=ImportTarget.CLIENTS, created_at=base + timedelta(seconds=i))
            for i in range(3)
        ]
        for job in jobs:
            job_store.save(job)

        def no_scan(**kwargs):
            raise AssertionError("list_recent must not scan the jobs table")

        monkeypatch.setattr(job_store._table, "scan", no_scan)
        assert [j.id for j in job_store.list_recent(limit=2)] == [jobs[2].id, jobs[1].id]
        assert job_store.list_recent(limit=0) == []

    def test_saved_item_carries_index_keys(self, job_store):
        job = ImportJob(target=ImportTarget.CLIENTS)
        job_store.save(job)
        item = job_store._table.get_item(Key={"PK": f"JOB#{job.id}", "SK": "STATE"})["Item"]
        assert item["recordType"] == "IMPORT_JOB"
        assert item["createdAt"] == job.created_at.isoformat()

    def test_delete(self, job_store):
        job = ImportJob(target=ImportTarget.CLIENTS)
        job_store.save(job)
        job_store.delete(job.id)
        with pytest.raises(JobNotFoundError):
            job_store.get(job.id)

    def test_missing_table_wraps_client_error(self, aws):
        store = DynamoDBJobStore(table_suffix="-absent", region=REGION)
        with pytest.raises(StoreError):
            store.save(ImportJob(target=ImportTarget.CLIENTS))


class TestEntityRepository:
    def test_create_stores_fields_with_numbers(self, repository):
        record_id = repository.create("projects", {"name": "Deck", "budget": 1500.5, "address": {"city": "Austin"}})
        stored = repository.get("projects", record_id)
        assert stored == {"name": "Deck", "budget": 1500.5, "address": {"city": "Austin"}}

    def test_records_are_partitioned_by_target(self, repository):
        a = repository.create("clients", {"displayName": "Ada"})
        repository.create("projects", {"name": "Deck"})
        assert repository.list_ids("clients") == [a]

    def test_delete_removes_record(self, repository):
        record_id = repository.create("clients", {"displayName": "Ada"})
        repository.delete("clients", record_id)
        assert repository.get("clients", record_id) is None

    def test_delete_missing_record_raises(self, repository):
        with pytest.raises(StoreError):
            repository.delete("clients", "not-there")
