"""Integration tests for the DynamoDB backends against LocalStack."""

from __future__ import annotations

import pytest

from ferry.models.job import ImportJob, ImportStatus, ImportTarget
from ferry.orchestrator.import_runner import ImportOrchestrator
from ferry.persistence.dynamodb_backend import DynamoDBEntityRepository, DynamoDBJobStore
from tests.integration.conftest import LOCALSTACK_URL, skip_no_localstack


@skip_no_localstack
class TestDynamoDBIntegration:
    @pytest.fixture
    def job_store(self, ferry_tables):
        return DynamoDBJobStore(
            table_suffix=ferry_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    @pytest.fixture
    def repository(self, ferry_tables):
        return DynamoDBEntityRepository(
            table_suffix=ferry_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    def test_job_round_trip(self, job_store):
        job = ImportJob(target=ImportTarget.CLIENTS, file_name="clients.csv")
        job_store.save(job)
        assert job_store.get(job.id).file_name == "clients.csv"
        job_store.delete(job.id)

    def test_import_then_rollback(self, repository, job_store):
        orchestrator = ImportOrchestrator.create(
            "clients", repository=repository, job_store=job_store, file_name="clients.csv",
        )
        orchestrator.upload("Client Name,Email\nAda,ada@example.com\nBob,bob@example.com\n")
        orchestrator.confirm_mappings()
        job = orchestrator.run_import()
        assert job.status == ImportStatus.COMPLETED
        ids = list(job.created_record_ids)
        assert repository.get("clients", ids[0])["displayName"] == "Ada"

        orchestrator.rollback()
        assert job_store.get(job.id).status == ImportStatus.ROLLED_BACK
        assert all(repository.get("clients", rid) is None for rid in ids)
