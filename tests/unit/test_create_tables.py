"""Tests for the DynamoDB table script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from create_tables import create_tables  # noqa: E402


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTables:
    def test_creates_job_and_entity_tables(self, ddb):
        created = create_tables(ddb, suffix="-test")
        client = boto3.client("dynamodb", region_name="us-east-1")
        tables = client.list_tables()["TableNames"]
        assert sorted(tables) == ["ferry-entities-test", "ferry-import-jobs-test"]
        assert sorted(created) == sorted(tables)

    def test_idempotent_skips_existing(self, ddb):
        create_tables(ddb, suffix="-test")
        assert create_tables(ddb, suffix="-test") == []
        client = boto3.client("dynamodb", region_name="us-east-1")
        assert len(client.list_tables()["TableNames"]) == 2

    def test_jobs_table_has_recent_jobs_index(self, ddb):
        create_tables(ddb, suffix="-test")
        client = boto3.client("dynamodb", region_name="us-east-1")
        table = client.describe_table(TableName="ferry-import-jobs-test")["Table"]
        [index] = table["GlobalSecondaryIndexes"]
        assert index["IndexName"] == "recent-jobs"
        assert [k["AttributeName"] for k in index["KeySchema"]] == ["recordType", "createdAt"]
        entities = client.describe_table(TableName="ferry-entities-test")["Table"]
        assert "GlobalSecondaryIndexes" not in entities
