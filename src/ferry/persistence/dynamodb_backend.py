"""DynamoDB backends: import job store and entity repository."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ferry.core.exceptions import JobNotFoundError, StoreError
from ferry.models.job import ImportJob, utcnow

JOBS_TABLE = "ferry-import-jobs"
ENTITIES_TABLE = "ferry-entities"
RECENT_JOBS_INDEX = "recent-jobs"
JOB_RECORD_TYPE = "IMPORT_JOB"


def _to_dynamodb(obj: Any) -> Any:
    """Convert floats to Decimal, which is the only number type DynamoDB takes."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _decode_decimals(obj: Any) -> Any:
    """Convert Decimal values in a DynamoDB item back to int/float."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _decode_decimals(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decode_decimals(i) for i in obj]
    return obj


def _resource(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


class DynamoDBJobStore:
    """IJobStore backed by DynamoDB (PK=JOB#{id}, SK=STATE).

    The job body is stored as JSON so timestamps and nested models survive
    without Decimal conversion. ``recordType`` and ``createdAt`` feed the
    ``recent-jobs`` index that ``list_recent`` queries.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table = _resource(region, endpoint_url).Table(f"{JOBS_TABLE}{table_suffix}")

    def save(self, job: ImportJob) -> None:
        try:
            self._table.put_item(Item={
                "PK": f"JOB#{job.id}",
                "SK": "STATE",
                "recordType": JOB_RECORD_TYPE,
                "status": job.status.value,
                "target": job.target.value,
                "createdAt": job.created_at.isoformat(),
                "body": job.model_dump_json(),
            })
        except ClientError as exc:
            raise StoreError(f"DynamoDB save failed for job {job.id!r}: {exc}") from exc

    def get(self, job_id: str) -> ImportJob:
        try:
            resp = self._table.get_item(Key={"PK": f"JOB#{job_id}", "SK": "STATE"})
        except ClientError as exc:
            raise StoreError(f"DynamoDB get failed for job {job_id!r}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            raise JobNotFoundError(f"No import job {job_id!r}")
        return ImportJob.model_validate_json(item["body"])

    def list_recent(self, limit: int = 10) -> list[ImportJob]:
        if limit <= 0:
            return []
        try:
            resp = self._table.query(
                IndexName=RECENT_JOBS_INDEX,
                KeyConditionExpression="recordType = :rt",
                ExpressionAttributeValues={":rt": JOB_RECORD_TYPE},
                ScanIndexForward=False,
                Limit=limit,
            )
        except ClientError as exc:
            raise StoreError(f"DynamoDB query on {RECENT_JOBS_INDEX} failed: {exc}") from exc
        return [ImportJob.model_validate_json(i["body"]) for i in resp.get("Items", [])]

    def delete(self, job_id: str) -> None:
        try:
            self._table.delete_item(Key={"PK": f"JOB#{job_id}", "SK": "STATE"})
        except ClientError as exc:
            raise StoreError(f"DynamoDB delete failed for job {job_id!r}: {exc}") from exc


class DynamoDBEntityRepository:
    """IEntityRepository backed by DynamoDB (PK=TARGET#{target}, SK=ENTITY#{id})."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table = _resource(region, endpoint_url).Table(f"{ENTITIES_TABLE}{table_suffix}")

    def create(self, target: str, fields: dict[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        try:
            self._table.put_item(
                Item={
                    "PK": f"TARGET#{target}",
                    "SK": f"ENTITY#{record_id}",
                    "importedAt": utcnow().isoformat(),
                    "fields": _to_dynamodb(fields),
                },
                ConditionExpression="attribute_not_exists(SK)",
            )
        except ClientError as exc:
            raise StoreError(f"DynamoDB create failed for {target!r}: {exc}") from exc
        return record_id

    def delete(self, target: str, record_id: str) -> None:
        try:
            self._table.delete_item(
                Key={"PK": f"TARGET#{target}", "SK": f"ENTITY#{record_id}"},
                ConditionExpression="attribute_exists(SK)",
            )
        except ClientError as exc:
            raise StoreError(
                f"DynamoDB delete failed for {target!r} record {record_id!r}: {exc}"
            ) from exc

    def get(self, target: str, record_id: str) -> dict[str, Any] | None:
        resp = self._table.get_item(Key={"PK": f"TARGET#{target}", "SK": f"ENTITY#{record_id}"})
        item = resp.get("Item")
        return _decode_decimals(item["fields"]) if item else None

    def list_ids(self, target: str) -> list[str]:
        resp = self._table.query(
            KeyConditionExpression="PK = :pk",
            ExpressionAttributeValues={":pk": f"TARGET#{target}"},
        )
        return [item["SK"].split("#", 1)[1] for item in resp.get("Items", [])]
