"""ImportOrchestrator: owns one import job from upload to rollback.

The job object is only mutated here, through the state machine in
``workflow_state``. Every stage saves the job to the injected job store so a
caller can poll it; entities are written only through the injected
repository, one row at a time in ascending row order.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from ferry.catalog.fields import defaults_for
from ferry.core.config import AppSettings
from ferry.core.exceptions import (
    FerryError,
    InvalidTransitionError,
    MappingValidationError,
    ParseError,
    PersistenceError,
    RepositoryTimeoutError,
    StoreError,
)
from ferry.core.protocols import IEntityRepository, IJobStore
from ferry.core.types import JsonDict, ProgressCallback
from ferry.models.field import DataType
from ferry.models.issues import Severity, ValidationIssue
from ferry.models.job import ImportJob, ImportStatus, ImportTarget, RollbackResult, utcnow
from ferry.models.schema_mapping import ColumnMapping, MappingValidation
from ferry.models.table import ParsedTable, ValidatedRow
from ferry.orchestrator.workflow_state import PRE_IMPORT_STATUSES, transition
from ferry.pipeline import column_mapper
from ferry.pipeline.parser import ParseOptions, parse, parse_file
from ferry.pipeline.transforms import row_to_document
from ferry.pipeline.validators import (
    DuplicateGroup,
    duplicate_warnings,
    find_duplicates,
    validate_rows,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ImportOrchestrator:
    """Drives a single ``ImportJob`` through parse, map, validate, import."""

    def __init__(
        self,
        job: ImportJob,
        *,
        repository: IEntityRepository,
        job_store: IJobStore,
        settings: AppSettings | None = None,
    ) -> None:
        self._job = job
        self._repository = repository
        self._jobs = job_store
        self._settings = settings or AppSettings()
        self._table: ParsedTable | None = None
        self._validated: list[ValidatedRow] | None = None
        self._cancelled = False
        self._executor: ThreadPoolExecutor | None = None
        # Timed-out calls that were already running, keyed by row number
        # (creates) or record id (deletes).
        self._late: list[tuple[Any, Future]] = []

    # ---- construction ----

    @classmethod
    def create(
        cls,
        target: ImportTarget | str,
        *,
        repository: IEntityRepository,
        job_store: IJobStore,
        settings: AppSettings | None = None,
        file_name: str = "",
        org_id: str = "",
        user_id: str = "",
    ) -> ImportOrchestrator:
        """Start a new job in ``uploading`` and record it."""
        job = ImportJob(
            target=ImportTarget(target), file_name=file_name, org_id=org_id, user_id=user_id,
        )
        job_store.save(job)
        logger.info("Created import job %s for %s (%s)", job.id, job.target.value, file_name)
        return cls(job, repository=repository, job_store=job_store, settings=settings)

    @classmethod
    def resume(
        cls,
        job_id: str,
        content: str | bytes,
        *,
        repository: IEntityRepository,
        job_store: IJobStore,
        settings: AppSettings | None = None,
        options: ParseOptions | None = None,
    ) -> ImportOrchestrator:
        """Reload a stored job and re-parse its upload, keeping the saved mappings.

        Only meaningful before import starts; later stages need nothing but
        the stored job. The new upload must still carry every mapped column
        at the position it was mapped from.
        """
        job = job_store.get(job_id)
        orchestrator = cls(job, repository=repository, job_store=job_store, settings=settings)
        if job.status in (ImportStatus.MAPPING, ImportStatus.VALIDATING):
            table = orchestrator._parse(content, options)
            if table.fatal:
                raise ParseError("; ".join(issue.message for issue in table.issues))
            missing = [
                m.source_column for m in job.mappings
                if m.is_mapped and not _header_matches(table, m)
            ]
            if missing:
                raise ParseError(
                    f"Re-uploaded file does not match job {job_id}; "
                    f"missing columns: {', '.join(missing)}"
                )
            orchestrator._table = table
            logger.info("Resumed import job %s in %s", job_id, job.status.value)
        return orchestrator

    # ---- accessors ----

    @property
    def job(self) -> ImportJob:
        return self._job

    @property
    def table(self) -> ParsedTable | None:
        return self._table

    @property
    def validated_rows(self) -> list[ValidatedRow]:
        return list(self._validated or [])

    # ---- helpers ----

    def _require(self, status: ImportStatus, requested: ImportStatus) -> None:
        if self._cancelled:
            raise FerryError(f"Import job {self._job.id} was cancelled")
        if self._job.status != status:
            raise InvalidTransitionError(self._job.status.value, requested.value)

    def _save(self) -> None:
        self._job.touch()
        self._jobs.save(self._job)

    def _parse(self, content: str | bytes, options: ParseOptions | None) -> ParsedTable:
        options = options or ParseOptions(
            sample_lines=self._settings.imports.delimiter_sample_lines,
        )
        if isinstance(content, bytes):
            self._job.file_size = len(content)
            return parse_file(
                content, self._job.file_name or "upload.csv", options,
                max_bytes=self._settings.imports.max_file_bytes,
            )
        self._job.file_size = len(content.encode("utf-8"))
        return parse(content, options)

    @contextmanager
    def _repository_calls(self) -> Iterator[None]:
        """One worker thread for every repository call of a run or rollback."""
        if self._settings.imports.repository_timeout_seconds > 0:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"ferry-{self._job.id[:8]}",
            )
        try:
            yield
        finally:
            executor, self._executor = self._executor, None
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)

    def _call_repository(
        self, key: Any, row_number: int, action: str, fn: Callable[..., T], *args: Any,
    ) -> T:
        """Run one repository call under the configured per-call timeout.

        A call that times out while already running cannot be stopped; it is
        remembered under ``key`` so its outcome can be settled later.
        """
        if self._executor is None:
            try:
                return fn(*args)
            except Exception as exc:
                raise PersistenceError(row_number, f"Repository {action} failed: {exc}") from exc

        timeout = self._settings.imports.repository_timeout_seconds
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as exc:
            if not future.cancel():
                self._late.append((key, future))
            raise RepositoryTimeoutError(
                row_number, f"Repository {action} timed out after {timeout}s",
            ) from exc
        except Exception as exc:
            raise PersistenceError(row_number, f"Repository {action} failed: {exc}") from exc

    def _settle_late_calls(self) -> tuple[list[tuple[Any, Any]], int]:
        """Wait out timed-out calls that were still running.

        Returns ``(key, result)`` for each one that went on to succeed, and
        how many were still running when the grace period ran out.
        """
        late, self._late = self._late, []
        if not late:
            return [], 0
        grace = self._settings.imports.late_result_grace_seconds
        _, still_running = wait([future for _, future in late], timeout=grace)
        succeeded = []
        for key, future in late:
            if future in still_running or future.cancelled():
                continue
            if future.exception() is None:
                succeeded.append((key, future.result()))
        return succeeded, len(still_running)

    def _record_late_creates(self) -> None:
        succeeded, unresolved = self._settle_late_calls()
        for row_number, record_id in succeeded:
            logger.warning(
                "Import job %s: row %d was created as %s after its call timed out",
                self._job.id, row_number, record_id,
            )
            self._job.created_record_ids.append(record_id)
            self._job.imported_rows += 1
            self._job.issues.append(ValidationIssue(
                row=row_number,
                message=f"Record {record_id} was created after the repository call timed out",
                severity=Severity.WARNING,
            ))
        if unresolved:
            logger.error(
                "Import job %s: %d create calls still running after the grace period",
                self._job.id, unresolved,
            )
            self._job.issues.append(ValidationIssue(
                row=0,
                message=(
                    f"{unresolved} create calls were still running when the import stopped; "
                    "check the target for records this job does not track"
                ),
                severity=Severity.ERROR,
            ))

    def _fail(self, row_number: int, message: str, *, best_effort: bool = False) -> None:
        self._job.error_message = message
        self._job.issues.append(ValidationIssue(
            row=row_number, message=message, severity=Severity.ERROR,
        ))
        transition(self._job, ImportStatus.FAILED)
        if not best_effort:
            self._save()
            return
        try:
            self._save()
        except StoreError:
            logger.exception("Import job %s: could not save failed status", self._job.id)

    # ---- uploading -> mapping ----

    def upload(self, content: str | bytes, options: ParseOptions | None = None) -> ParsedTable:
        """Parse the upload and propose initial column mappings."""
        self._require(ImportStatus.UPLOADING, ImportStatus.MAPPING)
        try:
            table = self._parse(content, options)
        except ParseError as exc:
            self._job.issues = [ValidationIssue(row=0, message=str(exc), severity=Severity.ERROR)]
            self._job.error_message = str(exc)
            self._save()
            raise

        self._job.issues = list(table.issues)
        if table.fatal:
            message = "; ".join(issue.message for issue in table.issues)
            self._job.error_message = message
            self._save()
            raise ParseError(message)

        self._table = table
        self._job.total_rows = table.row_count
        self._job.mappings = column_mapper.propose_mappings(
            table.headers, self._job.target, threshold=self._settings.imports.mapping_threshold,
        )
        transition(self._job, ImportStatus.MAPPING)
        self._save()
        return table

    # ---- mapping ----

    def update_mapping(
        self, source_column: str, target_field: str, source_index: Optional[int] = None,
    ) -> list[ColumnMapping]:
        """Remap one column; ``source_index`` picks among repeated headers."""
        self._require(ImportStatus.MAPPING, ImportStatus.MAPPING)
        self._job.mappings = column_mapper.update_mapping(
            self._job.mappings, source_column, target_field, self._job.target,
            source_index=source_index,
        )
        self._save()
        return self._job.mappings

    def set_mappings(self, mappings: list[ColumnMapping]) -> None:
        self._require(ImportStatus.MAPPING, ImportStatus.MAPPING)
        self._job.mappings = list(mappings)
        self._save()

    def check_mappings(self) -> MappingValidation:
        return column_mapper.validate_mappings(self._job.mappings, self._job.target)

    def confirm_mappings(self) -> MappingValidation:
        """mapping -> validating, or stay in mapping and raise with the reasons."""
        self._require(ImportStatus.MAPPING, ImportStatus.VALIDATING)
        result = self.check_mappings()
        if not result.ok:
            logger.info("Import job %s mappings blocked: %s", self._job.id, result.reasons)
            raise MappingValidationError(result.reasons)
        transition(self._job, ImportStatus.VALIDATING)
        self._save()
        return result

    # ---- validating ----

    def find_duplicates(self, column: str, index: Optional[int] = None) -> list[DuplicateGroup]:
        if self._table is None:
            return []
        return find_duplicates(self._table.rows, column, index)

    def validate(self, check_duplicates: bool = True) -> list[ValidatedRow]:
        """Validate every row; rows with any error are counted as skipped.

        Row-shape errors from parsing count against the row as well.
        """
        self._require(ImportStatus.VALIDATING, ImportStatus.IMPORTING)
        if self._table is None:
            raise FerryError(
                f"Import job {self._job.id} has no parsed upload to validate; "
                "re-upload the file to resume it"
            )

        validated, _ = validate_rows(self._table.rows, self._job.mappings)

        extra: dict[int, list[ValidationIssue]] = {}
        for issue in self._table.issues:
            if issue.row > 0:
                extra.setdefault(issue.row, []).append(issue)
        if check_duplicates:
            for mapping in self._job.mappings:
                if mapping.is_mapped and mapping.data_type == DataType.EMAIL:
                    groups = find_duplicates(
                        self._table.rows, mapping.source_column, mapping.source_index,
                    )
                    for warning in duplicate_warnings(groups):
                        extra.setdefault(warning.row, []).append(warning)

        for row in validated:
            row.issues = extra.get(row.row_number, []) + row.issues

        header_issues = [issue for issue in self._table.issues if issue.row == 0]
        self._job.issues = header_issues + [issue for row in validated for issue in row.issues]
        self._job.total_rows = len(validated)
        self._job.valid_rows = sum(1 for row in validated if row.is_valid)
        self._job.skipped_rows = self._job.total_rows - self._job.valid_rows
        self._validated = validated
        self._save()
        logger.info(
            "Import job %s validated: %d of %d rows valid",
            self._job.id, self._job.valid_rows, self._job.total_rows,
        )
        return validated

    # ---- validating -> importing -> completed | failed ----

    def build_document(self, row: ValidatedRow) -> JsonDict:
        """Typed fields, target defaults and the job's provenance stamps."""
        document = row_to_document(row.cells, self._job.mappings, row.values)
        for name, value in defaults_for(self._job.target).items():
            document.setdefault(name, value)
        now = utcnow().isoformat()
        document.update({
            "orgId": self._job.org_id,
            "importJobId": self._job.id,
            "createdAt": now,
            "updatedAt": now,
        })
        return document

    def run_import(self, on_progress: Optional[ProgressCallback] = None) -> ImportJob:
        """Persist every valid row in order.

        The first repository failure stops the run and leaves the job
        ``failed``; records created so far stay in ``created_record_ids``
        until an explicit rollback. Any other error (a job store outage at a
        checkpoint, a failing progress callback) also marks the job
        ``failed`` before it propagates.
        """
        self._require(ImportStatus.VALIDATING, ImportStatus.IMPORTING)
        if self._validated is None:
            self.validate()

        rows = [row for row in self._validated or [] if row.is_valid]
        transition(self._job, ImportStatus.IMPORTING)
        self._save()

        target = self._job.target.value
        batch_size = max(1, self._settings.imports.batch_size)
        try:
            with self._repository_calls():
                try:
                    for start in range(0, len(rows), batch_size):
                        for row in rows[start:start + batch_size]:
                            record_id = self._call_repository(
                                row.row_number, row.row_number, "create",
                                self._repository.create, target, self.build_document(row),
                            )
                            self._job.created_record_ids.append(record_id)
                            self._job.imported_rows += 1
                        self._save()
                        if on_progress is not None:
                            on_progress(self._job.imported_rows, len(rows))
                finally:
                    self._record_late_creates()
        except PersistenceError as exc:
            logger.error(
                "Import job %s failed after %d records: %s",
                self._job.id, len(self._job.created_record_ids), exc,
            )
            self._fail(exc.row_number, str(exc))
            return self._job
        except Exception as exc:
            logger.exception(
                "Import job %s interrupted after %d records",
                self._job.id, len(self._job.created_record_ids),
            )
            self._fail(0, f"Import interrupted: {exc}", best_effort=True)
            raise

        transition(self._job, ImportStatus.COMPLETED)
        self._save()
        return self._job

    # ---- rollback / cancel ----

    def rollback(self) -> RollbackResult:
        """Delete every created record, newest first.

        Deletion failures do not stop the loop. If any remain, the job keeps
        its status and lists them in ``failed_record_ids`` for a retry or
        manual cleanup.
        """
        status = self._job.status
        allowed = status == ImportStatus.COMPLETED or (
            status in (ImportStatus.FAILED, ImportStatus.IMPORTING)
            and self._job.created_record_ids
        )
        if self._cancelled or not allowed:
            raise InvalidTransitionError(status.value, ImportStatus.ROLLED_BACK.value)

        target = self._job.target.value
        result = RollbackResult(job_id=self._job.id)
        with self._repository_calls():
            for record_id in reversed(self._job.created_record_ids):
                try:
                    self._call_repository(
                        record_id, 0, "delete", self._repository.delete, target, record_id,
                    )
                except PersistenceError as exc:
                    logger.warning(
                        "Import job %s could not delete %s: %s", self._job.id, record_id, exc,
                    )
                    result.failed_ids.append(record_id)
                else:
                    result.deleted_ids.append(record_id)
            late_deletes, _ = self._settle_late_calls()

        for record_id, _ in late_deletes:
            result.failed_ids.remove(record_id)
            result.deleted_ids.append(record_id)

        if result.complete:
            self._job.created_record_ids = []
            self._job.failed_record_ids = []
            self._job.imported_rows = 0
            self._job.error_message = ""
            transition(self._job, ImportStatus.ROLLED_BACK)
        else:
            failed = set(result.failed_ids)
            self._job.created_record_ids = [
                rid for rid in self._job.created_record_ids if rid in failed
            ]
            self._job.failed_record_ids = list(result.failed_ids)
            self._job.imported_rows = len(self._job.created_record_ids)
            self._job.error_message = (
                f"Rollback incomplete: {len(result.failed_ids)} records could not be deleted"
            )
        self._save()
        return result

    def cancel(self) -> None:
        """Abandon the job before any record is written."""
        if self._job.status not in PRE_IMPORT_STATUSES:
            raise InvalidTransitionError(self._job.status.value, "cancelled")
        self._jobs.delete(self._job.id)
        self._cancelled = True
        logger.info("Import job %s cancelled in %s", self._job.id, self._job.status.value)


def _header_matches(table: ParsedTable, mapping: ColumnMapping) -> bool:
    if mapping.source_index is None:
        return mapping.source_column in table.headers
    return (
        mapping.source_index < len(table.headers)
        and table.headers[mapping.source_index] == mapping.source_column
    )
