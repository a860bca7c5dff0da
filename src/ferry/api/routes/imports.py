"""Import job endpoints: upload, map, validate, run, rollback, resume."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ferry.catalog.fields import aliases_for, fields_for, target_info
from ferry.models.job import ImportJob, ImportSummary, ImportTarget, RollbackResult
from ferry.models.schema_mapping import ColumnMapping
from ferry.orchestrator.import_runner import ImportOrchestrator
from ferry.orchestrator.summary import import_summary
from ferry.pipeline.parser import ParseOptions

router = APIRouter(tags=["imports"])


class CreateImportRequest(BaseModel):
    target: ImportTarget
    file_name: str
    content: str
    delimiter: Optional[str] = None
    has_header: bool = True
    org_id: str = ""
    user_id: str = ""


class UpdateMappingRequest(BaseModel):
    source_column: str
    target_field: str = ""
    # Position of the column, for files that repeat a header.
    source_index: Optional[int] = None


class ResumeImportRequest(BaseModel):
    content: str
    delimiter: Optional[str] = None
    has_header: bool = True


class ValidationReport(BaseModel):
    job: ImportJob
    duplicates: dict[str, list[list[int]]] = {}


class RollbackResponse(BaseModel):
    job: ImportJob
    result: RollbackResult


def _orchestrator(request: Request, job_id: str) -> ImportOrchestrator:
    """Return the live orchestrator for a job, or rebuild one from the store."""
    state = request.app.state
    orchestrator = state.orchestrators.get(job_id)
    if orchestrator is None:
        job = state.job_store.get(job_id)
        orchestrator = ImportOrchestrator(
            job, repository=state.repository, job_store=state.job_store,
            settings=state.settings,
        )
        state.orchestrators[job_id] = orchestrator
    return orchestrator


@router.get("/targets")
def list_targets() -> list[dict[str, str]]:
    return [{"target": t.value, **target_info(t)} for t in ImportTarget]


@router.get("/targets/{target}/fields")
def list_fields(target: str) -> list[dict[str, Any]]:
    return [
        {**f.model_dump(), "aliases": aliases_for(f.name)}
        for f in fields_for(target)
    ]


@router.get("")
def recent_imports(request: Request, limit: int | None = None) -> ImportSummary:
    settings = request.app.state.settings
    return import_summary(request.app.state.job_store, limit or settings.imports.recent_jobs_limit)


@router.post("", status_code=201)
def create_import(request: Request, body: CreateImportRequest) -> ImportJob:
    state = request.app.state
    orchestrator = ImportOrchestrator.create(
        body.target,
        repository=state.repository,
        job_store=state.job_store,
        settings=state.settings,
        file_name=body.file_name,
        org_id=body.org_id,
        user_id=body.user_id,
    )
    state.orchestrators[orchestrator.job.id] = orchestrator
    options = ParseOptions(
        delimiter=body.delimiter,
        has_header=body.has_header,
        sample_lines=state.settings.imports.delimiter_sample_lines,
    )
    orchestrator.upload(body.content.encode("utf-8"), options)
    return orchestrator.job


@router.get("/{job_id}")
def get_import(request: Request, job_id: str) -> ImportJob:
    return request.app.state.job_store.get(job_id)


@router.post("/{job_id}/resume")
def resume_import(request: Request, job_id: str, body: ResumeImportRequest) -> ImportJob:
    """Re-upload the file of a job whose parsed rows were lost, e.g. after a restart."""
    state = request.app.state
    options = ParseOptions(
        delimiter=body.delimiter,
        has_header=body.has_header,
        sample_lines=state.settings.imports.delimiter_sample_lines,
    )
    orchestrator = ImportOrchestrator.resume(
        job_id,
        body.content.encode("utf-8"),
        repository=state.repository,
        job_store=state.job_store,
        settings=state.settings,
        options=options,
    )
    state.orchestrators[job_id] = orchestrator
    return orchestrator.job


@router.put("/{job_id}/mappings")
def update_mapping(request: Request, job_id: str, body: UpdateMappingRequest) -> list[ColumnMapping]:
    return _orchestrator(request, job_id).update_mapping(
        body.source_column, body.target_field, body.source_index,
    )


@router.post("/{job_id}/confirm-mappings")
def confirm_mappings(request: Request, job_id: str) -> ImportJob:
    orchestrator = _orchestrator(request, job_id)
    orchestrator.confirm_mappings()
    return orchestrator.job


@router.post("/{job_id}/validate")
def validate_import(request: Request, job_id: str) -> ValidationReport:
    orchestrator = _orchestrator(request, job_id)
    orchestrator.validate()
    duplicates = {}
    for mapping in orchestrator.job.mappings:
        if mapping.is_mapped:
            groups = orchestrator.find_duplicates(mapping.source_column, mapping.source_index)
            if groups:
                duplicates[mapping.source_column] = [g.row_numbers for g in groups]
    return ValidationReport(job=orchestrator.job, duplicates=duplicates)


@router.post("/{job_id}/run")
def run_import(request: Request, job_id: str) -> ImportJob:
    return _orchestrator(request, job_id).run_import()


@router.post("/{job_id}/rollback")
def rollback_import(request: Request, job_id: str) -> RollbackResponse:
    orchestrator = _orchestrator(request, job_id)
    result = orchestrator.rollback()
    return RollbackResponse(job=orchestrator.job, result=result)


@router.delete("/{job_id}", status_code=204)
def cancel_import(request: Request, job_id: str) -> None:
    _orchestrator(request, job_id).cancel()
    request.app.state.orchestrators.pop(job_id, None)
