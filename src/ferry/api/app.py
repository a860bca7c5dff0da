"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ferry.api.routes import health, imports
from ferry.core.config import AppSettings
from ferry.core.exceptions import (
    FerryError,
    InvalidTransitionError,
    JobNotFoundError,
    MappingValidationError,
    ParseError,
    UnknownTargetError,
    UnsupportedFileTypeError,
)
from ferry.core.logging import configure_logging
from ferry.persistence import create_persistence

ERROR_STATUS: list[tuple[type[FerryError], int]] = [
    (JobNotFoundError, 404),
    (UnknownTargetError, 404),
    (InvalidTransitionError, 409),
    (UnsupportedFileTypeError, 415),
    (MappingValidationError, 422),
    (ParseError, 422),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings: AppSettings = app.state.settings
    configure_logging(settings.log_level)
    if not hasattr(app.state, "repository"):
        app.state.repository, app.state.job_store = create_persistence(settings)
    app.state.orchestrators = {}
    yield
    app.state.orchestrators.clear()


async def ferry_error_handler(request: Request, exc: FerryError) -> JSONResponse:
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    body: dict = {"detail": str(exc)}
    if isinstance(exc, MappingValidationError):
        body["reasons"] = exc.reasons
    return JSONResponse(status_code=status, content=body)


def create_app(settings: AppSettings | None = None, repository=None, job_store=None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``repository`` and ``job_store`` override the settings-driven wiring.
    """
    app = FastAPI(
        title="Ferry Spreadsheet Import Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or AppSettings()
    if repository is not None and job_store is not None:
        app.state.repository = repository
        app.state.job_store = job_store
    app.add_exception_handler(FerryError, ferry_error_handler)
    app.include_router(health.router)
    app.include_router(imports.router, prefix="/imports")
    return app
