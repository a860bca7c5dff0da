"""Liveness and readiness endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ferry.core.exceptions import StoreError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
def ready(request: Request):
    """Ready once the job store answers a read."""
    state = request.app.state
    backend = state.settings.persistence_backend
    try:
        state.job_store.list_recent(1)
    except StoreError as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "backend": backend, "detail": str(exc)},
        )
    return {"status": "ready", "backend": backend}
