"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from wasteflow import __version__
from wasteflow.api.deps import DbDep
from wasteflow.api.schemas import HealthResponse
from wasteflow.errors import StorageError

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
def health_check(
    db: DbDep,
) -> HealthResponse:
    db_ok = False
    try:
        db_ok = db.check_connection()
    except StorageError:
        pass

    return HealthResponse(
        status="healthy" if db_ok else "unhealthy",
        version=__version__,
        db_connected=db_ok,
        checks={"database": db_ok},
    )
