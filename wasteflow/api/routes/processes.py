"""Process CRUD and lifecycle action endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, status

from wasteflow.api.deps import CallerDep, LifecycleDep
from wasteflow.api.schemas import (
    MessageResponse,
    ProcessListResponse,
    ProcessResponse,
    ProcessStatsResponse,
)
from wasteflow.errors import NotFoundError
from wasteflow.stats import compute_process_stats

router = APIRouter(prefix="/processes", tags=["processes"])


@router.get("", response_model=ProcessListResponse)
def list_processes(
    _caller: CallerDep,
    lifecycle: LifecycleDep,
) -> ProcessListResponse:
    processes = lifecycle.list_processes()
    return ProcessListResponse(
        processes=[ProcessResponse.from_process(p) for p in processes],
        total=len(processes),
    )


@router.get("/stats", response_model=ProcessStatsResponse)
def process_stats(
    _caller: CallerDep,
    lifecycle: LifecycleDep,
) -> ProcessStatsResponse:
    stats = compute_process_stats(lifecycle.list_processes())
    return ProcessStatsResponse(**stats.model_dump())


@router.get("/{process_id}", response_model=ProcessResponse)
def get_process(
    process_id: str,
    _caller: CallerDep,
    lifecycle: LifecycleDep,
) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.get_process(process_id))


@router.post("", response_model=ProcessResponse, status_code=status.HTTP_201_CREATED)
def create_process(
    caller: CallerDep,
    lifecycle: LifecycleDep,
    payload: dict[str, Any] = Body(...),
) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.create_process(caller, payload))


@router.patch("/{process_id}", response_model=ProcessResponse)
def update_process(
    process_id: str,
    caller: CallerDep,
    lifecycle: LifecycleDep,
    payload: dict[str, Any] = Body(...),
) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.update_process(caller, process_id, payload))


@router.delete("/{process_id}", response_model=MessageResponse)
def delete_process(
    process_id: str,
    caller: CallerDep,
    lifecycle: LifecycleDep,
) -> MessageResponse:
    if not lifecycle.delete_process(caller, process_id):
        raise NotFoundError("process", process_id)
    return MessageResponse(message="Process deleted successfully")


# --- Lifecycle actions (any authenticated caller) ---


@router.post("/{process_id}/start", response_model=ProcessResponse)
def start_process(process_id: str, caller: CallerDep, lifecycle: LifecycleDep) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.start(caller, process_id))


@router.post("/{process_id}/pause", response_model=ProcessResponse)
def pause_process(process_id: str, caller: CallerDep, lifecycle: LifecycleDep) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.pause(caller, process_id))


@router.post("/{process_id}/resume", response_model=ProcessResponse)
def resume_process(
    process_id: str, caller: CallerDep, lifecycle: LifecycleDep
) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.resume(caller, process_id))


@router.post("/{process_id}/stop", response_model=ProcessResponse)
def stop_process(process_id: str, caller: CallerDep, lifecycle: LifecycleDep) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.stop(caller, process_id))


@router.post("/{process_id}/fix", response_model=ProcessResponse)
def fix_process(process_id: str, caller: CallerDep, lifecycle: LifecycleDep) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.fix(caller, process_id))
