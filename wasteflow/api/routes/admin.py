"""Administrator-only process actions."""

from __future__ import annotations

from fastapi import APIRouter

from wasteflow.api.deps import CallerDep, LifecycleDep
from wasteflow.api.schemas import ForceStopRequest, ProcessResponse, SpeedBoostRequest

router = APIRouter(prefix="/processes", tags=["admin"])


@router.post("/{process_id}/complete", response_model=ProcessResponse)
def mark_completed(
    process_id: str,
    caller: CallerDep,
    lifecycle: LifecycleDep,
) -> ProcessResponse:
    return ProcessResponse.from_process(lifecycle.mark_completed(caller, process_id))


@router.post("/{process_id}/force-stop", response_model=ProcessResponse)
def force_stop(
    process_id: str,
    caller: CallerDep,
    lifecycle: LifecycleDep,
    request: ForceStopRequest | None = None,
) -> ProcessResponse:
    reason = request.reason if request else None
    return ProcessResponse.from_process(lifecycle.force_stop(caller, process_id, reason=reason))


@router.post("/{process_id}/speed-boost", response_model=ProcessResponse)
def speed_boost(
    process_id: str,
    request: SpeedBoostRequest,
    caller: CallerDep,
    lifecycle: LifecycleDep,
) -> ProcessResponse:
    return ProcessResponse.from_process(
        lifecycle.speed_boost(caller, process_id, request.speed_factor)
    )
