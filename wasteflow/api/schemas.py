"""API request/response schemas (separate from domain models).

Field names are camelCase on the wire; snake_case is accepted on input.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from wasteflow.models.process import Process
from wasteflow.models.user import User

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

# --- Responses ---


class ProcessResponse(BaseModel):
    model_config = _WIRE_CONFIG

    id: str
    name: str
    description: str
    process_type: str
    status: str
    progress: float
    estimated_duration: int | None
    actual_duration: int | None
    error_message: str | None
    started_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_process(cls, process: Process) -> ProcessResponse:
        assert process.id is not None
        return cls(
            id=process.id,
            name=process.name,
            description=process.description,
            process_type=process.process_type.value,
            status=process.status.value,
            progress=process.progress,
            estimated_duration=process.estimated_duration,
            actual_duration=process.actual_duration,
            error_message=process.error_message,
            started_at=process.started_at,
            completed_at=process.completed_at,
            created_at=process.created_at,
            updated_at=process.updated_at,
        )


class ProcessListResponse(BaseModel):
    model_config = _WIRE_CONFIG

    processes: list[ProcessResponse]
    total: int


class ProcessStatsResponse(BaseModel):
    model_config = _WIRE_CONFIG

    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    average_progress: float


class UserResponse(BaseModel):
    model_config = _WIRE_CONFIG

    id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    role: str

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role.value,
        )


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    db_connected: bool
    checks: dict[str, bool] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# --- Requests ---


class ForceStopRequest(BaseModel):
    model_config = _WIRE_CONFIG

    reason: str | None = None


class SpeedBoostRequest(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    speed_factor: int
