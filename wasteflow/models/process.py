"""Process model: one tracked unit of waste-handling work."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PROGRESS_MIN = 0.0
PROGRESS_MAX = 100.0


class ProcessStatus(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessStatus.STOPPED, ProcessStatus.COMPLETED)


class ProcessType(StrEnum):
    ORGANIC = "organic"
    PLASTIC = "plastic"
    METAL = "metal"
    GLASS = "glass"
    PAPER = "paper"
    ELECTRONIC = "electronic"


def clamp_progress(value: float) -> float:
    return max(PROGRESS_MIN, min(PROGRESS_MAX, float(value)))


class Process(BaseModel):
    """A persisted process record."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str
    description: str
    process_type: ProcessType
    status: ProcessStatus = ProcessStatus.STOPPED
    progress: float = 0.0
    estimated_duration: int | None = None
    actual_duration: int | None = None
    error_message: str | None = None

    started_at: datetime | None = None
    completed_at: datetime | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ProcessCreate(BaseModel):
    """Fields a caller supplies when creating a process.

    Accepts both snake_case names and the camelCase names used on the wire.
    Lifecycle fields are not accepted: every process starts stopped at 0%.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    process_type: ProcessType
    estimated_duration: int | None = Field(default=None, ge=1)


class ProcessUpdate(BaseModel):
    """A partial update. Only explicitly supplied fields are applied.

    Timestamps, ``id`` and ``actual_duration`` are not part of the schema,
    so supplying them is rejected rather than silently ignored.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    process_type: ProcessType | None = None
    status: ProcessStatus | None = None
    progress: float | None = Field(default=None, strict=True, allow_inf_nan=False)
    error_message: str | None = None
    estimated_duration: int | None = Field(default=None, ge=1)

    @field_validator("name", "description", "process_type", "status", "progress", mode="before")
    @classmethod
    def _reject_null(cls, value: object) -> object:
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("progress")
    @classmethod
    def _clamp_progress(cls, value: float | None) -> float | None:
        return None if value is None else clamp_progress(value)

    def changes(self) -> dict[str, object]:
        """Return only the fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)
