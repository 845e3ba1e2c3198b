"""Re-exports all Pydantic models."""

from wasteflow.models.process import (
    Process,
    ProcessCreate,
    ProcessStatus,
    ProcessType,
    ProcessUpdate,
    clamp_progress,
)
from wasteflow.models.stats import ProcessStats
from wasteflow.models.user import Caller, Role, User

__all__ = [
    "Caller",
    "Process",
    "ProcessCreate",
    "ProcessStats",
    "ProcessStatus",
    "ProcessType",
    "ProcessUpdate",
    "Role",
    "User",
    "clamp_progress",
]
