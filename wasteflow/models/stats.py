"""Aggregate view over all processes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ProcessStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    average_progress: float
