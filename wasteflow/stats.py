"""Dashboard statistics over the full process list."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from wasteflow.models.process import ProcessStatus, ProcessType
from wasteflow.models.stats import ProcessStats

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wasteflow.models.process import Process


def compute_process_stats(processes: Sequence[Process]) -> ProcessStats:
    """Count processes by status and type and average their progress.

    Every status and type appears in the result, zero-filled, so callers can
    render a fixed layout.
    """
    statuses = Counter(p.status for p in processes)
    types = Counter(p.process_type for p in processes)
    average = sum(p.progress for p in processes) / len(processes) if processes else 0.0

    return ProcessStats(
        total=len(processes),
        by_status={s.value: statuses.get(s, 0) for s in ProcessStatus},
        by_type={t.value: types.get(t, 0) for t in ProcessType},
        average_progress=round(average, 1),
    )
