"""Prometheus metric definitions for process lifecycle operations."""

from __future__ import annotations

from prometheus_client import Counter

# --- Lifecycle actions ---

process_actions_total = Counter(
    "wasteflow_process_actions_total",
    "Lifecycle and admin actions applied to processes",
    labelnames=["action", "outcome"],
)

status_transitions_total = Counter(
    "wasteflow_status_transitions_total",
    "Process status changes",
    labelnames=["from_status", "to_status"],
)

# --- Authorization ---

forbidden_updates_total = Counter(
    "wasteflow_forbidden_updates_total",
    "Update requests rejected because the caller lacked the admin role",
)

# --- CRUD ---

processes_created_total = Counter(
    "wasteflow_processes_created_total",
    "Total processes created",
    labelnames=["process_type"],
)

processes_deleted_total = Counter(
    "wasteflow_processes_deleted_total",
    "Total processes deleted",
)
