"""Process lifecycle state machine and field-level authorization.

Every public operation on ``ProcessLifecycle`` follows the same shape:
check the caller's permission, load the current record, check that the
requested action is legal from the current status, compute the new field
values, and write them back in a single store update. Nothing is written
when any check fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from wasteflow.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from wasteflow.metrics import (
    forbidden_updates_total,
    process_actions_total,
    processes_created_total,
    processes_deleted_total,
    status_transitions_total,
)
from wasteflow.models.process import (
    PROGRESS_MAX,
    Process,
    ProcessCreate,
    ProcessStatus,
    ProcessUpdate,
    clamp_progress,
)
from wasteflow.models.user import Role

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from pydantic import BaseModel

    from wasteflow.models.user import Caller
    from wasteflow.protocols import ProcessStorePort

logger = structlog.get_logger()

ADMIN_ONLY_FIELDS = frozenset({"status", "progress", "error_message", "estimated_duration"})

FORCE_STOP_DEFAULT_MESSAGE = "Process stopped by administrator"

# Speed boost parameters
DEFAULT_ESTIMATED_DURATION = 60
MIN_SPEED_FACTOR = 1
MAX_SPEED_FACTOR = 5
PROGRESS_PER_FACTOR = 10
MINUTES_PER_FACTOR = 5
MIN_ESTIMATED_DURATION = 1


class ProcessAction(StrEnum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    FIX = "fix"
    MARK_COMPLETED = "mark_completed"
    FORCE_STOP = "force_stop"
    SPEED_BOOST = "speed_boost"


_ANY_STATUS = frozenset(ProcessStatus)

# Statuses each action may be applied from.
ALLOWED_SOURCES: dict[ProcessAction, frozenset[ProcessStatus]] = {
    ProcessAction.START: _ANY_STATUS,
    ProcessAction.PAUSE: frozenset({ProcessStatus.RUNNING}),
    ProcessAction.RESUME: frozenset({ProcessStatus.PAUSED}),
    ProcessAction.STOP: _ANY_STATUS,
    ProcessAction.FIX: frozenset({ProcessStatus.ERROR}),
    ProcessAction.MARK_COMPLETED: _ANY_STATUS,
    ProcessAction.FORCE_STOP: _ANY_STATUS - {ProcessStatus.STOPPED, ProcessStatus.COMPLETED},
    ProcessAction.SPEED_BOOST: _ANY_STATUS - {ProcessStatus.COMPLETED},
}

ADMIN_ACTIONS = frozenset(
    {ProcessAction.MARK_COMPLETED, ProcessAction.FORCE_STOP, ProcessAction.SPEED_BOOST}
)


def can_apply(action: ProcessAction, status: ProcessStatus) -> bool:
    return status in ALLOWED_SOURCES[action]


# --- Field authorization ---


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of checking an update's field set against a role."""

    allowed: bool
    denied_fields: frozenset[str] = frozenset()


# Wire (camelCase) and Python names of every updatable field, mapped to the Python name.
_FIELD_NAMES: dict[str, str] = {
    **{name: name for name in ProcessUpdate.model_fields},
    **{info.alias: name for name, info in ProcessUpdate.model_fields.items() if info.alias},
}


def normalize_field_names(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase keys to field names. Unknown keys are kept as given."""
    return {_FIELD_NAMES.get(key, key): value for key, value in changes.items()}


def check_update_permission(fields: Iterable[str], role: Role) -> AuthorizationDecision:
    """Decide whether *role* may change every field in *fields*.

    Field names may be given in either snake_case or camelCase.
    """
    if role == Role.ADMIN:
        return AuthorizationDecision(allowed=True)
    denied = frozenset(_FIELD_NAMES.get(f, f) for f in fields) & ADMIN_ONLY_FIELDS
    return AuthorizationDecision(allowed=not denied, denied_fields=denied)


# --- Speed boost ---


@dataclass(frozen=True)
class SpeedBoostResult:
    progress: float
    estimated_duration: int
    status: ProcessStatus


def normalize_speed_factor(value: object) -> int:
    """Validate a speed factor, clamping anything above the maximum.

    Non-integers and values below the minimum are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"speed_factor must be an integer, got {value!r}", field="speed_factor"
        )
    if value < MIN_SPEED_FACTOR:
        raise ValidationError(
            f"speed_factor must be at least {MIN_SPEED_FACTOR}, got {value}",
            field="speed_factor",
        )
    if value > MAX_SPEED_FACTOR:
        logger.info("Speed factor clamped", requested=value, applied=MAX_SPEED_FACTOR)
        return MAX_SPEED_FACTOR
    return value


def compute_speed_boost(
    progress: float,
    estimated_duration: int | None,
    status: ProcessStatus,
    speed_factor: int,
) -> SpeedBoostResult:
    """Advance progress and shorten the estimate by *speed_factor* steps.

    Progress saturates at 100 (which also completes the process) and the
    estimate never drops below one minute. An unknown estimate counts as 60.
    """
    duration = DEFAULT_ESTIMATED_DURATION if estimated_duration is None else estimated_duration
    new_progress = min(PROGRESS_MAX, clamp_progress(progress) + speed_factor * PROGRESS_PER_FACTOR)
    new_duration = max(MIN_ESTIMATED_DURATION, duration - speed_factor * MINUTES_PER_FACTOR)
    new_status = ProcessStatus.COMPLETED if new_progress >= PROGRESS_MAX else status
    return SpeedBoostResult(
        progress=new_progress,
        estimated_duration=new_duration,
        status=new_status,
    )


# --- Status side effects ---


def _elapsed_minutes(started_at: datetime | None, now: datetime) -> int | None:
    if started_at is None:
        return None
    return max(0, int((now - started_at).total_seconds() // 60))


def status_change_fields(
    current: Process, target: ProcessStatus, now: datetime
) -> dict[str, Any]:
    """Fields that must change alongside a move from ``current.status`` to *target*.

    These override anything a caller supplied for the same fields.
    """
    changes: dict[str, Any] = {"status": target}
    entering = target != current.status

    if target == ProcessStatus.RUNNING:
        if entering:
            changes.update(started_at=now, error_message=None, completed_at=None)
    elif target.is_terminal:
        if entering:
            changes.update(
                completed_at=now,
                actual_duration=_elapsed_minutes(current.started_at, now),
            )
        if target == ProcessStatus.COMPLETED:
            changes["progress"] = PROGRESS_MAX
    else:
        changes["completed_at"] = None
    return changes


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _validate(model: type[BaseModel], data: Mapping[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors(include_url=False)
        ]
        field = errors[0]["field"] if errors else None
        raise ValidationError(
            f"Invalid value for '{field}': {errors[0]['message']}" if errors else str(exc),
            field=field,
            errors=errors,
        ) from exc


class ProcessLifecycle:
    """Applies owner edits, admin edits and lifecycle actions to processes."""

    def __init__(self, store: ProcessStorePort, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self._clock = clock

    # --- Reads ---

    def list_processes(self) -> list[Process]:
        return self.store.list_processes()

    def get_process(self, process_id: str) -> Process:
        process = self.store.get_process(process_id)
        if process is None:
            raise NotFoundError("process", process_id)
        return process

    # --- CRUD ---

    def create_process(self, caller: Caller, data: ProcessCreate | Mapping[str, Any]) -> Process:
        if not isinstance(data, ProcessCreate):
            data = _validate(ProcessCreate, data)
        process = self.store.create_process(data)
        processes_created_total.labels(process_type=process.process_type.value).inc()
        logger.info(
            "Process created",
            process_id=process.id,
            process_type=process.process_type.value,
            caller_id=caller.caller_id,
        )
        return process

    def update_process(
        self, caller: Caller, process_id: str, changes: Mapping[str, Any]
    ) -> Process:
        """Apply a partial update after checking the caller may touch every field."""
        fields = normalize_field_names(changes)
        decision = check_update_permission(fields, caller.role)
        if not decision.allowed:
            forbidden_updates_total.inc()
            logger.warning(
                "Update denied",
                process_id=process_id,
                caller_id=caller.caller_id,
                fields=sorted(decision.denied_fields),
            )
            raise ForbiddenError(
                "Admin access required for this operation", decision.denied_fields
            )

        requested = _validate(ProcessUpdate, fields).changes()
        current = self.get_process(process_id)
        if not requested:
            return current

        target = requested.get("status")
        if target is not None:
            requested.update(status_change_fields(current, target, self._clock()))
        elif current.status == ProcessStatus.COMPLETED and "progress" in requested:
            requested["progress"] = PROGRESS_MAX
        return self._write(current, requested, action="update", caller=caller)

    def delete_process(self, caller: Caller, process_id: str) -> bool:
        deleted = self.store.delete_process(process_id)
        if deleted:
            processes_deleted_total.inc()
            logger.info("Process deleted", process_id=process_id, caller_id=caller.caller_id)
        return deleted

    # --- Lifecycle actions ---

    def start(self, caller: Caller, process_id: str) -> Process:
        """(Re)start a run from any state. Prior progress and errors are discarded."""
        current = self._prepare(ProcessAction.START, caller, process_id)
        now = self._clock()
        return self._write(
            current,
            {
                "status": ProcessStatus.RUNNING,
                "progress": 0.0,
                "started_at": now,
                "error_message": None,
                "completed_at": None,
            },
            action=ProcessAction.START,
            caller=caller,
        )

    def pause(self, caller: Caller, process_id: str) -> Process:
        current = self._prepare(ProcessAction.PAUSE, caller, process_id)
        return self._transition(current, ProcessStatus.PAUSED, ProcessAction.PAUSE, caller)

    def resume(self, caller: Caller, process_id: str) -> Process:
        current = self._prepare(ProcessAction.RESUME, caller, process_id)
        return self._transition(current, ProcessStatus.RUNNING, ProcessAction.RESUME, caller)

    def stop(self, caller: Caller, process_id: str) -> Process:
        current = self._prepare(ProcessAction.STOP, caller, process_id)
        now = self._clock()
        changes = status_change_fields(current, ProcessStatus.STOPPED, now)
        # Stopping always stamps completion, even when already stopped.
        changes["completed_at"] = now
        return self._write(current, changes, action=ProcessAction.STOP, caller=caller)

    def fix(self, caller: Caller, process_id: str) -> Process:
        current = self._prepare(ProcessAction.FIX, caller, process_id)
        return self._transition(current, ProcessStatus.RUNNING, ProcessAction.FIX, caller)

    def mark_completed(self, caller: Caller, process_id: str) -> Process:
        current = self._prepare(ProcessAction.MARK_COMPLETED, caller, process_id)
        if current.status == ProcessStatus.COMPLETED and current.progress == PROGRESS_MAX:
            process_actions_total.labels(action=ProcessAction.MARK_COMPLETED, outcome="noop").inc()
            return current
        return self._transition(
            current, ProcessStatus.COMPLETED, ProcessAction.MARK_COMPLETED, caller
        )

    def force_stop(self, caller: Caller, process_id: str, reason: str | None = None) -> Process:
        current = self._prepare(ProcessAction.FORCE_STOP, caller, process_id)
        changes = status_change_fields(current, ProcessStatus.STOPPED, self._clock())
        changes["error_message"] = (reason or "").strip() or FORCE_STOP_DEFAULT_MESSAGE
        return self._write(current, changes, action=ProcessAction.FORCE_STOP, caller=caller)

    def speed_boost(self, caller: Caller, process_id: str, speed_factor: object) -> Process:
        current = self._prepare(ProcessAction.SPEED_BOOST, caller, process_id)
        factor = normalize_speed_factor(speed_factor)
        result = compute_speed_boost(
            current.progress, current.estimated_duration, current.status, factor
        )
        changes: dict[str, Any] = {
            "progress": result.progress,
            "estimated_duration": result.estimated_duration,
        }
        if result.status != current.status:
            changes.update(status_change_fields(current, result.status, self._clock()))
        return self._write(current, changes, action=ProcessAction.SPEED_BOOST, caller=caller)

    def apply(
        self,
        caller: Caller,
        process_id: str,
        action: ProcessAction | str,
        **params: Any,
    ) -> Process:
        """Dispatch *action* by name; extra keyword arguments go to the handler."""
        try:
            action = ProcessAction(action)
        except ValueError as exc:
            raise ValidationError(f"Unknown action '{action}'", field="action") from exc
        handlers: dict[ProcessAction, Callable[..., Process]] = {
            ProcessAction.START: self.start,
            ProcessAction.PAUSE: self.pause,
            ProcessAction.RESUME: self.resume,
            ProcessAction.STOP: self.stop,
            ProcessAction.FIX: self.fix,
            ProcessAction.MARK_COMPLETED: self.mark_completed,
            ProcessAction.FORCE_STOP: self.force_stop,
            ProcessAction.SPEED_BOOST: self.speed_boost,
        }
        return handlers[action](caller, process_id, **params)

    # --- Internals ---

    def _prepare(self, action: ProcessAction, caller: Caller, process_id: str) -> Process:
        """Check role, existence and source status. Returns the current record."""
        if action in ADMIN_ACTIONS and not caller.is_admin:
            process_actions_total.labels(action=action, outcome="forbidden").inc()
            logger.warning(
                "Admin action denied",
                action=action,
                process_id=process_id,
                caller_id=caller.caller_id,
            )
            raise ForbiddenError(f"Admin access required to {action.replace('_', ' ')}")

        current = self.get_process(process_id)
        if not can_apply(action, current.status):
            process_actions_total.labels(action=action, outcome="rejected").inc()
            raise InvalidTransitionError(action, current.status)
        return current

    def _transition(
        self,
        current: Process,
        target: ProcessStatus,
        action: ProcessAction,
        caller: Caller,
    ) -> Process:
        changes = status_change_fields(current, target, self._clock())
        return self._write(current, changes, action=action, caller=caller)

    def _write(
        self,
        current: Process,
        changes: dict[str, Any],
        action: str,
        caller: Caller,
    ) -> Process:
        if "progress" in changes:
            changes["progress"] = clamp_progress(changes["progress"])
        assert current.id is not None
        updated = self.store.update_process(current.id, changes)
        if updated is None:
            # Deleted between the read and the write.
            raise NotFoundError("process", current.id)

        process_actions_total.labels(action=action, outcome="applied").inc()
        if updated.status != current.status:
            status_transitions_total.labels(
                from_status=current.status.value, to_status=updated.status.value
            ).inc()
        logger.info(
            "Process updated",
            action=action,
            process_id=updated.id,
            caller_id=caller.caller_id,
            from_status=current.status.value,
            to_status=updated.status.value,
            progress=updated.progress,
        )
        return updated
