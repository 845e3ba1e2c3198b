"""Tests for the process state machine, field authorization and speed boost."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from wasteflow.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from wasteflow.lifecycle import (
    ADMIN_ONLY_FIELDS,
    FORCE_STOP_DEFAULT_MESSAGE,
    AuthorizationDecision,
    ProcessAction,
    can_apply,
    check_update_permission,
    compute_speed_boost,
    normalize_speed_factor,
)
from wasteflow.models.process import ProcessStatus
from wasteflow.models.user import Role

if TYPE_CHECKING:
    from tests.conftest import FakeClock
    from wasteflow.db import Database
    from wasteflow.lifecycle import ProcessLifecycle
    from wasteflow.models.process import Process
    from wasteflow.models.user import Caller


def _set_status(
    lifecycle: ProcessLifecycle, admin: Caller, process: Process, status: ProcessStatus
) -> Process:
    return lifecycle.update_process(admin, process.id, {"status": status.value})


class TestCheckUpdatePermission:
    def test_admin_may_change_anything(self):
        decision = check_update_permission({"status", "progress", "name"}, Role.ADMIN)
        assert decision == AuthorizationDecision(allowed=True)

    def test_user_may_change_descriptive_fields(self):
        decision = check_update_permission({"name", "description", "processType"}, Role.USER)
        assert decision.allowed
        assert decision.denied_fields == frozenset()

    @pytest.mark.parametrize(
        "field", ["status", "progress", "errorMessage", "error_message", "estimatedDuration"]
    )
    def test_user_denied_admin_only_field(self, field: str):
        decision = check_update_permission({"name", field}, Role.USER)
        assert not decision.allowed
        assert len(decision.denied_fields) == 1
        assert decision.denied_fields <= ADMIN_ONLY_FIELDS

    def test_denied_fields_reported_in_snake_case(self):
        decision = check_update_permission({"status", "estimatedDuration"}, Role.USER)
        assert decision.denied_fields == frozenset({"status", "estimated_duration"})


class TestAllowedSources:
    def test_start_and_stop_from_any_state(self):
        for status in ProcessStatus:
            assert can_apply(ProcessAction.START, status)
            assert can_apply(ProcessAction.STOP, status)

    def test_pause_only_from_running(self):
        allowed = {s for s in ProcessStatus if can_apply(ProcessAction.PAUSE, s)}
        assert allowed == {ProcessStatus.RUNNING}

    def test_force_stop_excludes_terminal_states(self):
        assert not can_apply(ProcessAction.FORCE_STOP, ProcessStatus.STOPPED)
        assert not can_apply(ProcessAction.FORCE_STOP, ProcessStatus.COMPLETED)
        assert can_apply(ProcessAction.FORCE_STOP, ProcessStatus.ERROR)

    def test_speed_boost_excludes_completed(self):
        assert not can_apply(ProcessAction.SPEED_BOOST, ProcessStatus.COMPLETED)
        assert can_apply(ProcessAction.SPEED_BOOST, ProcessStatus.STOPPED)


class TestComputeSpeedBoost:
    @pytest.mark.parametrize(
        ("progress", "factor", "expected"),
        [(0, 1, 10), (0, 5, 50), (35.5, 3, 65.5), (95, 1, 100), (100, 5, 100)],
    )
    def test_progress_formula(self, progress: float, factor: int, expected: float):
        result = compute_speed_boost(progress, 60, ProcessStatus.RUNNING, factor)
        assert result.progress == expected

    def test_missing_estimate_counts_as_sixty(self):
        result = compute_speed_boost(0, None, ProcessStatus.RUNNING, 2)
        assert result.estimated_duration == 50

    def test_duration_never_below_one(self):
        duration = 7
        for _ in range(10):
            result = compute_speed_boost(0, duration, ProcessStatus.RUNNING, 5)
            duration = result.estimated_duration
            assert duration >= 1
        assert duration == 1

    def test_reaching_hundred_completes(self):
        result = compute_speed_boost(90, 60, ProcessStatus.PAUSED, 1)
        assert result.status == ProcessStatus.COMPLETED
        assert result.progress == 100

    def test_status_kept_below_hundred(self):
        result = compute_speed_boost(10, 60, ProcessStatus.PAUSED, 1)
        assert result.status == ProcessStatus.PAUSED

    def test_monotonic_and_stable_at_bound(self):
        progress = 0.0
        seen = []
        for _ in range(15):
            progress = compute_speed_boost(progress, 60, ProcessStatus.RUNNING, 1).progress
            seen.append(progress)
        assert seen == sorted(seen)
        assert seen[-1] == 100
        assert seen[-5:] == [100] * 5


class TestNormalizeSpeedFactor:
    def test_in_range_passes_through(self):
        assert normalize_speed_factor(3) == 3

    def test_above_range_clamped(self):
        assert normalize_speed_factor(8) == 5

    @pytest.mark.parametrize("value", [0, -2, 2.5, "3", None, True])
    def test_rejected(self, value: object):
        with pytest.raises(ValidationError) as exc_info:
            normalize_speed_factor(value)
        assert exc_info.value.field == "speed_factor"


class TestCreate:
    def test_create_starts_stopped(self, lifecycle: ProcessLifecycle, user: Caller):
        process = lifecycle.create_process(
            user,
            {
                "name": "Compost A",
                "description": "Windrow composting",
                "processType": "organic",
                "estimatedDuration": 60,
            },
        )
        assert process.id
        assert process.status == ProcessStatus.STOPPED
        assert process.progress == 0
        assert process.estimated_duration == 60
        assert process.started_at is None

    def test_create_missing_type(self, lifecycle: ProcessLifecycle, user: Caller):
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.create_process(user, {"name": "X", "description": "Y"})
        assert exc_info.value.field in ("processType", "process_type")

    def test_create_rejects_status(self, lifecycle: ProcessLifecycle, admin: Caller):
        with pytest.raises(ValidationError):
            lifecycle.create_process(
                admin,
                {
                    "name": "X",
                    "description": "Y",
                    "processType": "glass",
                    "status": "running",
                },
            )


class TestUpdateAuthorization:
    def test_user_can_rename(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        updated = lifecycle.update_process(user, sample_process.id, {"name": "New name"})
        assert updated.name == "New name"
        assert updated.updated_at >= sample_process.updated_at

    def test_user_can_change_type_by_wire_name(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        updated = lifecycle.update_process(user, sample_process.id, {"processType": "metal"})
        assert updated.process_type.value == "metal"

    @pytest.mark.parametrize(
        "changes",
        [
            {"status": "completed"},
            {"progress": 50},
            {"errorMessage": "boom"},
            {"estimatedDuration": 10},
            {"name": "Renamed", "status": "running"},
        ],
    )
    def test_user_admin_fields_forbidden_and_store_untouched(
        self,
        lifecycle: ProcessLifecycle,
        db: Database,
        user: Caller,
        sample_process: Process,
        changes: dict,
    ):
        with pytest.raises(ForbiddenError):
            lifecycle.update_process(user, sample_process.id, changes)
        assert db.get_process(sample_process.id) == sample_process

    def test_forbidden_checked_before_existence(self, lifecycle: ProcessLifecycle, user: Caller):
        with pytest.raises(ForbiddenError) as exc_info:
            lifecycle.update_process(user, "missing", {"status": "running"})
        assert exc_info.value.fields == frozenset({"status"})

    def test_unknown_process(self, lifecycle: ProcessLifecycle, admin: Caller):
        with pytest.raises(NotFoundError):
            lifecycle.update_process(admin, "missing", {"name": "x"})

    def test_empty_update_is_noop(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        assert lifecycle.update_process(user, sample_process.id, {}) == sample_process


class TestUpdateValidation:
    @pytest.mark.parametrize(
        ("changes", "field"),
        [
            ({"progress": "abc"}, "progress"),
            ({"status": "exploded"}, "status"),
            ({"startedAt": "2026-01-01T00:00:00Z"}, "startedAt"),
            ({"actualDuration": 5}, "actualDuration"),
            ({"name": None}, "name"),
            ({"name": "   "}, "name"),
            ({"estimatedDuration": 0}, "estimated_duration"),
            ({"progress": True}, "progress"),
            ({"progress": "50"}, "progress"),
        ],
    )
    def test_rejected(
        self,
        lifecycle: ProcessLifecycle,
        db: Database,
        admin: Caller,
        sample_process: Process,
        changes: dict,
        field: str,
    ):
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.update_process(admin, sample_process.id, changes)
        assert exc_info.value.errors
        assert exc_info.value.field == field
        assert db.get_process(sample_process.id) == sample_process

    @pytest.mark.parametrize(("value", "stored"), [(150, 100), (-5, 0), (42.5, 42.5)])
    def test_progress_clamped(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        sample_process: Process,
        value: float,
        stored: float,
    ):
        updated = lifecycle.update_process(admin, sample_process.id, {"progress": value})
        assert updated.progress == stored


class TestAdminStatusPatch:
    def test_completed_forces_full_progress(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        sample_process: Process,
        clock: FakeClock,
    ):
        updated = lifecycle.update_process(
            admin, sample_process.id, {"status": "completed", "progress": 40}
        )
        assert updated.status == ProcessStatus.COMPLETED
        assert updated.progress == 100
        assert updated.completed_at == clock.now

    def test_progress_edit_on_completed_stays_full(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        lifecycle.mark_completed(admin, sample_process.id)
        updated = lifecycle.update_process(admin, sample_process.id, {"progress": 20})
        assert updated.progress == 100

    def test_running_stamps_start_and_clears_error(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        sample_process: Process,
        clock: FakeClock,
    ):
        lifecycle.update_process(
            admin, sample_process.id, {"status": "error", "errorMessage": "jam"}
        )
        clock.advance(5)
        updated = lifecycle.update_process(admin, sample_process.id, {"status": "running"})
        assert updated.started_at == clock.now
        assert updated.error_message is None
        assert updated.completed_at is None

    def test_error_with_message(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        updated = lifecycle.update_process(
            admin, sample_process.id, {"status": "error", "errorMessage": "Conveyor jam"}
        )
        assert updated.status == ProcessStatus.ERROR
        assert updated.error_message == "Conveyor jam"
        assert updated.completed_at is None


class TestStart:
    @pytest.mark.parametrize("status", list(ProcessStatus))
    def test_start_from_any_state(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        user: Caller,
        sample_process: Process,
        clock: FakeClock,
        status: ProcessStatus,
    ):
        lifecycle.update_process(admin, sample_process.id, {"progress": 70})
        _set_status(lifecycle, admin, sample_process, status)
        clock.advance(3)

        started = lifecycle.start(user, sample_process.id)
        assert started.status == ProcessStatus.RUNNING
        assert started.progress == 0
        assert started.started_at == clock.now
        assert started.completed_at is None
        assert started.error_message is None

    def test_restart_refreshes_started_at(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process, clock: FakeClock
    ):
        first = lifecycle.start(user, sample_process.id)
        clock.advance(10)
        second = lifecycle.start(user, sample_process.id)
        assert second.started_at > first.started_at

    def test_start_unknown(self, lifecycle: ProcessLifecycle, user: Caller):
        with pytest.raises(NotFoundError):
            lifecycle.start(user, "missing")


class TestPauseResume:
    def test_pause_running(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        lifecycle.start(user, sample_process.id)
        paused = lifecycle.pause(user, sample_process.id)
        assert paused.status == ProcessStatus.PAUSED

    def test_pause_stopped_rejected(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.pause(user, sample_process.id)
        assert exc_info.value.status == ProcessStatus.STOPPED
        assert isinstance(exc_info.value, ValidationError)

    def test_resume_keeps_progress_and_refreshes_start(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        user: Caller,
        sample_process: Process,
        clock: FakeClock,
    ):
        lifecycle.start(user, sample_process.id)
        lifecycle.update_process(admin, sample_process.id, {"progress": 40})
        lifecycle.pause(user, sample_process.id)
        clock.advance(15)

        resumed = lifecycle.resume(user, sample_process.id)
        assert resumed.status == ProcessStatus.RUNNING
        assert resumed.progress == 40
        assert resumed.started_at == clock.now

    def test_resume_requires_paused(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        lifecycle.start(user, sample_process.id)
        with pytest.raises(InvalidTransitionError):
            lifecycle.resume(user, sample_process.id)


class TestStopAndFix:
    def test_stop_stamps_completion_and_duration(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process, clock: FakeClock
    ):
        lifecycle.start(user, sample_process.id)
        clock.advance(42)
        stopped = lifecycle.stop(user, sample_process.id)
        assert stopped.status == ProcessStatus.STOPPED
        assert stopped.completed_at == clock.now
        assert stopped.actual_duration == 42

    def test_stop_when_already_stopped(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process, clock: FakeClock
    ):
        stopped = lifecycle.stop(user, sample_process.id)
        assert stopped.completed_at == clock.now
        assert stopped.actual_duration is None

    def test_fix_error(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        user: Caller,
        sample_process: Process,
        clock: FakeClock,
    ):
        lifecycle.update_process(
            admin, sample_process.id, {"status": "error", "errorMessage": "Overheat"}
        )
        clock.advance(1)
        fixed = lifecycle.fix(user, sample_process.id)
        assert fixed.status == ProcessStatus.RUNNING
        assert fixed.error_message is None
        assert fixed.started_at == clock.now

    def test_fix_requires_error(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        with pytest.raises(InvalidTransitionError):
            lifecycle.fix(user, sample_process.id)


class TestMarkCompleted:
    def test_requires_admin(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        with pytest.raises(ForbiddenError):
            lifecycle.mark_completed(user, sample_process.id)

    def test_idempotent(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        first = lifecycle.mark_completed(admin, sample_process.id)
        second = lifecycle.mark_completed(admin, sample_process.id)
        for process in (first, second):
            assert process.status == ProcessStatus.COMPLETED
            assert process.progress == 100
            assert process.completed_at is not None
        assert second == first


class TestForceStop:
    def test_with_reason(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        user: Caller,
        sample_process: Process,
        clock: FakeClock,
    ):
        lifecycle.start(user, sample_process.id)
        clock.advance(2)
        stopped = lifecycle.force_stop(admin, sample_process.id, reason="sensor fault")
        assert stopped.status == ProcessStatus.STOPPED
        assert stopped.error_message == "sensor fault"
        assert stopped.completed_at == clock.now

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_default_message(
        self,
        lifecycle: ProcessLifecycle,
        admin: Caller,
        user: Caller,
        sample_process: Process,
        reason: str | None,
    ):
        lifecycle.start(user, sample_process.id)
        stopped = lifecycle.force_stop(admin, sample_process.id, reason=reason)
        assert stopped.error_message == FORCE_STOP_DEFAULT_MESSAGE

    def test_rejected_when_stopped(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        with pytest.raises(InvalidTransitionError):
            lifecycle.force_stop(admin, sample_process.id)

    def test_requires_admin(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        lifecycle.start(user, sample_process.id)
        with pytest.raises(ForbiddenError):
            lifecycle.force_stop(user, sample_process.id, reason="nope")


class TestSpeedBoost:
    def test_compost_scenario(
        self, lifecycle: ProcessLifecycle, admin: Caller, user: Caller, clock: FakeClock
    ):
        process = lifecycle.create_process(
            user,
            {
                "name": "Compost A",
                "description": "Windrow composting",
                "processType": "organic",
                "estimatedDuration": 60,
            },
        )
        assert process.status == ProcessStatus.STOPPED
        assert process.progress == 0

        started = lifecycle.start(user, process.id)
        assert started.status == ProcessStatus.RUNNING
        assert started.progress == 0
        assert started.started_at == clock.now

        boosted = lifecycle.speed_boost(admin, process.id, 3)
        assert boosted.progress == 30
        assert boosted.estimated_duration == 45
        assert boosted.status == ProcessStatus.RUNNING

        for _ in range(10):
            boosted = lifecycle.speed_boost(admin, process.id, 8)
            if boosted.progress >= 100:
                break
        assert boosted.status == ProcessStatus.COMPLETED
        assert boosted.progress == 100
        assert boosted.estimated_duration == 1
        assert boosted.completed_at is not None

    def test_rejected_when_completed(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        lifecycle.mark_completed(admin, sample_process.id)
        with pytest.raises(InvalidTransitionError):
            lifecycle.speed_boost(admin, sample_process.id, 1)

    def test_requires_admin(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        with pytest.raises(ForbiddenError):
            lifecycle.speed_boost(user, sample_process.id, 1)

    def test_invalid_factor_leaves_store(
        self,
        lifecycle: ProcessLifecycle,
        db: Database,
        admin: Caller,
        sample_process: Process,
    ):
        with pytest.raises(ValidationError):
            lifecycle.speed_boost(admin, sample_process.id, 0)
        assert db.get_process(sample_process.id) == sample_process


class TestApplyAndDelete:
    def test_apply_dispatches_by_name(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        boosted = lifecycle.apply(admin, sample_process.id, "speed_boost", speed_factor=2)
        assert boosted.progress == 20

    def test_apply_unknown_action(
        self, lifecycle: ProcessLifecycle, admin: Caller, sample_process: Process
    ):
        with pytest.raises(ValidationError):
            lifecycle.apply(admin, sample_process.id, "explode")

    def test_delete_any_status(
        self, lifecycle: ProcessLifecycle, user: Caller, sample_process: Process
    ):
        lifecycle.start(user, sample_process.id)
        assert lifecycle.delete_process(user, sample_process.id) is True
        with pytest.raises(NotFoundError):
            lifecycle.get_process(sample_process.id)
        assert lifecycle.delete_process(user, sample_process.id) is False
