"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from wasteflow.config import Settings
from wasteflow.db import Database
from wasteflow.lifecycle import ProcessLifecycle
from wasteflow.models.process import Process, ProcessCreate, ProcessType
from wasteflow.models.user import Caller, Role


class FakeClock:
    """Deterministic clock for lifecycle timestamps."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> datetime:
        self.now = self.now + timedelta(minutes=minutes)
        return self.now


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        log_level="DEBUG",
        log_format="console",
        _env_file=None,
    )


@pytest.fixture()
def db(tmp_path) -> Database:
    db = Database(tmp_path / "test.db")
    db.init_schema()
    yield db
    db.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 19, 8, 0, tzinfo=UTC))


@pytest.fixture()
def lifecycle(db: Database, clock: FakeClock) -> ProcessLifecycle:
    return ProcessLifecycle(db, clock=clock)


@pytest.fixture()
def admin() -> Caller:
    return Caller(caller_id="admin-1", role=Role.ADMIN)


@pytest.fixture()
def user() -> Caller:
    return Caller(caller_id="user-1", role=Role.USER)


@pytest.fixture()
def sample_process(db: Database) -> Process:
    return db.create_process(
        ProcessCreate(
            name="Compost A",
            description="Windrow composting of kitchen waste",
            process_type=ProcessType.ORGANIC,
            estimated_duration=60,
        )
    )
