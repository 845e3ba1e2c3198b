"""FastAPI test client fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wasteflow.api.app import include_routers
from wasteflow.api.middleware import CorrelationIdMiddleware, add_exception_handlers
from wasteflow.models.process import ProcessCreate, ProcessType
from wasteflow.models.user import Role, User

if TYPE_CHECKING:
    from wasteflow.config import Settings
    from wasteflow.db import Database

ADMIN_HEADERS = {"X-User-ID": "admin-1"}
USER_HEADERS = {"X-User-ID": "user-1"}


def _create_test_app(db: Database, settings: Settings) -> FastAPI:
    """Create a FastAPI app with injected test db/settings (no lifespan)."""
    app = FastAPI(title="Wasteflow Test")

    app.state.db = db
    app.state.settings = settings

    app.add_middleware(CorrelationIdMiddleware)
    add_exception_handlers(app)
    include_routers(app)
    return app


@pytest.fixture()
def client(db: Database, settings: Settings) -> TestClient:
    db.upsert_user(User(id="admin-1", email="admin@example.com", role=Role.ADMIN))
    app = _create_test_app(db, settings)
    return TestClient(app)


@pytest.fixture()
def populated_db(db: Database) -> Database:
    """DB with a few processes of different types."""
    for name, process_type in [
        ("Compost A", ProcessType.ORGANIC),
        ("PET Line", ProcessType.PLASTIC),
        ("Scrap Sort", ProcessType.METAL),
    ]:
        db.create_process(
            ProcessCreate(
                name=name,
                description=f"{name} line",
                process_type=process_type,
                estimated_duration=60,
            )
        )
    return db


@pytest.fixture()
def populated_client(populated_db: Database, settings: Settings) -> TestClient:
    populated_db.upsert_user(User(id="admin-1", role=Role.ADMIN))
    app = _create_test_app(populated_db, settings)
    return TestClient(app)


@pytest.fixture()
def process_id(client: TestClient) -> str:
    resp = client.post(
        "/api/v1/processes",
        json={
            "name": "Compost A",
            "description": "Windrow composting",
            "processType": "organic",
            "estimatedDuration": 60,
        },
        headers=USER_HEADERS,
    )
    assert resp.status_code == 201
    return resp.json()["id"]
