"""FastAPI application factory and entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI

from wasteflow import __version__
from wasteflow.api.middleware import CorrelationIdMiddleware, add_exception_handlers
from wasteflow.api.routes import admin, auth, processes, system
from wasteflow.config import Settings
from wasteflow.db import Database
from wasteflow.logging import configure_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize DB and settings on startup, cleanup on shutdown."""
    settings = Settings()
    settings.ensure_data_dir()

    configure_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
    )

    db = Database(settings.db_path)
    db.init_schema()

    app.state.db = db
    app.state.settings = settings

    logger.info("Wasteflow API started", host=settings.api_host, port=settings.api_port)
    yield

    db.close()
    logger.info("Wasteflow API shut down")


def include_routers(app: FastAPI) -> None:
    """Mount every router under the versioned API prefix."""
    app.include_router(system.router, prefix=API_PREFIX)
    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(processes.router, prefix=API_PREFIX)
    app.include_router(admin.router, prefix=API_PREFIX)


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title="Wasteflow",
        description="Waste-processing lifecycle tracking API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(CorrelationIdMiddleware)
    add_exception_handlers(app)

    # Prometheus metrics endpoint
    from prometheus_client import make_asgi_app

    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    include_routers(app)
    return app


def main() -> None:
    """Entry point for `wasteflow-api` command."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "wasteflow.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
    )
