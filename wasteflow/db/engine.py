"""SQLAlchemy engine and session factory construction for SQLite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session


def create_db_engine(db_path: str) -> Engine:
    """Create an engine for *db_path* (a file path or ``":memory:"``).

    The connection is shared across threads so FastAPI's threadpool can use it.
    An in-memory database is pinned to a single connection, otherwise every
    new connection would see an empty schema.
    """
    connect_args = {"check_same_thread": False}
    if db_path == ":memory:":
        engine = create_engine(
            "sqlite://",
            connect_args=connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(f"sqlite:///{db_path}", connect_args=connect_args)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if db_path != ":memory:":
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)
