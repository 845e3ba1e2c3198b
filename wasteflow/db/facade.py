"""SQLAlchemy-backed database connection and CRUD helpers."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from wasteflow.db.engine import create_db_engine, create_session_factory
from wasteflow.db.orm import Base, ProcessRow, UserRow
from wasteflow.errors import StorageError, ValidationError
from wasteflow.models.process import Process, ProcessStatus, ProcessType
from wasteflow.models.user import Role, User

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session, sessionmaker

    from wasteflow.models.process import ProcessCreate

logger = structlog.get_logger()

# Columns a partial update may touch. id and created_at never change.
UPDATABLE_PROCESS_FIELDS = frozenset(
    {
        "name",
        "description",
        "process_type",
        "status",
        "progress",
        "estimated_duration",
        "actual_duration",
        "error_message",
        "started_at",
        "completed_at",
    }
)


class Database:
    """SQLAlchemy-backed wrapper with CRUD helpers for processes and users."""

    def __init__(self, db_path: str | Path = ":memory:"):
        self.db_path = str(db_path)
        self._engine: Engine = create_db_engine(self.db_path)
        self._session_factory: sessionmaker[Session] = create_session_factory(self._engine)

    @property
    def engine(self) -> Engine:
        """Expose the SQLAlchemy engine for inspection and advanced use."""
        return self._engine

    @property
    def Session(self) -> sessionmaker[Session]:  # noqa: N802
        """Expose the session factory for consumers that need direct access."""
        return self._session_factory

    def init_schema(self) -> None:
        """Create all tables via ORM metadata."""
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Schema initialization failed: {exc}") from exc

    def close(self) -> None:
        self._engine.dispose()

    def check_connection(self) -> bool:
        """Verify the database is reachable. Returns True or raises StorageError."""
        with self._session() as session:
            session.execute(text("SELECT 1"))
        return True

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Storage operation failed", error=str(exc))
            raise StorageError(str(exc)) from exc

    # --- Processes ---

    def list_processes(self) -> list[Process]:
        """All processes, newest first."""
        with self._session() as session:
            stmt = select(ProcessRow).order_by(ProcessRow.created_at.desc())
            rows = session.scalars(stmt).all()
            return [self._row_to_process(r) for r in rows]

    def get_process(self, process_id: str) -> Process | None:
        with self._session() as session:
            row = session.get(ProcessRow, process_id)
            if row is None:
                return None
            return self._row_to_process(row)

    def create_process(self, data: ProcessCreate) -> Process:
        now = _utcnow_str()
        with self._session() as session:
            row = ProcessRow(
                name=data.name,
                description=data.description,
                process_type=data.process_type.value,
                status=ProcessStatus.STOPPED.value,
                progress=0.0,
                estimated_duration=data.estimated_duration,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return self._row_to_process(row)

    def update_process(self, process_id: str, changes: Mapping[str, Any]) -> Process | None:
        """Merge *changes* over the stored record and refresh ``updated_at``.

        Returns None when the process does not exist.
        """
        unknown = set(changes) - UPDATABLE_PROCESS_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Process field '{field}' cannot be updated", field=field)

        with self._session() as session:
            row = session.get(ProcessRow, process_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, _to_column(value))
            row.updated_at = _utcnow_str()
            session.commit()
            return self._row_to_process(row)

    def delete_process(self, process_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(ProcessRow).where(ProcessRow.id == process_id))
            session.commit()
            return (result.rowcount or 0) > 0

    # --- Users ---

    def get_user(self, user_id: str) -> User | None:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            return self._row_to_user(row)

    def list_users(self) -> list[User]:
        with self._session() as session:
            rows = session.scalars(select(UserRow).order_by(UserRow.created_at)).all()
            return [self._row_to_user(r) for r in rows]

    def upsert_user(self, user: User) -> User:
        """Insert *user* or overwrite the profile and role of an existing id."""
        now = _utcnow_str()
        values = {
            "id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role.value,
            "created_at": now,
            "updated_at": now,
        }
        stmt = sqlite_insert(UserRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserRow.id],
            set_={
                "email": stmt.excluded.email,
                "first_name": stmt.excluded.first_name,
                "last_name": stmt.excluded.last_name,
                "role": stmt.excluded.role,
                "updated_at": now,
            },
        )
        with self._session() as session:
            session.execute(stmt)
            session.commit()
            row = session.get(UserRow, user.id, populate_existing=True)
            assert row is not None
            return self._row_to_user(row)

    def register_user(self, user_id: str) -> User:
        """Insert *user_id* with the default role unless it already exists.

        An existing row is returned untouched, so a concurrent role grant is kept.
        """
        now = _utcnow_str()
        stmt = (
            sqlite_insert(UserRow)
            .values(id=user_id, role=Role.USER.value, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=[UserRow.id])
        )
        with self._session() as session:
            session.execute(stmt)
            session.commit()
            row = session.get(UserRow, user_id, populate_existing=True)
            assert row is not None
            return self._row_to_user(row)

    def set_user_role(self, user_id: str, role: Role) -> User | None:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            row.role = role.value
            row.updated_at = _utcnow_str()
            session.commit()
            return self._row_to_user(row)

    # --- Helpers ---

    @staticmethod
    def _parse_dt(value: str) -> datetime:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))

    @staticmethod
    def _parse_dt_opt(value: str | None) -> datetime | None:
        if value is None:
            return None
        return datetime.fromisoformat(value.replace("Z", "+00:00"))

    @staticmethod
    def _row_to_process(row: ProcessRow) -> Process:
        return Process(
            id=row.id,
            name=row.name,
            description=row.description,
            process_type=ProcessType(row.process_type),
            status=ProcessStatus(row.status),
            progress=row.progress,
            estimated_duration=row.estimated_duration,
            actual_duration=row.actual_duration,
            error_message=row.error_message,
            started_at=Database._parse_dt_opt(row.started_at),
            completed_at=Database._parse_dt_opt(row.completed_at),
            created_at=Database._parse_dt(row.created_at),
            updated_at=Database._parse_dt(row.updated_at),
        )

    @staticmethod
    def _row_to_user(row: UserRow) -> User:
        return User(
            id=row.id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            role=Role(row.role),
            created_at=Database._parse_dt(row.created_at),
            updated_at=Database._parse_dt(row.updated_at),
        )


def _utcnow_str() -> str:
    return _dt_to_str(datetime.now(UTC))


def _dt_to_str(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _to_column(value: Any) -> Any:
    if isinstance(value, datetime):
        return _dt_to_str(value)
    if isinstance(value, Enum):
        return value.value
    return value
