"""SQLAlchemy ORM models mapping to the Wasteflow database tables."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, Float, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow_str() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class ProcessRow(Base):
    __tablename__ = "processes"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    process_type: Mapped[str] = mapped_column(Text, nullable=False)

    # Operational fields
    status: Mapped[str] = mapped_column(Text, nullable=False, default="stopped")
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    estimated_duration: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    actual_duration: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    # Lifecycle timestamps
    started_at: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    completed_at: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    created_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)

    __table_args__ = (
        CheckConstraint(
            "status IN ('stopped', 'running', 'paused', 'error', 'completed')",
            name="ck_processes_status",
        ),
        CheckConstraint(
            "process_type IN ('organic', 'plastic', 'metal', 'glass', 'paper', 'electronic')",
            name="ck_processes_type",
        ),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_processes_progress"),
        Index("idx_processes_created_at", "created_at"),
    )


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    email: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True, default=None)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="user")

    created_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False, default=_utcnow_str)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )
