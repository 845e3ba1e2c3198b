"""User and caller identity models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """A known account. The role decides which process fields it may change."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: Role = Role.USER

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Caller(BaseModel):
    """Identity attached to every engine invocation. Trusted as given."""

    model_config = ConfigDict(frozen=True)

    caller_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User) -> Caller:
        return cls(caller_id=user.id, role=user.role)
