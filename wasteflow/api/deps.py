"""FastAPI dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from wasteflow.config import Settings
from wasteflow.db import Database
from wasteflow.errors import AuthenticationError
from wasteflow.lifecycle import ProcessLifecycle
from wasteflow.models.user import Caller, User

USER_ID_HEADER = "X-User-ID"


def _get_db(request: Request) -> Database:
    """Get the database instance from app state."""
    return request.app.state.db  # type: ignore[no-any-return]


def _get_settings(request: Request) -> Settings:
    """Get the settings instance from app state."""
    return request.app.state.settings  # type: ignore[no-any-return]


DbDep = Annotated[Database, Depends(_get_db)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]


def _get_lifecycle(db: DbDep) -> ProcessLifecycle:
    return ProcessLifecycle(db)


def _get_current_user(request: Request, db: DbDep) -> User:
    """Resolve the caller from the identity header set by the auth proxy.

    First-seen ids are registered with the default ``user`` role; roles are
    only ever raised through the CLI.
    """
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    if not user_id:
        raise AuthenticationError(f"Missing {USER_ID_HEADER} header")
    user = db.get_user(user_id)
    if user is None:
        user = db.register_user(user_id)
    return user


LifecycleDep = Annotated[ProcessLifecycle, Depends(_get_lifecycle)]
CurrentUserDep = Annotated[User, Depends(_get_current_user)]


def _get_caller(user: CurrentUserDep) -> Caller:
    return Caller.from_user(user)


CallerDep = Annotated[Caller, Depends(_get_caller)]
