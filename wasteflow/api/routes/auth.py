"""Current-user endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from wasteflow.api.deps import CurrentUserDep
from wasteflow.api.schemas import UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/user", response_model=UserResponse)
def get_current_user(user: CurrentUserDep) -> UserResponse:
    return UserResponse.from_user(user)
