"""Current user profile."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from socialhub.api_v1.schemas import UserResponse
from socialhub.core.dependencies import get_current_active_user
from socialhub.core.models.user import User

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_users_me(
    current_user: Annotated[User, Depends(get_current_active_user)]
) -> User:
    return current_user
