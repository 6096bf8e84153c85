"""User authentication helpers."""

from __future__ import annotations

from socialhub.core.models.user import User
from socialhub.core.repositories.user_repository import UserRepository
from socialhub.core.services.security import verify_password


async def authenticate_user(username: str, password: str, repo: UserRepository) -> User | None:
    user = await repo.get_by_username(username)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def scopes_for(user: User, requested: list[str]) -> list[str]:
    """Grant the requested scopes the user's role allows; ``me`` is always granted."""
    allowed = {"me", "admin"} if user.is_admin else {"me"}
    granted = [scope for scope in requested if scope in allowed]
    if "me" not in granted:
        granted.insert(0, "me")
    return granted
