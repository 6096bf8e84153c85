"""Helpers for generating test data and reading OAuth cookies."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie
from typing import Iterator, Optional
from uuid import uuid4

import httpx

from socialhub.core.dependencies import get_current_active_user, get_current_admin_user
from socialhub.core.models.platform_connection import PlatformConnection
from socialhub.core.models.user import User, UserRole
from socialhub.core.services.token_cipher import TokenCipher
from socialhub.main import app


async def create_user(
    db_session,
    *,
    role: UserRole = UserRole.BASIC,
    hashed_password: str = "hashed-password",
    is_active: bool = True,
) -> User:
    user = User(
        username=f"user-{uuid4()}",
        full_name="SocialHub Test User",
        hashed_password=hashed_password,
        role=role.value,
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def create_connection(
    db_session,
    user: User,
    cipher: TokenCipher,
    *,
    platform: str = "linkedin",
    access_token: str = "stored-access-token",
    refresh_token: Optional[str] = None,
    platform_user_id: str = "acct-1",
    platform_username: str = "Stored Account",
    is_active: bool = True,
    encrypt: bool = True,
) -> PlatformConnection:
    connection = PlatformConnection(
        user_id=user.id,
        platform=platform,
        platform_user_id=platform_user_id,
        platform_username=platform_username,
        access_token=cipher.encrypt(access_token) if encrypt else access_token,
        refresh_token=cipher.encrypt_optional(refresh_token) if encrypt else refresh_token,
        token_expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        is_active=is_active,
    )
    db_session.add(connection)
    await db_session.commit()
    await db_session.refresh(connection)
    return connection


@contextmanager
def override_active_user(user: User) -> Iterator[None]:
    async def _get_active_user_override() -> User:
        return user

    app.dependency_overrides[get_current_active_user] = _get_active_user_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_current_active_user, None)


@contextmanager
def override_admin_user(user: User) -> Iterator[None]:
    async def _get_admin_user_override() -> User:
        return user

    app.dependency_overrides[get_current_admin_user] = _get_admin_user_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_current_admin_user, None)


def response_cookies(response: httpx.Response) -> dict[str, SimpleCookie]:
    """Parse every Set-Cookie header of ``response`` keyed by cookie name."""
    cookies: dict[str, SimpleCookie] = {}
    for header in response.headers.get_list("set-cookie"):
        jar = SimpleCookie()
        jar.load(header)
        for name in jar:
            cookies[name] = jar
    return cookies


def cookie_values(response: httpx.Response) -> dict[str, str]:
    return {name: jar[name].value for name, jar in response_cookies(response).items()}


def cookie_header(values: dict[str, str]) -> dict[str, str]:
    return {"Cookie": "; ".join(f"{name}={value}" for name, value in values.items())}
