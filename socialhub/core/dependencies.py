"""
FastAPI dependencies.

Everything a router needs is built here so tests can swap any piece through
``app.dependency_overrides``.
"""

import logging
from functools import lru_cache
from typing import Annotated, AsyncGenerator
from uuid import UUID

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import SecurityScopes
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.core.config import Settings, get_settings
from socialhub.core.interfaces import OAuthStateStore
from socialhub.core.models.db_helper import db_helper
from socialhub.core.models.user import User
from socialhub.core.repositories.oauth_app_credential_repository import (
    OAuthAppCredentialRepository,
)
from socialhub.core.repositories.platform_connection_repository import (
    PlatformConnectionRepository,
)
from socialhub.core.repositories.user_repository import UserRepository
from socialhub.core.services.oauth_credentials_service import OAuthCredentialsService
from socialhub.core.services.oauth_state import (
    CookiePolicy,
    CookieStateStore,
    RedisConnection,
    RedisStateStore,
)
from socialhub.core.services.platforms import PlatformAdapterRegistry
from socialhub.core.services.security import TokenDecodeError, decode_access_token, oauth2_scheme
from socialhub.core.services.token_cipher import TokenCipher
from socialhub.core.use_cases.connect_platform_use_case import ConnectPlatformUseCase
from socialhub.core.use_cases.refresh_connection_use_case import RefreshConnectionUseCase
from socialhub.core.use_cases.test_connection_use_case import TestConnectionUseCase

logger = logging.getLogger(__name__)


# ============================================================================
# Database
# ============================================================================


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with db_helper.session_factory() as session:
        yield session


def get_user_repository(
    session: Annotated[AsyncSession, Depends(get_session)]
) -> UserRepository:
    return UserRepository(session)


def get_platform_connection_repository(
    session: Annotated[AsyncSession, Depends(get_session)]
) -> PlatformConnectionRepository:
    return PlatformConnectionRepository(session)


def get_oauth_app_credential_repository(
    session: Annotated[AsyncSession, Depends(get_session)]
) -> OAuthAppCredentialRepository:
    return OAuthAppCredentialRepository(session)


# ============================================================================
# Services
# ============================================================================


@lru_cache
def get_platform_registry() -> PlatformAdapterRegistry:
    return PlatformAdapterRegistry.default(timeout=get_settings().oauth.http_timeout)


@lru_cache
def get_redis_connection() -> RedisConnection:
    return RedisConnection(get_settings().redis.url)


def get_token_cipher(settings: Annotated[Settings, Depends(get_settings)]) -> TokenCipher:
    return TokenCipher(settings.encryption.token_key_bytes)


def get_oauth_credentials_service(
    repo: Annotated[OAuthAppCredentialRepository, Depends(get_oauth_app_credential_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OAuthCredentialsService:
    return OAuthCredentialsService(repo=repo, settings=settings)


def get_oauth_state_store(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> OAuthStateStore:
    policy = CookiePolicy(secure=settings.cookie_secure)
    if settings.oauth.state_backend == "redis":
        return RedisStateStore(
            get_redis_connection(),
            request.cookies,
            policy,
            session_ttl=settings.oauth.state_ttl_seconds,
        )
    return CookieStateStore(request.cookies, policy)


def get_connect_platform_use_case(
    session: Annotated[AsyncSession, Depends(get_session)],
    adapters: Annotated[PlatformAdapterRegistry, Depends(get_platform_registry)],
    credentials_service: Annotated[
        OAuthCredentialsService, Depends(get_oauth_credentials_service)
    ],
    cipher: Annotated[TokenCipher, Depends(get_token_cipher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ConnectPlatformUseCase:
    return ConnectPlatformUseCase(
        session=session,
        adapters=adapters,
        credentials_service=credentials_service,
        cipher=cipher,
        state_ttl=settings.oauth.state_ttl_seconds,
    )


def get_test_connection_use_case(
    session: Annotated[AsyncSession, Depends(get_session)],
    adapters: Annotated[PlatformAdapterRegistry, Depends(get_platform_registry)],
    cipher: Annotated[TokenCipher, Depends(get_token_cipher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TestConnectionUseCase:
    return TestConnectionUseCase(
        session=session,
        adapters=adapters,
        cipher=cipher,
        allow_legacy_plaintext=settings.encryption.allow_legacy_plaintext,
    )


def get_refresh_connection_use_case(
    session: Annotated[AsyncSession, Depends(get_session)],
    adapters: Annotated[PlatformAdapterRegistry, Depends(get_platform_registry)],
    credentials_service: Annotated[
        OAuthCredentialsService, Depends(get_oauth_credentials_service)
    ],
    cipher: Annotated[TokenCipher, Depends(get_token_cipher)],
) -> RefreshConnectionUseCase:
    return RefreshConnectionUseCase(
        session=session,
        adapters=adapters,
        credentials_service=credentials_service,
        cipher=cipher,
    )


# ============================================================================
# Authentication
# ============================================================================


async def get_current_user(
    security_scopes: SecurityScopes,
    token: Annotated[str, Depends(oauth2_scheme)],
    repo: Annotated[UserRepository, Depends(get_user_repository)],
) -> User:
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'
    else:
        authenticate_value = "Bearer"

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = decode_access_token(token)
        user_id = UUID(str(payload.get("sub")))
    except (TokenDecodeError, ValueError):
        raise credentials_exception

    granted = payload.get("scopes", [])
    for scope in security_scopes.scopes:
        if scope not in granted:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
                headers={"WWW-Authenticate": authenticate_value},
            )

    user = await repo.get_by_id(user_id)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(
    current_user: Annotated[User, Security(get_current_user, scopes=["me"])]
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


async def get_current_admin_user(
    current_user: Annotated[User, Security(get_current_user, scopes=["admin"])]
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    return current_user
