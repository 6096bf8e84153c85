"""Connected platform management for the current user."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.api_v1.schemas import (
    ConnectionTestResponse,
    PlatformConnectionListResponse,
    PlatformConnectionResponse,
    PlatformRequest,
    PlatformStatus,
    PlatformStatusResponse,
)
from socialhub.core.dependencies import (
    get_current_active_user,
    get_oauth_credentials_service,
    get_platform_connection_repository,
    get_refresh_connection_use_case,
    get_session,
    get_test_connection_use_case,
)
from socialhub.core.models.user import User
from socialhub.core.repositories.platform_connection_repository import (
    PlatformConnectionRepository,
)
from socialhub.core.services.oauth_credentials_service import (
    MissingOAuthCredentials,
    OAuthCredentialsService,
)
from socialhub.core.services.platforms import OAuthExchangeError, RefreshNotSupported
from socialhub.core.services.token_cipher import TokenDecryptionError
from socialhub.core.use_cases.connect_platform_use_case import UnsupportedPlatform, parse_platform
from socialhub.core.use_cases.refresh_connection_use_case import RefreshConnectionUseCase
from socialhub.core.use_cases.test_connection_use_case import (
    ConnectionNotFound,
    TestConnectionUseCase,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/platforms", tags=["platforms"])


@router.get("", response_model=PlatformConnectionListResponse)
async def list_connections(
    current_user: Annotated[User, Depends(get_current_active_user)],
    repo: Annotated[PlatformConnectionRepository, Depends(get_platform_connection_repository)],
) -> PlatformConnectionListResponse:
    connections = await repo.list_active_for_user(current_user.id)
    return PlatformConnectionListResponse(
        items=[PlatformConnectionResponse.model_validate(c) for c in connections],
        total=len(connections),
    )


@router.get("/status", response_model=PlatformStatusResponse)
async def platform_status(
    current_user: Annotated[User, Depends(get_current_active_user)],
    credentials_service: Annotated[
        OAuthCredentialsService, Depends(get_oauth_credentials_service)
    ],
) -> PlatformStatusResponse:
    """Which platforms have OAuth app credentials configured, and where they come from."""
    statuses = await credentials_service.status()
    return PlatformStatusResponse(
        platforms=[
            PlatformStatus(
                platform=s.platform,
                configured=s.configured,
                source=s.source,
                missing=s.missing,
            )
            for s in statuses
        ]
    )


@router.post("/test", response_model=ConnectionTestResponse)
async def test_connection(
    payload: PlatformRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    use_case: Annotated[TestConnectionUseCase, Depends(get_test_connection_use_case)],
) -> ConnectionTestResponse:
    try:
        result = await use_case.execute(current_user.id, payload.platform)
    except UnsupportedPlatform as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ConnectionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    return ConnectionTestResponse(
        success=result.success,
        platform=result.platform,
        user=result.user,
        message=result.message,
    )


@router.post("/refresh", response_model=PlatformConnectionResponse)
async def refresh_connection(
    payload: PlatformRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    use_case: Annotated[RefreshConnectionUseCase, Depends(get_refresh_connection_use_case)],
) -> PlatformConnectionResponse:
    try:
        connection = await use_case.execute(current_user.id, payload.platform)
    except UnsupportedPlatform as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ConnectionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except RefreshNotSupported as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except TokenDecryptionError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Stored credentials could not be read. Please reconnect the account.",
        )
    except MissingOAuthCredentials as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    except OAuthExchangeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return PlatformConnectionResponse.model_validate(connection)


@router.delete("/{platform}", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    platform: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    repo: Annotated[PlatformConnectionRepository, Depends(get_platform_connection_repository)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> None:
    try:
        parsed = parse_platform(platform)
    except UnsupportedPlatform as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if not await repo.deactivate(current_user.id, parsed.value):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active connection found for {parsed.value}",
        )
    await session.commit()
    logger.info("User %s disconnected %s", current_user.id, parsed.value)
