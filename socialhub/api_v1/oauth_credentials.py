"""Admin CRUD for OAuth app credentials."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.api_v1.schemas import OAuthCredentialCreate, OAuthCredentialResponse
from socialhub.core.dependencies import (
    get_current_admin_user,
    get_oauth_credentials_service,
    get_session,
)
from socialhub.core.models.oauth_app_credential import OAuthAppCredential
from socialhub.core.models.user import User
from socialhub.core.services.oauth_credentials_service import OAuthCredentialsService
from socialhub.core.use_cases.connect_platform_use_case import UnsupportedPlatform, parse_platform

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/oauth-credentials", tags=["admin"])


def _to_response(row: OAuthAppCredential, service: OAuthCredentialsService) -> OAuthCredentialResponse:
    return OAuthCredentialResponse(
        id=row.id,
        platform=row.platform,
        client_id=row.client_id,
        client_secret=service.masked_secret(row),
        redirect_uri=row.redirect_uri,
        additional_config=row.additional_config,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("", response_model=list[OAuthCredentialResponse])
async def list_credentials(
    admin: Annotated[User, Depends(get_current_admin_user)],
    service: Annotated[OAuthCredentialsService, Depends(get_oauth_credentials_service)],
) -> list[OAuthCredentialResponse]:
    rows = await service.list_credentials()
    return [_to_response(row, service) for row in rows]


@router.post("", response_model=OAuthCredentialResponse, status_code=status.HTTP_201_CREATED)
async def save_credentials(
    payload: OAuthCredentialCreate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    service: Annotated[OAuthCredentialsService, Depends(get_oauth_credentials_service)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OAuthCredentialResponse:
    """Create or replace the credentials for a platform."""
    row = await service.save(
        platform=payload.platform,
        client_id=payload.client_id,
        client_secret=payload.client_secret,
        redirect_uri=str(payload.redirect_uri) if payload.redirect_uri else None,
        additional_config=payload.additional_config,
        is_active=payload.is_active,
    )
    await session.commit()
    logger.info("Admin %s saved OAuth credentials for %s", admin.username, payload.platform.value)
    return _to_response(row, service)


@router.delete("/{platform}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_credentials(
    platform: str,
    admin: Annotated[User, Depends(get_current_admin_user)],
    service: Annotated[OAuthCredentialsService, Depends(get_oauth_credentials_service)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> None:
    try:
        parsed = parse_platform(platform)
    except UnsupportedPlatform as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if not await service.delete(parsed):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No OAuth credentials stored for {parsed.value}",
        )
    await session.commit()
    logger.info("Admin %s deleted OAuth credentials for %s", admin.username, parsed.value)
