"""Password login issuing bearer tokens (FastAPI OAuth2 password flow)."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from socialhub.api_v1.schemas import Token
from socialhub.core.dependencies import get_user_repository
from socialhub.core.repositories.user_repository import UserRepository
from socialhub.core.services.auth_service import authenticate_user, scopes_for
from socialhub.core.services.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
) -> Token:
    user = await authenticate_user(form_data.username, form_data.password, user_repo)
    if not user:
        logger.warning("Authentication failed for user %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    requested = form_data.scopes or ["me", "admin"]
    scopes = scopes_for(user, requested)
    access_token = create_access_token(user.id, scopes)
    logger.info("Issued access token for %s", user.username)
    return Token(access_token=access_token, scopes=scopes)
