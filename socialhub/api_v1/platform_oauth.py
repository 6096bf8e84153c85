"""Browser-facing OAuth endpoints: authorize redirect and platform callback."""

from __future__ import annotations

import logging
from typing import Annotated, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse, RedirectResponse

from socialhub.core.config import Settings, get_settings
from socialhub.core.dependencies import (
    get_connect_platform_use_case,
    get_current_active_user,
    get_oauth_state_store,
)
from socialhub.core.interfaces import OAuthStateStore
from socialhub.core.models.user import User
from socialhub.core.services.oauth_credentials_service import MissingOAuthCredentials
from socialhub.core.services.oauth_state import StateStoreUnavailable
from socialhub.core.use_cases.connect_platform_use_case import (
    ConnectPlatformUseCase,
    OAuthFlowError,
    UnsupportedPlatform,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["platform-oauth"])


def _with_query(url: str, extra: dict[str, str]) -> str:
    parsed = urlparse(url)
    current_qs = dict(parse_qsl(parsed.query, keep_blank_values=True))
    current_qs.update(extra)
    return urlunparse(parsed._replace(query=urlencode(current_qs)))


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/{platform}", response_class=Response, response_model=None)
async def authorize(
    platform: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    use_case: Annotated[ConnectPlatformUseCase, Depends(get_connect_platform_use_case)],
    store: Annotated[OAuthStateStore, Depends(get_oauth_state_store)],
    return_url: bool = Query(
        False,
        description="Return JSON with the authorization URL instead of redirecting (for XHR callers).",
    ),
) -> Response:
    """Start the connection flow and send the browser to the platform's consent screen."""
    try:
        auth_url = await use_case.start(platform, current_user.id, store)
    except UnsupportedPlatform as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except MissingOAuthCredentials as exc:
        logger.error("OAuth app credentials missing for %s", exc.platform.value)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )
    except StateStoreUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="OAuth session storage is unavailable",
        )

    response: Response = JSONResponse({"auth_url": auth_url}) if return_url else _redirect(auth_url)
    await store.commit(response)
    return response


@router.get("/{platform}/callback", response_class=Response, response_model=None)
async def callback(
    platform: str,
    use_case: Annotated[ConnectPlatformUseCase, Depends(get_connect_platform_use_case)],
    store: Annotated[OAuthStateStore, Depends(get_oauth_state_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    code: Annotated[Optional[str], Query()] = None,
    state: Annotated[Optional[str], Query()] = None,
    error: Annotated[Optional[str], Query()] = None,
) -> Response:
    """Finish the flow and send the browser back to the settings page."""
    settings_url = settings.frontend.settings_url
    try:
        await use_case.complete(platform, code=code, state=state, error=error, store=store)
    except OAuthFlowError as exc:
        target = settings.frontend.login_url if exc.redirect_to_login else settings_url
        return _redirect(_with_query(target, {"error": exc.code}))
    except Exception as exc:
        logger.exception("Unexpected error completing %s OAuth callback", platform)
        return _redirect(_with_query(settings_url, {"error": str(exc) or "oauth_error"}))

    response = _redirect(_with_query(settings_url, {"success": "connected", "platform": platform}))
    await store.commit(response)
    return response
