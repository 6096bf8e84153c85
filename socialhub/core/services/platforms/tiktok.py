"""TikTok Login Kit v2 with PKCE."""

from __future__ import annotations

from typing import Any, Optional

from socialhub.core.models.platform_connection import Platform
from socialhub.core.services.platforms.base import (
    OAuthExchangeError,
    PlatformAdapter,
    PlatformAPIError,
    PlatformIdentity,
    TokenSet,
)

TIKTOK_API_BASE = "https://open.tiktokapis.com/v2"


def _api_error(payload: dict[str, Any]) -> Optional[str]:
    """TikTok reports errors in the body, sometimes with HTTP 200."""
    error = payload.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        if error.get("code") in (None, "ok"):
            return None
        return error.get("message") or str(error.get("code"))
    return payload.get("error_description") or str(error)


class TikTokAdapter(PlatformAdapter):
    platform = Platform.TIKTOK
    requires_pkce = True
    authorize_url = "https://www.tiktok.com/v2/auth/authorize/"
    token_url = f"{TIKTOK_API_BASE}/oauth/token/"
    user_url = f"{TIKTOK_API_BASE}/user/info/"
    scopes = ["user.info.basic", "video.publish", "video.upload"]
    scope_separator = ","

    def authorization_params(
        self, client_id: str, redirect_uri: str, state: str
    ) -> dict[str, str]:
        params = super().authorization_params(client_id, redirect_uri, state)
        params["client_key"] = params.pop("client_id")
        return params

    def _tokens(self, payload: dict[str, Any], action: str) -> TokenSet:
        message = _api_error(payload)
        if message:
            raise OAuthExchangeError(f"Failed to {action}: {message}")
        body = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        return TokenSet.from_payload(body)

    async def exchange_code_for_tokens(
        self,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
    ) -> TokenSet:
        if not code_verifier:
            raise ValueError("TikTok code exchange requires the PKCE code verifier")
        payload = await self._token_request(
            "exchange code",
            data={
                "client_key": client_id,
                "client_secret": client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
            },
        )
        return self._tokens(payload, "exchange code")

    async def refresh_access_token(
        self, refresh_token: str, client_id: str, client_secret: str
    ) -> TokenSet:
        payload = await self._token_request(
            "refresh token",
            data={
                "client_key": client_id,
                "client_secret": client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )
        return self._tokens(payload, "refresh token")

    async def get_identity(self, access_token: str) -> PlatformIdentity:
        payload = await self._get_json(
            self.user_url,
            access_token,
            "get user",
            params={"fields": "open_id,union_id,avatar_url,display_name"},
        )
        message = _api_error(payload)
        if message:
            raise PlatformAPIError(f"Failed to get user: {message}")
        user = (payload.get("data") or {}).get("user") or {}
        if not user.get("open_id"):
            raise PlatformAPIError("Failed to get user: response had no open_id")
        return PlatformIdentity(
            id=str(user["open_id"]),
            username=user.get("display_name"),
            profile_picture_url=user.get("avatar_url"),
            raw=user,
        )
