"""X (Twitter) OAuth 2.0 with PKCE."""

from __future__ import annotations

from typing import Optional

import httpx

from socialhub.core.models.platform_connection import Platform
from socialhub.core.services.platforms.base import (
    PlatformAdapter,
    PlatformAPIError,
    PlatformIdentity,
    TokenSet,
)


class TwitterAdapter(PlatformAdapter):
    platform = Platform.TWITTER
    requires_pkce = True
    authorize_url = "https://twitter.com/i/oauth2/authorize"
    token_url = "https://api.twitter.com/2/oauth2/token"
    user_url = "https://api.twitter.com/2/users/me"
    scopes = ["tweet.read", "tweet.write", "users.read", "offline.access"]

    async def exchange_code_for_tokens(
        self,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
    ) -> TokenSet:
        if not code_verifier:
            raise ValueError("Twitter code exchange requires the PKCE code verifier")
        data = await self._token_request(
            "exchange code",
            auth=httpx.BasicAuth(client_id, client_secret),
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
            },
        )
        return TokenSet.from_payload(data)

    async def refresh_access_token(
        self, refresh_token: str, client_id: str, client_secret: str
    ) -> TokenSet:
        data = await self._token_request(
            "refresh token",
            auth=httpx.BasicAuth(client_id, client_secret),
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        return TokenSet.from_payload(data)

    async def get_identity(self, access_token: str) -> PlatformIdentity:
        payload = await self._get_json(
            self.user_url,
            access_token,
            "get user",
            params={"user.fields": "profile_image_url"},
        )
        user = payload.get("data") or {}
        if not user.get("id"):
            raise PlatformAPIError("Failed to get user: response had no user id")
        return PlatformIdentity(
            id=str(user["id"]),
            username=user.get("username"),
            profile_picture_url=user.get("profile_image_url"),
            raw=user,
        )
