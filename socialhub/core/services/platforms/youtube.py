"""YouTube channels through Google OAuth 2.0."""

from __future__ import annotations

from typing import Optional

from socialhub.core.models.platform_connection import Platform
from socialhub.core.services.platforms.base import (
    PlatformAdapter,
    PlatformAPIError,
    PlatformIdentity,
    TokenSet,
)


class QuotaExceeded(PlatformAPIError):
    """YouTube Data API quota is exhausted for the day."""


class YouTubeAdapter(PlatformAdapter):
    platform = Platform.YOUTUBE
    authorize_url = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url = "https://oauth2.googleapis.com/token"
    channels_url = "https://www.googleapis.com/youtube/v3/channels"
    scopes = [
        "https://www.googleapis.com/auth/youtube.upload",
        "https://www.googleapis.com/auth/youtube.readonly",
        "https://www.googleapis.com/auth/userinfo.profile",
    ]
    default_title = "YouTube Channel"

    def authorization_params(
        self, client_id: str, redirect_uri: str, state: str
    ) -> dict[str, str]:
        params = super().authorization_params(client_id, redirect_uri, state)
        # Offline access with forced consent so Google always returns a refresh token.
        params.update({"access_type": "offline", "prompt": "consent"})
        return params

    async def exchange_code_for_tokens(
        self,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
    ) -> TokenSet:
        data = await self._token_request(
            "exchange code",
            data={
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        return TokenSet.from_payload(data)

    async def refresh_access_token(
        self, refresh_token: str, client_id: str, client_secret: str
    ) -> TokenSet:
        data = await self._token_request(
            "refresh token",
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )
        tokens = TokenSet.from_payload(data)
        # Google omits the refresh token on refresh; keep using the current one.
        tokens.refresh_token = tokens.refresh_token or refresh_token
        return tokens

    async def get_identity(self, access_token: str) -> PlatformIdentity:
        try:
            payload = await self._get_json(
                self.channels_url,
                access_token,
                "get channel",
                params={"part": "snippet", "mine": "true"},
            )
        except PlatformAPIError as exc:
            if exc.status_code == 403 and "quota" in str(exc).lower():
                raise QuotaExceeded(str(exc), status_code=403) from exc
            raise

        items = payload.get("items") or []
        if not items:
            raise PlatformAPIError("No YouTube channel found for this Google account")
        channel = items[0]
        snippet = channel.get("snippet") or {}
        thumbnail = ((snippet.get("thumbnails") or {}).get("default") or {}).get("url")
        return PlatformIdentity(
            id=str(channel.get("id")),
            username=snippet.get("title") or self.default_title,
            profile_picture_url=thumbnail,
            raw=channel,
        )
