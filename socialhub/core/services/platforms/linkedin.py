"""LinkedIn OAuth 2.0 with OpenID Connect userinfo."""

from __future__ import annotations

from typing import Optional

from socialhub.core.models.platform_connection import Platform
from socialhub.core.services.platforms.base import (
    PlatformAdapter,
    PlatformAPIError,
    PlatformIdentity,
    TokenSet,
)


class LinkedInAdapter(PlatformAdapter):
    platform = Platform.LINKEDIN
    authorize_url = "https://www.linkedin.com/oauth/v2/authorization"
    token_url = "https://www.linkedin.com/oauth/v2/accessToken"
    userinfo_url = "https://api.linkedin.com/v2/userinfo"
    scopes = ["openid", "profile", "email", "w_member_social"]

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
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
        return TokenSet.from_payload(data)

    async def refresh_access_token(
        self, refresh_token: str, client_id: str, client_secret: str
    ) -> TokenSet:
        data = await self._token_request(
            "refresh token",
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
        return TokenSet.from_payload(data)

    async def get_identity(self, access_token: str) -> PlatformIdentity:
        profile = await self._get_json(self.userinfo_url, access_token, "get user")
        if not profile.get("sub"):
            raise PlatformAPIError("Failed to get user: userinfo had no subject")
        name = " ".join(
            part for part in (profile.get("given_name"), profile.get("family_name")) if part
        )
        return PlatformIdentity(
            id=str(profile["sub"]),
            username=name or profile.get("name"),
            profile_picture_url=profile.get("picture"),
            raw=profile,
        )
