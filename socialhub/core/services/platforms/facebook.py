"""Facebook Login and the Instagram Business accounts linked to Facebook Pages.

Both platforms share the Graph API dialog and token endpoints. Facebook
swaps the short-lived user token for a long-lived one before storing it.
Instagram goes further: it walks the user's Pages, finds the first one with a
linked Instagram Business Account and stores that account's identity with
the Page-scoped token.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from socialhub.core.models.platform_connection import Platform
from socialhub.core.services.platforms.base import (
    ConnectionGrant,
    OAuthCredentials,
    OAuthExchangeError,
    PlatformAdapter,
    PlatformAPIError,
    PlatformIdentity,
    TokenSet,
)

logger = logging.getLogger(__name__)

GRAPH_API_VERSION = "v18.0"
GRAPH_API_BASE = f"https://graph.facebook.com/{GRAPH_API_VERSION}"

IG_ACCOUNT_FIELDS = "instagram_business_account{id,username,profile_picture_url}"


class FacebookAdapter(PlatformAdapter):
    platform = Platform.FACEBOOK
    authorize_url = f"https://www.facebook.com/{GRAPH_API_VERSION}/dialog/oauth"
    token_url = f"{GRAPH_API_BASE}/oauth/access_token"
    scopes = [
        "public_profile",
        "email",
        "pages_show_list",
        "pages_read_engagement",
        "pages_manage_posts",
        "instagram_basic",
        "instagram_content_publish",
    ]
    scope_separator = ","

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
            method="GET",
            params={
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
            },
        )
        return TokenSet.from_payload(data)

    async def exchange_for_long_lived_token(
        self, access_token: str, client_id: str, client_secret: str
    ) -> TokenSet:
        data = await self._token_request(
            "get long-lived token",
            method="GET",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": client_id,
                "client_secret": client_secret,
                "fb_exchange_token": access_token,
            },
        )
        return TokenSet.from_payload(data)

    async def get_identity(self, access_token: str) -> PlatformIdentity:
        user = await self._get_json(
            f"{GRAPH_API_BASE}/me",
            access_token,
            "get user",
            params={"fields": "id,name,email,picture"},
        )
        if not user.get("id"):
            raise PlatformAPIError("Failed to get user: response had no id")
        picture = ((user.get("picture") or {}).get("data") or {}).get("url")
        return PlatformIdentity(
            id=str(user["id"]),
            username=user.get("name"),
            profile_picture_url=picture,
            raw=user,
        )

    async def _long_lived_tokens(self, code: str, credentials: OAuthCredentials) -> TokenSet:
        short_lived = await self.exchange_code_for_tokens(
            code, credentials.client_id, credentials.client_secret, credentials.redirect_uri
        )
        return await self.exchange_for_long_lived_token(
            short_lived.access_token, credentials.client_id, credentials.client_secret
        )

    async def connect(
        self,
        code: str,
        credentials: OAuthCredentials,
        code_verifier: Optional[str] = None,
    ) -> ConnectionGrant:
        tokens = await self._long_lived_tokens(code, credentials)
        identity = await self.get_identity(tokens.access_token)
        return ConnectionGrant(tokens=tokens, identity=identity)


class InstagramAdapter(FacebookAdapter):
    platform = Platform.INSTAGRAM

    async def get_pages(self, access_token: str) -> list[dict[str, Any]]:
        payload = await self._get_json(
            f"{GRAPH_API_BASE}/me/accounts",
            access_token,
            "list pages",
            params={"fields": "id,name,access_token,category"},
        )
        return list(payload.get("data") or [])

    async def get_instagram_account(
        self, page_id: str, page_access_token: str
    ) -> Optional[dict[str, Any]]:
        payload = await self._get_json(
            f"{GRAPH_API_BASE}/{page_id}",
            page_access_token,
            "get instagram account",
            params={"fields": IG_ACCOUNT_FIELDS},
        )
        return payload.get("instagram_business_account") or None

    async def get_identity(self, access_token: str) -> PlatformIdentity:
        """Resolve the Instagram account behind a Page-scoped token."""
        payload = await self._get_json(
            f"{GRAPH_API_BASE}/me",
            access_token,
            "get instagram account",
            params={"fields": IG_ACCOUNT_FIELDS},
        )
        account = payload.get("instagram_business_account") or {}
        if not account.get("id"):
            raise PlatformAPIError("No Instagram Business Account is linked to this token")
        return self._identity_from_account(account)

    @staticmethod
    def _identity_from_account(account: dict[str, Any]) -> PlatformIdentity:
        return PlatformIdentity(
            id=str(account["id"]),
            username=account.get("username"),
            profile_picture_url=account.get("profile_picture_url"),
            raw=account,
        )

    async def connect(
        self,
        code: str,
        credentials: OAuthCredentials,
        code_verifier: Optional[str] = None,
    ) -> ConnectionGrant:
        user_tokens = await self._long_lived_tokens(code, credentials)
        pages = await self.get_pages(user_tokens.access_token)

        for page in pages:
            page_id = page.get("id")
            page_token = page.get("access_token")
            if not page_id or not page_token:
                continue
            account = await self.get_instagram_account(str(page_id), page_token)
            if account and account.get("id"):
                logger.info(
                    "Resolved Instagram account %s via page %s", account["id"], page_id
                )
                # Page tokens derived from a long-lived user token do not expire.
                tokens = TokenSet(access_token=page_token, scope=user_tokens.scope)
                return ConnectionGrant(tokens=tokens, identity=self._identity_from_account(account))

        raise OAuthExchangeError(
            "No Instagram Business Account is linked to any of your Facebook Pages"
        )
