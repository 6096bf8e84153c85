"""Common contract for per-platform OAuth adapters."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import httpx

from socialhub.core.models.platform_connection import Platform

logger = logging.getLogger(__name__)

HttpClientFactory = Callable[..., httpx.AsyncClient]

DEFAULT_TIMEOUT = 20.0


class PlatformAPIError(Exception):
    """A platform API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OAuthExchangeError(PlatformAPIError):
    """The platform rejected an authorization code or refresh grant."""


class RefreshNotSupported(Exception):
    """The platform offers no refresh grant for its tokens."""


@dataclass
class OAuthCredentials:
    client_id: str
    client_secret: str
    redirect_uri: str
    additional_config: dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenSet:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        if not self.expires_in:
            return None
        return datetime.now(timezone.utc) + timedelta(seconds=int(self.expires_in))

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenSet":
        access_token = payload.get("access_token")
        if not access_token:
            raise OAuthExchangeError("Token response did not include an access token")
        expires_in = payload.get("expires_in")
        return cls(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or None,
            expires_in=int(expires_in) if expires_in else None,
            scope=payload.get("scope") or None,
        )


@dataclass
class PlatformIdentity:
    id: str
    username: Optional[str] = None
    profile_picture_url: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class ConnectionGrant:
    """What a completed authorization yields: the tokens to store and whose they are."""

    tokens: TokenSet
    identity: PlatformIdentity


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message") or error.get("code") or str(error)
        if isinstance(error, str):
            return body.get("error_description") or error
        if body.get("message"):
            return str(body["message"])
    return response.text or f"HTTP {response.status_code}"


class PlatformAdapter(abc.ABC):
    """One platform's OAuth dialect: URLs, parameter names and identity lookup."""

    platform: Platform
    requires_pkce: bool = False
    authorize_url: str
    token_url: str
    scopes: list[str] = []
    scope_separator: str = " "

    def __init__(
        self,
        http_client: HttpClientFactory = httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._http_client = http_client
        self._timeout = timeout

    # Authorization -------------------------------------------------------
    def authorization_params(
        self, client_id: str, redirect_uri: str, state: str
    ) -> dict[str, str]:
        return {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": self.scope_separator.join(self.scopes),
            "state": state,
        }

    def get_authorization_url(
        self,
        client_id: str,
        redirect_uri: str,
        state: str,
        code_challenge: Optional[str] = None,
    ) -> str:
        params = self.authorization_params(client_id, redirect_uri, state)
        if self.requires_pkce:
            if not code_challenge:
                raise ValueError(f"{self.platform.value} requires a PKCE code challenge")
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"
        return f"{self.authorize_url}?{urlencode(params)}"

    # Token grants --------------------------------------------------------
    @abc.abstractmethod
    async def exchange_code_for_tokens(
        self,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
    ) -> TokenSet:
        ...

    async def refresh_access_token(
        self, refresh_token: str, client_id: str, client_secret: str
    ) -> TokenSet:
        raise RefreshNotSupported(f"{self.platform.value} tokens cannot be refreshed")

    # Identity ------------------------------------------------------------
    @abc.abstractmethod
    async def get_identity(self, access_token: str) -> PlatformIdentity:
        ...

    async def connect(
        self,
        code: str,
        credentials: OAuthCredentials,
        code_verifier: Optional[str] = None,
    ) -> ConnectionGrant:
        """Exchange the code and look up who granted it."""
        tokens = await self.exchange_code_for_tokens(
            code,
            credentials.client_id,
            credentials.client_secret,
            credentials.redirect_uri,
            code_verifier,
        )
        identity = await self.get_identity(tokens.access_token)
        return ConnectionGrant(tokens=tokens, identity=identity)

    # HTTP helpers --------------------------------------------------------
    async def _request(
        self,
        method: str,
        url: str,
        *,
        error_cls: type[PlatformAPIError] = PlatformAPIError,
        action: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        async with self._http_client(timeout=self._timeout) as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                logger.warning(
                    "%s %s request failed: %s", self.platform.value, action, exc.__class__.__name__
                )
                raise error_cls(f"Failed to {action}: {exc.__class__.__name__}") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "%s %s rejected with status %s", self.platform.value, action, response.status_code
            )
            raise error_cls(f"Failed to {action}: {message}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls(f"Failed to {action}: response was not JSON") from exc
        if not isinstance(data, dict):
            raise error_cls(f"Failed to {action}: unexpected response shape")
        return data

    async def _token_request(
        self, action: str, method: str = "POST", **kwargs: Any
    ) -> dict[str, Any]:
        return await self._request(
            method, self.token_url, error_cls=OAuthExchangeError, action=action, **kwargs
        )

    async def _get_json(self, url: str, access_token: str, action: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        return await self._request("GET", url, action=action, headers=headers, **kwargs)
