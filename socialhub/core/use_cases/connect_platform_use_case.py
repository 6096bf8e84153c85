"""Authorize and callback halves of the platform connection flow."""

from __future__ import annotations

import hmac
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.core.interfaces import OAuthStateStore
from socialhub.core.models.platform_connection import Platform, PlatformConnection
from socialhub.core.repositories.platform_connection_repository import (
    PlatformConnectionRepository,
)
from socialhub.core.services.oauth_credentials_service import (
    MissingOAuthCredentials,
    OAuthCredentialsService,
)
from socialhub.core.services.oauth_state import (
    STATE_TTL_SECONDS,
    StateStoreUnavailable,
    generate_pkce,
    generate_state,
    state_key,
    user_key,
    verifier_key,
)
from socialhub.core.services.platforms import PlatformAdapterRegistry, PlatformAPIError
from socialhub.core.services.token_cipher import TokenCipher

logger = logging.getLogger(__name__)


class OAuthFlowError(Exception):
    """A callback step failed. ``code`` is the value of the redirect's error parameter."""

    code: str = "oauth_error"
    redirect_to_login: bool = False

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class UnsupportedPlatform(OAuthFlowError):
    code = "unsupported_platform"

    def __init__(self, platform: str):
        super().__init__(f"Unsupported platform: {platform}")
        self.platform = platform


class UserDenied(OAuthFlowError):
    code = "oauth_denied"


class ProtocolMismatch(OAuthFlowError):
    """Missing parameters, a state mismatch or a missing PKCE verifier."""


class SessionExpired(OAuthFlowError):
    code = "session_expired"
    redirect_to_login = True


class ExchangeFailure(OAuthFlowError):
    """The platform refused the code or the identity lookup failed."""

    def __init__(self, message: str):
        super().__init__(message, code=message)


class PersistenceFailure(OAuthFlowError):
    code = "db_error"


class StateUnavailable(OAuthFlowError):
    """The handshake values could not be read back from the state store."""

    code = "state_unavailable"


def parse_platform(value: str) -> Platform:
    platform = Platform.parse(value)
    if platform is None:
        raise UnsupportedPlatform(value)
    return platform


def _same_state(stored: Optional[str], received: str) -> bool:
    if not stored:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), received.encode("utf-8"))


class ConnectPlatformUseCase:
    """
    Drive one OAuth connection from authorize redirect to stored connection.

    The handshake values (state, initiating user, PKCE verifier) travel
    through an ``OAuthStateStore``. The callback never calls a platform unless
    the state it receives matches the stored one exactly.
    """

    def __init__(
        self,
        session: AsyncSession,
        adapters: PlatformAdapterRegistry,
        credentials_service: OAuthCredentialsService,
        cipher: TokenCipher,
        state_ttl: int = STATE_TTL_SECONDS,
    ):
        self.session = session
        self.adapters = adapters
        self.credentials_service = credentials_service
        self.cipher = cipher
        self.state_ttl = state_ttl
        self.connection_repo = PlatformConnectionRepository(session)

    async def start(self, platform_name: str, user_id: UUID, store: OAuthStateStore) -> str:
        """
        Record handshake state and build the platform's authorization URL.

        Raises:
            UnsupportedPlatform: ``platform_name`` is not a known platform
            MissingOAuthCredentials: no client id/secret is configured
        """
        platform = parse_platform(platform_name)
        adapter = self.adapters[platform]
        credentials = await self.credentials_service.resolve(platform)

        state = generate_state()
        code_challenge = None
        if adapter.requires_pkce:
            pkce = generate_pkce()
            code_challenge = pkce.code_challenge
            await store.put(verifier_key(platform.value), pkce.code_verifier, self.state_ttl)

        await store.put(state_key(platform.value), state, self.state_ttl)
        await store.put(user_key(platform.value), str(user_id), self.state_ttl)

        logger.info("Starting %s OAuth for user %s", platform.value, user_id)
        return adapter.get_authorization_url(
            client_id=credentials.client_id,
            redirect_uri=credentials.redirect_uri,
            state=state,
            code_challenge=code_challenge,
        )

    async def complete(
        self,
        platform_name: str,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str],
        store: OAuthStateStore,
    ) -> PlatformConnection:
        """
        Validate the callback, exchange the code and store the connection.

        Raises:
            OAuthFlowError: one of its subclasses, carrying the redirect error code
        """
        platform = parse_platform(platform_name)

        if error:
            logger.info("User denied %s authorization: %s", platform.value, error)
            raise UserDenied(f"Authorization was denied: {error}")

        if not code or not state:
            raise ProtocolMismatch("Missing code or state", code="missing_params")

        stored_state = await self._read(store, state_key(platform.value))
        if not _same_state(stored_state, state):
            logger.warning("Rejected %s callback with invalid state", platform.value)
            raise ProtocolMismatch("State does not match", code="invalid_state")

        user_id = self._parse_user_id(await self._read(store, user_key(platform.value)))
        if user_id is None:
            raise SessionExpired("OAuth session expired")

        adapter = self.adapters[platform]
        code_verifier = None
        if adapter.requires_pkce:
            code_verifier = await self._read(store, verifier_key(platform.value))
            if not code_verifier:
                raise ProtocolMismatch("PKCE verifier is missing", code="missing_verifier")

        try:
            credentials = await self.credentials_service.resolve(platform)
        except MissingOAuthCredentials as exc:
            raise ExchangeFailure(str(exc)) from exc

        try:
            grant = await adapter.connect(code, credentials, code_verifier)
        except PlatformAPIError as exc:
            logger.warning("%s token exchange failed for user %s", platform.value, user_id)
            raise ExchangeFailure(str(exc)) from exc

        try:
            connection = await self.connection_repo.upsert(
                user_id=user_id,
                platform=platform.value,
                platform_user_id=grant.identity.id,
                platform_username=grant.identity.username,
                profile_picture_url=grant.identity.profile_picture_url,
                access_token=self.cipher.encrypt(grant.tokens.access_token),
                refresh_token=self.cipher.encrypt_optional(grant.tokens.refresh_token),
                token_expires_at=grant.tokens.expires_at,
                scope=grant.tokens.scope,
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "Failed to store %s connection for user %s: %s",
                platform.value,
                user_id,
                exc.__class__.__name__,
            )
            raise PersistenceFailure("Could not save the connection") from exc

        await store.delete(state_key(platform.value))
        await store.delete(user_key(platform.value))
        if adapter.requires_pkce:
            await store.delete(verifier_key(platform.value))

        logger.info(
            "Connected %s account %s for user %s",
            platform.value,
            grant.identity.id,
            user_id,
        )
        return connection

    @staticmethod
    async def _read(store: OAuthStateStore, key: str) -> Optional[str]:
        try:
            return await store.get(key)
        except StateStoreUnavailable as exc:
            logger.error("OAuth state store unavailable during callback")
            raise StateUnavailable("OAuth session storage is unavailable") from exc

    @staticmethod
    def _parse_user_id(value: Optional[str]) -> Optional[UUID]:
        if not value:
            return None
        try:
            return UUID(value)
        except ValueError:
            return None
