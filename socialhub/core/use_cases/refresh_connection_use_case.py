"""Manual refresh of a stored connection's access token."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.core.models.platform_connection import PlatformConnection
from socialhub.core.repositories.platform_connection_repository import (
    PlatformConnectionRepository,
)
from socialhub.core.services.oauth_credentials_service import OAuthCredentialsService
from socialhub.core.services.platforms import PlatformAdapterRegistry, RefreshNotSupported
from socialhub.core.services.token_cipher import TokenCipher
from socialhub.core.use_cases.connect_platform_use_case import parse_platform
from socialhub.core.use_cases.test_connection_use_case import ConnectionNotFound

logger = logging.getLogger(__name__)


class RefreshConnectionUseCase:
    """Run the platform's refresh grant and store the new ciphertext."""

    def __init__(
        self,
        session: AsyncSession,
        adapters: PlatformAdapterRegistry,
        credentials_service: OAuthCredentialsService,
        cipher: TokenCipher,
    ):
        self.session = session
        self.adapters = adapters
        self.credentials_service = credentials_service
        self.cipher = cipher
        self.connection_repo = PlatformConnectionRepository(session)

    async def execute(self, user_id: UUID, platform_name: str) -> PlatformConnection:
        """
        Raises:
            UnsupportedPlatform: unknown platform name
            ConnectionNotFound: no active connection
            RefreshNotSupported: the platform has no refresh grant or no refresh token is stored
            MissingOAuthCredentials: app credentials are not configured
            TokenDecryptionError: the stored refresh token is unreadable
            OAuthExchangeError: the platform rejected the refresh token
        """
        platform = parse_platform(platform_name)
        connection = await self.connection_repo.get_active(user_id, platform.value)
        if connection is None:
            raise ConnectionNotFound(platform)
        if not connection.refresh_token:
            raise RefreshNotSupported(f"No refresh token is stored for {platform.value}")

        refresh_token = self.cipher.decrypt(connection.refresh_token)
        credentials = await self.credentials_service.resolve(platform)
        tokens = await self.adapters[platform].refresh_access_token(
            refresh_token, credentials.client_id, credentials.client_secret
        )

        await self.connection_repo.update_tokens(
            connection,
            access_token=self.cipher.encrypt(tokens.access_token),
            refresh_token=self.cipher.encrypt(tokens.refresh_token or refresh_token),
            token_expires_at=tokens.expires_at,
        )
        await self.session.commit()
        logger.info("Refreshed %s token for user %s", platform.value, user_id)
        return connection
