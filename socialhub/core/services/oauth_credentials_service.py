"""OAuth app credentials: encrypted storage and resolution per platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken

from socialhub.core.config import Settings
from socialhub.core.models.oauth_app_credential import OAuthAppCredential
from socialhub.core.models.platform_connection import Platform
from socialhub.core.repositories.oauth_app_credential_repository import (
    OAuthAppCredentialRepository,
)
from socialhub.core.services.platforms.base import OAuthCredentials

logger = logging.getLogger(__name__)


class MissingOAuthCredentials(Exception):
    """No usable client id/secret exists for a platform."""

    def __init__(self, platform: Platform):
        super().__init__(f"OAuth is not configured for {platform.value}")
        self.platform = platform


class CredentialDecryptionError(Exception):
    """A stored client secret could not be decrypted with the configured key."""


@dataclass
class CredentialStatus:
    platform: Platform
    configured: bool
    source: str
    missing: list[str] = field(default_factory=list)


def mask_secret(secret: str) -> str:
    if len(secret) <= 4:
        return "*" * len(secret)
    return "*" * (len(secret) - 4) + secret[-4:]


class OAuthCredentialsService:
    """Active database rows win; environment variables are the fallback."""

    def __init__(self, repo: OAuthAppCredentialRepository, settings: Settings):
        self.repo = repo
        self.settings = settings
        self.fernet = Fernet(settings.encryption.credentials_key)

    def _encrypt(self, value: str) -> str:
        return self.fernet.encrypt(value.encode("utf-8")).decode("utf-8")

    def _decrypt(self, value: str) -> str:
        try:
            return self.fernet.decrypt(value.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise CredentialDecryptionError("Stored client secret is unreadable") from exc

    def default_redirect_uri(self, platform: Platform) -> str:
        return self.settings.oauth.callback_url(platform.value)

    async def resolve(self, platform: Platform) -> OAuthCredentials:
        row = await self.repo.get_active_by_platform(platform.value)
        if row is not None:
            try:
                secret = self._decrypt(row.client_secret_encrypted)
            except CredentialDecryptionError:
                logger.error("Client secret for %s could not be decrypted", platform.value)
                raise MissingOAuthCredentials(platform)
            return OAuthCredentials(
                client_id=row.client_id,
                client_secret=secret,
                redirect_uri=row.redirect_uri or self.default_redirect_uri(platform),
                additional_config=dict(row.additional_config or {}),
            )

        client_id, client_secret = self.settings.platform_credentials.for_platform(platform.value)
        if not client_id or not client_secret:
            raise MissingOAuthCredentials(platform)
        return OAuthCredentials(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=self.default_redirect_uri(platform),
        )

    async def status(self) -> list[CredentialStatus]:
        statuses = []
        for platform in Platform:
            row = await self.repo.get_active_by_platform(platform.value)
            if row is not None:
                statuses.append(CredentialStatus(platform, configured=True, source="database"))
                continue
            missing = self.settings.platform_credentials.missing_for(platform.value)
            statuses.append(
                CredentialStatus(
                    platform,
                    configured=not missing,
                    source="env" if not missing else "none",
                    missing=missing,
                )
            )
        return statuses

    async def list_credentials(self) -> list[OAuthAppCredential]:
        return await self.repo.list_ordered()

    async def save(
        self,
        *,
        platform: Platform,
        client_id: str,
        client_secret: str,
        redirect_uri: Optional[str] = None,
        additional_config: Optional[dict[str, Any]] = None,
        is_active: bool = True,
    ) -> OAuthAppCredential:
        """Create or replace the credentials for ``platform``."""
        encrypted = self._encrypt(client_secret)
        row = await self.repo.get_by_platform(platform.value)
        if row is None:
            row = await self.repo.create(
                OAuthAppCredential(
                    platform=platform.value,
                    client_id=client_id,
                    client_secret_encrypted=encrypted,
                    redirect_uri=redirect_uri,
                    additional_config=additional_config,
                    is_active=is_active,
                )
            )
        else:
            row.client_id = client_id
            row.client_secret_encrypted = encrypted
            row.redirect_uri = redirect_uri
            row.additional_config = additional_config
            row.is_active = is_active
            await self.repo.session.flush()
            await self.repo.session.refresh(row)
        logger.info("OAuth credentials saved for %s", platform.value)
        return row

    async def delete(self, platform: Platform) -> bool:
        row = await self.repo.get_by_platform(platform.value)
        if row is None:
            return False
        await self.repo.delete(row)
        logger.info("OAuth credentials deleted for %s", platform.value)
        return True

    def masked_secret(self, row: OAuthAppCredential) -> str:
        try:
            return mask_secret(self._decrypt(row.client_secret_encrypted))
        except CredentialDecryptionError:
            return "<unreadable>"
