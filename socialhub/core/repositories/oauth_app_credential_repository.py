"""Repository for OAuth app credentials."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.core.models.oauth_app_credential import OAuthAppCredential
from socialhub.core.repositories.base import BaseRepository


class OAuthAppCredentialRepository(BaseRepository[OAuthAppCredential]):
    def __init__(self, session: AsyncSession):
        super().__init__(OAuthAppCredential, session)

    async def get_by_platform(self, platform: str) -> Optional[OAuthAppCredential]:
        result = await self.session.execute(
            select(OAuthAppCredential).where(OAuthAppCredential.platform == platform)
        )
        return result.scalar_one_or_none()

    async def get_active_by_platform(self, platform: str) -> Optional[OAuthAppCredential]:
        result = await self.session.execute(
            select(OAuthAppCredential).where(
                OAuthAppCredential.platform == platform,
                OAuthAppCredential.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def list_ordered(self) -> list[OAuthAppCredential]:
        result = await self.session.execute(
            select(OAuthAppCredential).order_by(OAuthAppCredential.platform)
        )
        return list(result.scalars().all())
