"""Repository for per-user platform connections."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.core.models.platform_connection import PlatformConnection
from socialhub.core.repositories.base import BaseRepository

# Columns overwritten when a (user_id, platform) row already exists.
_UPSERT_COLUMNS = (
    "platform_user_id",
    "platform_username",
    "profile_picture_url",
    "access_token",
    "refresh_token",
    "token_expires_at",
    "scope",
    "is_active",
)


class PlatformConnectionRepository(BaseRepository[PlatformConnection]):
    """Data access for platform connections.

    Token columns are written exactly as given; callers encrypt beforehand.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(PlatformConnection, session)

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(PlatformConnection)
        if dialect == "sqlite":
            return sqlite.insert(PlatformConnection)
        raise NotImplementedError(f"Upsert is not supported on dialect {dialect!r}")

    async def upsert(
        self,
        *,
        user_id: UUID,
        platform: str,
        platform_user_id: str,
        platform_username: Optional[str],
        profile_picture_url: Optional[str],
        access_token: str,
        refresh_token: Optional[str],
        token_expires_at: Optional[datetime],
        scope: Optional[str] = None,
    ) -> PlatformConnection:
        """Insert or overwrite the connection for (user_id, platform) atomically."""
        values: dict[str, Any] = {
            "user_id": user_id,
            "platform": platform,
            "platform_user_id": platform_user_id,
            "platform_username": platform_username,
            "profile_picture_url": profile_picture_url,
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_expires_at": token_expires_at,
            "scope": scope,
            "is_active": True,
        }
        stmt = self._insert().values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "platform"],
            set_={
                **{column: stmt.excluded[column] for column in _UPSERT_COLUMNS},
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

        connection = await self.get_by_user_and_platform(user_id, platform, refresh=True)
        if connection is None:  # pragma: no cover - the row was just written
            raise RuntimeError("Upserted platform connection could not be reloaded")
        return connection

    async def get_by_user_and_platform(
        self, user_id: UUID, platform: str, *, refresh: bool = False
    ) -> Optional[PlatformConnection]:
        stmt = select(PlatformConnection).where(
            PlatformConnection.user_id == user_id,
            PlatformConnection.platform == platform,
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active(self, user_id: UUID, platform: str) -> Optional[PlatformConnection]:
        result = await self.session.execute(
            select(PlatformConnection).where(
                PlatformConnection.user_id == user_id,
                PlatformConnection.platform == platform,
                PlatformConnection.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def list_active_for_user(self, user_id: UUID) -> list[PlatformConnection]:
        result = await self.session.execute(
            select(PlatformConnection)
            .where(
                PlatformConnection.user_id == user_id,
                PlatformConnection.is_active.is_(True),
            )
            .order_by(PlatformConnection.platform)
        )
        return list(result.scalars().all())

    async def deactivate(self, user_id: UUID, platform: str) -> bool:
        result = await self.session.execute(
            update(PlatformConnection)
            .where(
                PlatformConnection.user_id == user_id,
                PlatformConnection.platform == platform,
                PlatformConnection.is_active.is_(True),
            )
            .values(is_active=False, updated_at=func.now())
        )
        await self.session.flush()
        return bool(result.rowcount)

    async def update_tokens(
        self,
        connection: PlatformConnection,
        *,
        access_token: str,
        refresh_token: Optional[str],
        token_expires_at: Optional[datetime],
    ) -> PlatformConnection:
        connection.access_token = access_token
        connection.refresh_token = refresh_token
        connection.token_expires_at = token_expires_at
        await self.session.flush()
        await self.session.refresh(connection)
        return connection

    async def mark_used(self, connection: PlatformConnection) -> None:
        connection.last_used_at = datetime.now(timezone.utc)
        await self.session.flush()
