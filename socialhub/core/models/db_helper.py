"""Async engine and session factory."""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from socialhub.core.config import get_settings


def _normalize_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


class DatabaseHelper:
    """Owns the engine and hands out sessions."""

    def __init__(self, url: str, echo: bool = False, pool_size: int = 20, max_overflow: int = 30):
        """
        Args:
            url: Database connection URL
            echo: Echo SQL queries
            pool_size: Connection pool size (ignored for SQLite)
            max_overflow: Max overflow connections (ignored for SQLite)
        """
        url = _normalize_url(url)
        if url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across sessions.
            self.engine: AsyncEngine = create_async_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def session_dependency(self) -> AsyncIterator[AsyncSession]:
        """FastAPI dependency for database sessions."""
        async with self.session_factory() as session:
            yield session


settings = get_settings()
db_helper = DatabaseHelper(
    url=settings.database_url,
    echo=settings.debug,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
)
