"""Per-user OAuth connections to external social platforms."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialhub.core.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from socialhub.core.models.user import User


class Platform(str, enum.Enum):
    """Platforms a user can connect."""

    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"

    @classmethod
    def parse(cls, value: str) -> Optional["Platform"]:
        try:
            return cls(value)
        except ValueError:
            return None


class PlatformConnection(TimestampMixin, Base):
    """One row per (user, platform). Token columns only ever hold ciphertext."""

    __tablename__ = "platform_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", name="uq_platform_connections_user_platform"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    platform: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    platform_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    platform_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_picture_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_token: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Encrypted access token (hex iv:hex ciphertext)"
    )
    refresh_token: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Encrypted refresh token"
    )
    token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    scope: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user: Mapped["User"] = relationship("User", back_populates="platform_connections")

    def __repr__(self) -> str:
        return (
            f"<PlatformConnection(user_id={self.user_id}, platform={self.platform}, "
            f"account={self.platform_username}, active={self.is_active})>"
        )
