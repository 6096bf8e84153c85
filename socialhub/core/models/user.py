"""User model for authentication."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialhub.core.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from socialhub.core.models.platform_connection import PlatformConnection


class UserRole(str, Enum):
    """Roles supported by the application."""

    BASIC = "basic"
    ADMIN = "admin"


class User(TimestampMixin, Base):
    """Application user who owns platform connections."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=UserRole.BASIC.value,
        server_default=UserRole.BASIC.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    platform_connections: Mapped[list["PlatformConnection"]] = relationship(
        "PlatformConnection",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role}, active={self.is_active})>"
