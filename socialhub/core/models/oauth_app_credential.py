"""OAuth client registrations managed by administrators."""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from socialhub.core.models.base import Base, TimestampMixin


class OAuthAppCredential(TimestampMixin, Base):
    """Client id and Fernet-encrypted client secret for one platform."""

    __tablename__ = "oauth_app_credentials"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    platform: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String(512), nullable=False)
    client_secret_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    redirect_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    additional_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<OAuthAppCredential(platform={self.platform}, active={self.is_active})>"
