"""Database models for SocialHub."""

from socialhub.core.models.base import Base
from socialhub.core.models.oauth_app_credential import OAuthAppCredential
from socialhub.core.models.platform_connection import Platform, PlatformConnection
from socialhub.core.models.user import User, UserRole

__all__ = [
    "Base",
    "OAuthAppCredential",
    "Platform",
    "PlatformConnection",
    "User",
    "UserRole",
]
