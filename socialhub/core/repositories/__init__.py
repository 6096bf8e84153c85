"""Repository layer for data access."""

from socialhub.core.repositories.base import BaseRepository
from socialhub.core.repositories.oauth_app_credential_repository import OAuthAppCredentialRepository
from socialhub.core.repositories.platform_connection_repository import PlatformConnectionRepository
from socialhub.core.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "OAuthAppCredentialRepository",
    "PlatformConnectionRepository",
    "UserRepository",
]
