"""Environment configuration for SocialHub."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import ClassVar, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

load_dotenv()

_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _str_env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


class AppSettings(BaseModel):
    name: str = Field(
        default_factory=lambda: _str_env("APP_NAME", "SocialHub") or "SocialHub"
    )
    version: str = Field(
        default_factory=lambda: _str_env("APP_VERSION", "0.1.0") or "0.1.0"
    )
    environment: str = Field(
        default_factory=lambda: _str_env("APP_ENV", "development").lower() or "development"
    )
    debug: bool = Field(default_factory=lambda: _bool_env("DEBUG", False))
    log_level: str = Field(
        default_factory=lambda: _str_env("LOG_LEVEL", "INFO").upper()
    )

    @model_validator(mode="after")
    def _validate(self) -> "AppSettings":
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(
                "LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL"
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class ServerSettings(BaseModel):
    host: str = Field(
        default_factory=lambda: _str_env("HOST", "0.0.0.0") or "0.0.0.0"
    )
    port: int = Field(default_factory=lambda: _int_env("PORT", 8000))
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            origin.strip()
            for origin in _str_env("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]
    )


class DatabaseSettings(BaseModel):
    url: str = Field(default_factory=lambda: _str_env("DATABASE_URL"))
    pool_size: int = Field(default_factory=lambda: _int_env("DATABASE_POOL_SIZE", 20))
    max_overflow: int = Field(
        default_factory=lambda: _int_env("DATABASE_MAX_OVERFLOW", 30)
    )

    @model_validator(mode="after")
    def _validate(self) -> "DatabaseSettings":
        if not self.url:
            raise ValueError("DATABASE_URL environment variable must be set.")
        if not self.url.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql://, postgresql+asyncpg://, or sqlite+aiosqlite://"
            )
        return self


class RedisSettings(BaseModel):
    url: Optional[str] = Field(
        default_factory=lambda: _str_env("REDIS_URL") or None
    )

    @property
    def enabled(self) -> bool:
        return bool(self.url)


class SecuritySettings(BaseModel):
    secret_key: str = Field(default_factory=lambda: _str_env("JWT_SECRET_KEY"))

    @model_validator(mode="after")
    def _validate(self) -> "SecuritySettings":
        if not self.secret_key:
            raise ValueError("JWT_SECRET_KEY environment variable must be set.")
        return self


class JWTSettings(BaseModel):
    algorithm: str = Field(
        default_factory=lambda: _str_env("JWT_ALGORITHM", "HS256") or "HS256"
    )
    expire_minutes: int = Field(
        default_factory=lambda: _int_env("JWT_EXPIRE_MINUTES", 30)
    )


class EncryptionSettings(BaseModel):
    """Keys protecting stored OAuth material.

    Both keys are mandatory: tokens encrypted under a key that changes on
    restart could never be read back.
    """

    token_key: str = Field(default_factory=lambda: _str_env("TOKEN_ENCRYPTION_KEY"))
    credentials_key: str = Field(
        default_factory=lambda: _str_env("OAUTH_CREDENTIALS_KEY")
    )
    allow_legacy_plaintext: bool = Field(
        default_factory=lambda: _bool_env("TOKEN_ALLOW_LEGACY_PLAINTEXT", False)
    )

    @model_validator(mode="after")
    def _validate(self) -> "EncryptionSettings":
        if not self.token_key:
            raise ValueError("TOKEN_ENCRYPTION_KEY environment variable must be set.")
        if not _HEX_KEY_RE.match(self.token_key):
            raise ValueError(
                "TOKEN_ENCRYPTION_KEY must be 64 hex characters (32 bytes)."
            )
        if not self.credentials_key:
            raise ValueError("OAUTH_CREDENTIALS_KEY environment variable must be set.")
        return self

    @property
    def token_key_bytes(self) -> bytes:
        return bytes.fromhex(self.token_key)


class FrontendSettings(BaseModel):
    url: str = Field(
        default_factory=lambda: _str_env("APP_URL", "http://localhost:3000").rstrip("/")
        or "http://localhost:3000"
    )
    settings_path: str = Field(
        default_factory=lambda: _str_env("SETTINGS_PATH", "/dashboard/settings")
        or "/dashboard/settings"
    )
    login_path: str = Field(
        default_factory=lambda: _str_env("LOGIN_PATH", "/auth/login") or "/auth/login"
    )

    @property
    def settings_url(self) -> str:
        return f"{self.url}{self.settings_path}"

    @property
    def login_url(self) -> str:
        return f"{self.url}{self.login_path}"


class OAuthSettings(BaseModel):
    public_api_url: str = Field(
        default_factory=lambda: _str_env("PUBLIC_API_URL", "http://localhost:8000").rstrip("/")
        or "http://localhost:8000"
    )
    state_ttl_seconds: int = Field(
        default_factory=lambda: _int_env("OAUTH_STATE_TTL_SECONDS", 600)
    )
    state_backend: str = Field(
        default_factory=lambda: _str_env("OAUTH_STATE_BACKEND", "cookie").lower() or "cookie"
    )
    cookie_secure: Optional[bool] = Field(
        default_factory=lambda: (
            _bool_env("OAUTH_COOKIE_SECURE") if os.getenv("OAUTH_COOKIE_SECURE") else None
        )
    )
    http_timeout: float = Field(
        default_factory=lambda: float(_int_env("OAUTH_HTTP_TIMEOUT", 20))
    )

    @model_validator(mode="after")
    def _validate(self) -> "OAuthSettings":
        if self.state_backend not in {"cookie", "redis"}:
            raise ValueError("OAUTH_STATE_BACKEND must be 'cookie' or 'redis'.")
        if self.state_ttl_seconds <= 0:
            raise ValueError("OAUTH_STATE_TTL_SECONDS must be positive.")
        return self

    def callback_url(self, platform: str) -> str:
        return f"{self.public_api_url}/api/v1/oauth/{platform}/callback"


class PlatformCredentialSettings(BaseModel):
    """Fallback OAuth app credentials read from the environment."""

    twitter_client_id: str = Field(default_factory=lambda: _str_env("TWITTER_CLIENT_ID"))
    twitter_client_secret: str = Field(
        default_factory=lambda: _str_env("TWITTER_CLIENT_SECRET")
    )
    linkedin_client_id: str = Field(default_factory=lambda: _str_env("LINKEDIN_CLIENT_ID"))
    linkedin_client_secret: str = Field(
        default_factory=lambda: _str_env("LINKEDIN_CLIENT_SECRET")
    )
    facebook_app_id: str = Field(default_factory=lambda: _str_env("FACEBOOK_APP_ID"))
    facebook_app_secret: str = Field(default_factory=lambda: _str_env("FACEBOOK_APP_SECRET"))
    google_client_id: str = Field(default_factory=lambda: _str_env("GOOGLE_CLIENT_ID"))
    google_client_secret: str = Field(
        default_factory=lambda: _str_env("GOOGLE_CLIENT_SECRET")
    )
    tiktok_client_key: str = Field(default_factory=lambda: _str_env("TIKTOK_CLIENT_KEY"))
    tiktok_client_secret: str = Field(
        default_factory=lambda: _str_env("TIKTOK_CLIENT_SECRET")
    )

    # platform -> (client id env var, client secret env var)
    ENV_NAMES: ClassVar[dict[str, tuple[str, str]]] = {
        "twitter": ("TWITTER_CLIENT_ID", "TWITTER_CLIENT_SECRET"),
        "linkedin": ("LINKEDIN_CLIENT_ID", "LINKEDIN_CLIENT_SECRET"),
        "facebook": ("FACEBOOK_APP_ID", "FACEBOOK_APP_SECRET"),
        "instagram": ("FACEBOOK_APP_ID", "FACEBOOK_APP_SECRET"),
        "youtube": ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"),
        "tiktok": ("TIKTOK_CLIENT_KEY", "TIKTOK_CLIENT_SECRET"),
    }

    def for_platform(self, platform: str) -> tuple[str, str]:
        names = self.ENV_NAMES.get(platform)
        if not names:
            return "", ""
        id_name, secret_name = names
        return getattr(self, id_name.lower()), getattr(self, secret_name.lower())

    def missing_for(self, platform: str) -> list[str]:
        names = self.ENV_NAMES.get(platform, ())
        return [name for name in names if not getattr(self, name.lower())]


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    encryption: EncryptionSettings = Field(default_factory=EncryptionSettings)
    frontend: FrontendSettings = Field(default_factory=FrontendSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    platform_credentials: PlatformCredentialSettings = Field(
        default_factory=PlatformCredentialSettings
    )

    model_config = dict(extra="ignore")

    # Compatibility helpers -------------------------------------------------
    @property
    def app_name(self) -> str:
        return self.app.name

    @property
    def app_version(self) -> str:
        return self.app.version

    @property
    def debug(self) -> bool:
        return self.app.debug

    @property
    def log_level(self) -> str:
        return self.app.log_level

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def database_pool_size(self) -> int:
        return self.database.pool_size

    @property
    def database_max_overflow(self) -> int:
        return self.database.max_overflow

    @property
    def redis_url(self) -> Optional[str]:
        return self.redis.url

    @property
    def cookie_secure(self) -> bool:
        if self.oauth.cookie_secure is not None:
            return self.oauth.cookie_secure
        return self.app.is_production


@lru_cache
def get_settings() -> Settings:
    return Settings()
