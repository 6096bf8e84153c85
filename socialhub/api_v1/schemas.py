"""Pydantic schemas for the SocialHub API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

from socialhub.core.models.platform_connection import Platform
from socialhub.core.models.user import UserRole

# =============================================================================
# Platform connections
# =============================================================================


class PlatformConnectionResponse(BaseModel):
    """A connected account. Token columns are never exposed."""

    id: UUID
    platform: Platform
    platform_user_id: str
    platform_username: Optional[str] = None
    profile_picture_url: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PlatformConnectionListResponse(BaseModel):
    items: List[PlatformConnectionResponse]
    total: int


class PlatformRequest(BaseModel):
    platform: str = Field(..., min_length=1, description="Platform name, e.g. 'linkedin'")

    @field_validator("platform")
    @classmethod
    def normalize(cls, v: str) -> str:
        return v.strip().lower()


class ConnectionTestResponse(BaseModel):
    success: bool
    platform: Platform
    user: Optional[Dict[str, Any]] = None
    message: str


class PlatformStatus(BaseModel):
    platform: Platform
    configured: bool
    source: str = Field(..., description="database, env or none")
    missing: List[str] = Field(default_factory=list)


class PlatformStatusResponse(BaseModel):
    platforms: List[PlatformStatus]


# =============================================================================
# OAuth app credentials (admin)
# =============================================================================


class OAuthCredentialCreate(BaseModel):
    platform: Platform
    client_id: str = Field(..., min_length=1, max_length=512)
    client_secret: str = Field(..., min_length=1)
    redirect_uri: Optional[AnyHttpUrl] = None
    additional_config: Optional[Dict[str, Any]] = None
    is_active: bool = True

    model_config = ConfigDict(str_strip_whitespace=True)


class OAuthCredentialResponse(BaseModel):
    id: UUID
    platform: Platform
    client_id: str
    client_secret: str = Field(..., description="Masked client secret")
    redirect_uri: Optional[str] = None
    additional_config: Optional[Dict[str, Any]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Authentication
# =============================================================================


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    scopes: List[str] = Field(default_factory=list)


class UserResponse(BaseModel):
    id: UUID
    username: str
    full_name: Optional[str] = None
    role: UserRole
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
