"""Password hashing and bearer JWT helpers for SocialHub users."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

import jwt
from fastapi.security import OAuth2PasswordBearer
from jwt import InvalidTokenError
from pwdlib import PasswordHash
from pwdlib.exceptions import HasherNotAvailable

from socialhub.core.config import get_settings

logger = logging.getLogger(__name__)

SCOPES = {
    "me": "Manage your own platform connections.",
    "admin": "Manage OAuth app credentials.",
}

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/token", scopes=SCOPES)


class TokenDecodeError(Exception):
    """Raised when a bearer token is invalid or expired."""


class Pbkdf2Hasher:
    """PBKDF2-SHA256 hasher used when Argon2 is not installed.

    Hash format: ``pbkdf2_sha256$<iterations>$<salt b64>$<digest b64>``.
    """

    algorithm = "pbkdf2_sha256"
    iterations = 390_000

    @staticmethod
    def _encode(data: bytes) -> str:
        return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")

    @staticmethod
    def _decode(data: str) -> bytes:
        return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))

    def _derive(self, password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(16)
        digest = self._derive(password, salt, self.iterations)
        return "$".join(
            (self.algorithm, str(self.iterations), self._encode(salt), self._encode(digest))
        )

    def verify(self, password: str, encoded: str) -> bool:
        parts = encoded.split("$")
        if len(parts) != 4 or parts[0] != self.algorithm or not parts[1].isdigit():
            return False
        digest = self._derive(password, self._decode(parts[2]), int(parts[1]))
        return hmac.compare_digest(digest, self._decode(parts[3]))


def _build_hasher():
    try:
        return PasswordHash.recommended()
    except HasherNotAvailable:
        logger.warning(
            "Argon2 hasher unavailable, using PBKDF2-SHA256. Install pwdlib[argon2] for Argon2."
        )
        return Pbkdf2Hasher()


password_hasher = _build_hasher()


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return password_hasher.verify(plain_password, hashed_password)
    except ValueError:
        # Stored hash is not in a format the hasher understands.
        return False


def create_access_token(
    user_id: UUID | str,
    scopes: list[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt.expire_minutes)
    )
    payload: dict[str, Any] = {"sub": str(user_id), "scopes": scopes, "exp": expire}
    return jwt.encode(payload, settings.security.secret_key, algorithm=settings.jwt.algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(
            token, settings.security.secret_key, algorithms=[settings.jwt.algorithm]
        )
    except InvalidTokenError as exc:
        raise TokenDecodeError(str(exc)) from exc
