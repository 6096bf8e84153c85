from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from socialhub.core.models.user import User, UserRole
from socialhub.core.repositories.user_repository import UserRepository
from socialhub.core.services import security
from socialhub.core.services.auth_service import authenticate_user, scopes_for
from tests.factories import create_user


class _DummyHasher:
    """Simple stand-in for the Argon2 hasher used in tests."""

    def hash(self, password: str) -> str:
        return f"DUMMY:{password}"

    def verify(self, password: str, hashed: str) -> bool:
        if not hashed.startswith("DUMMY:"):
            raise ValueError("invalid hash")
        return hashed == f"DUMMY:{password}"


def test_hash_and_verify_with_configured_hasher(monkeypatch):
    monkeypatch.setattr(security, "password_hasher", _DummyHasher())

    hashed = security.hash_password("super-secret")
    assert hashed == "DUMMY:super-secret"
    assert security.verify_password("super-secret", hashed) is True
    assert security.verify_password("wrong", hashed) is False


def test_unknown_hash_format_does_not_verify(monkeypatch):
    monkeypatch.setattr(security, "password_hasher", _DummyHasher())

    assert security.verify_password("super-secret", "plaintext") is False


def test_pbkdf2_fallback_round_trip():
    hasher = security.Pbkdf2Hasher()

    hashed = hasher.hash("fallback-password")
    assert hashed.startswith("pbkdf2_sha256$")
    assert hasher.verify("fallback-password", hashed) is True
    assert hasher.verify("other", hashed) is False
    assert hasher.verify("fallback-password", "garbage") is False


def test_decode_access_token_wraps_invalid_token():
    with pytest.raises(security.TokenDecodeError):
        security.decode_access_token("definitely-not-a-jwt")


def test_expired_token_is_rejected():
    token = security.create_access_token(uuid4(), ["me"], expires_delta=timedelta(seconds=-5))

    with pytest.raises(security.TokenDecodeError):
        security.decode_access_token(token)


def test_create_access_token_and_decode():
    user_id = uuid4()
    token = security.create_access_token(user_id, ["me"], expires_delta=timedelta(minutes=1))

    decoded = security.decode_access_token(token)
    assert decoded["sub"] == str(user_id)
    assert decoded["scopes"] == ["me"]
    assert datetime.fromtimestamp(decoded["exp"], tz=timezone.utc) > datetime.now(timezone.utc)


def test_scopes_for_limits_admin_scope_to_admins():
    basic = User(username="basic", hashed_password="x", role=UserRole.BASIC.value)
    admin = User(username="admin", hashed_password="x", role=UserRole.ADMIN.value)

    assert scopes_for(basic, ["me", "admin"]) == ["me"]
    assert scopes_for(basic, []) == ["me"]
    assert scopes_for(admin, ["me", "admin"]) == ["me", "admin"]
    assert scopes_for(admin, ["admin"]) == ["me", "admin"]


@pytest.mark.asyncio
async def test_authenticate_user(db_session, monkeypatch):
    monkeypatch.setattr(security, "password_hasher", _DummyHasher())
    user = await create_user(db_session, hashed_password="DUMMY:pw")
    inactive = await create_user(db_session, hashed_password="DUMMY:pw", is_active=False)
    repo = UserRepository(db_session)

    assert (await authenticate_user(user.username, "pw", repo)).id == user.id
    assert await authenticate_user(user.username, "nope", repo) is None
    assert await authenticate_user(inactive.username, "pw", repo) is None
    assert await authenticate_user("missing", "pw", repo) is None
