"""Short-lived OAuth handshake state: CSRF state, initiating user and PKCE verifier.

Two interchangeable stores share one async interface. ``CookieStateStore``
keeps each value in its own httpOnly cookie. ``RedisStateStore`` keeps the
values server side and gives the browser only an opaque session id cookie.
Writes are staged and applied to the outgoing response by ``commit``.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Mapping, Optional

import redis.asyncio as redis_async
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.responses import Response

logger = logging.getLogger(__name__)

STATE_TTL_SECONDS = 600
SESSION_COOKIE = "oauth_sid"
REDIS_KEY_PREFIX = "socialhub:oauth"


class StateStoreUnavailable(Exception):
    """The backing store could not record or read OAuth state."""


def state_key(platform: str) -> str:
    return f"oauth_state_{platform}"


def user_key(platform: str) -> str:
    return f"oauth_user_{platform}"


def verifier_key(platform: str) -> str:
    return f"{platform}_code_verifier"


def generate_state() -> str:
    """128 bits of randomness, hex encoded."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class PKCEPair:
    code_verifier: str
    code_challenge: str


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def code_challenge_for(code_verifier: str) -> str:
    return _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())


def generate_pkce() -> PKCEPair:
    verifier = secrets.token_urlsafe(32)
    return PKCEPair(code_verifier=verifier, code_challenge=code_challenge_for(verifier))


@dataclass(frozen=True)
class CookiePolicy:
    secure: bool = False
    samesite: str = "lax"
    path: str = "/"

    def set(self, response: Response, key: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key,
            value,
            max_age=max_age,
            path=self.path,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )

    def clear(self, response: Response, key: str) -> None:
        response.delete_cookie(
            key,
            path=self.path,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )


class CookieStateStore:
    """Each entry is an httpOnly cookie with its own Max-Age."""

    def __init__(self, request_cookies: Mapping[str, str], policy: CookiePolicy):
        self._incoming = dict(request_cookies)
        self._policy = policy
        self._staged: dict[str, tuple[Optional[str], int]] = {}

    async def put(self, key: str, value: str, ttl: int = STATE_TTL_SECONDS) -> None:
        self._staged[key] = (value, ttl)

    async def get(self, key: str) -> Optional[str]:
        if key in self._staged:
            return self._staged[key][0]
        return self._incoming.get(key) or None

    async def delete(self, key: str) -> None:
        self._staged[key] = (None, 0)

    async def commit(self, response: Response) -> None:
        for key, (value, ttl) in self._staged.items():
            if value is None:
                self._policy.clear(response, key)
            else:
                self._policy.set(response, key, value, ttl)
        self._staged.clear()


class RedisConnection:
    """Lazily connected Redis client shared by request-scoped state stores."""

    def __init__(self, redis_url: Optional[str]):
        self.redis_url = redis_url.strip() if redis_url else None
        self._client: Optional[Redis] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.redis_url)

    async def connect(self) -> None:
        if not self.is_configured:
            logger.debug("Redis URL not configured; skipping connection")
            return
        if self._client is None:
            client = redis_async.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            try:
                await client.ping()
            except RedisError as exc:
                logger.error("Failed to connect to Redis: %s", exc)
                await client.aclose()
                raise
            self._client = client
            logger.info("Redis connection established")

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    async def get_client(self) -> Optional[Redis]:
        if not self.is_configured:
            return None
        if self._client is None:
            await self.connect()
        return self._client


class RedisStateStore:
    """Entries live in Redis under ``socialhub:oauth:{sid}:{key}`` with EX=ttl."""

    def __init__(
        self,
        connection: RedisConnection,
        request_cookies: Mapping[str, str],
        policy: CookiePolicy,
        session_ttl: int = STATE_TTL_SECONDS,
    ):
        self._connection = connection
        self._policy = policy
        self._session_ttl = session_ttl
        self._sid = request_cookies.get(SESSION_COOKIE) or None
        self._issue_cookie = False
        self._deleted = False
        self._delete_failed = False

    def _key(self, key: str) -> str:
        return f"{REDIS_KEY_PREFIX}:{self._sid}:{key}"

    async def _client(self) -> Redis:
        try:
            client = await self._connection.get_client()
        except RedisError as exc:
            raise StateStoreUnavailable("Redis is unreachable") from exc
        if client is None:
            raise StateStoreUnavailable("Redis is not configured")
        return client

    async def put(self, key: str, value: str, ttl: int = STATE_TTL_SECONDS) -> None:
        if self._sid is None:
            self._sid = secrets.token_urlsafe(24)
        self._issue_cookie = True
        client = await self._client()
        try:
            await client.set(self._key(key), value, ex=ttl)
        except RedisError as exc:
            logger.error("Redis error storing OAuth state: %s", exc)
            raise StateStoreUnavailable("Could not store OAuth state") from exc

    async def get(self, key: str) -> Optional[str]:
        """Raises ``StateStoreUnavailable`` rather than reporting a miss when Redis is down."""
        if self._sid is None:
            return None
        client = await self._client()
        try:
            return await client.get(self._key(key))
        except RedisError as exc:
            logger.error("Redis error reading OAuth state: %s", exc)
            raise StateStoreUnavailable("Could not read OAuth state") from exc

    async def delete(self, key: str) -> None:
        if self._sid is None:
            return
        try:
            client = await self._client()
            await client.delete(self._key(key))
        except (RedisError, StateStoreUnavailable) as exc:
            # Entries expire on their own.
            logger.warning("Redis error deleting OAuth state: %s", exc)
            self._delete_failed = True
            return
        self._deleted = True

    async def _has_entries(self) -> bool:
        client = await self._client()
        async for _ in client.scan_iter(match=self._key("*"), count=100):
            return True
        return False

    async def commit(self, response: Response) -> None:
        if self._sid is None:
            return
        if self._issue_cookie:
            self._policy.set(response, SESSION_COOKIE, self._sid, self._session_ttl)
            return
        if not self._deleted or self._delete_failed:
            return
        # Another platform's handshake may still be using this session.
        try:
            if await self._has_entries():
                return
        except (RedisError, StateStoreUnavailable) as exc:
            logger.warning("Redis error checking OAuth session: %s", exc)
            return
        self._policy.clear(response, SESSION_COOKIE)
