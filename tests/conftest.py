"""
Pytest configuration and helpers for the SocialHub test-suite.

The application expects environment settings and a PostgreSQL database, so the
fixtures below provide an isolated in-memory SQLite database per test and
override the FastAPI dependencies accordingly. Platform HTTP calls go through
``httpx.MockTransport`` so no test ever reaches a real platform.
"""

from __future__ import annotations

import base64
import os
import sys
from pathlib import Path
from typing import AsyncGenerator, Callable, Generator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# ---------------------------------------------------------------------------
# Environment bootstrap
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
TOKEN_KEY_HEX = "ab" * 32
CREDENTIALS_KEY = base64.urlsafe_b64encode(b"0" * 32).decode("ascii")

os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test_secret_key"
os.environ["TOKEN_ENCRYPTION_KEY"] = TOKEN_KEY_HEX
os.environ["OAUTH_CREDENTIALS_KEY"] = CREDENTIALS_KEY
os.environ["TOKEN_ALLOW_LEGACY_PLAINTEXT"] = "false"
os.environ["APP_ENV"] = "test"
os.environ["APP_URL"] = "http://frontend.test"
os.environ["PUBLIC_API_URL"] = "http://api.test"
os.environ["OAUTH_STATE_BACKEND"] = "cookie"
os.environ["REDIS_URL"] = ""
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["TWITTER_CLIENT_ID"] = "twitter-client"
os.environ["TWITTER_CLIENT_SECRET"] = "twitter-secret"
os.environ["LINKEDIN_CLIENT_ID"] = "linkedin-client"
os.environ["LINKEDIN_CLIENT_SECRET"] = "linkedin-secret"
os.environ["FACEBOOK_APP_ID"] = "facebook-app"
os.environ["FACEBOOK_APP_SECRET"] = "facebook-secret"
os.environ["GOOGLE_CLIENT_ID"] = "google-client"
os.environ["GOOGLE_CLIENT_SECRET"] = "google-secret"
os.environ["TIKTOK_CLIENT_KEY"] = ""
os.environ["TIKTOK_CLIENT_SECRET"] = ""

from socialhub.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from socialhub.core.dependencies import get_platform_registry, get_session  # noqa: E402
from socialhub.core.models import Base  # noqa: E402
from socialhub.core.models.db_helper import DatabaseHelper  # noqa: E402
from socialhub.core.services.platforms import PlatformAdapterRegistry  # noqa: E402
from socialhub.core.services.token_cipher import TokenCipher  # noqa: E402
from socialhub.main import app  # noqa: E402

PlatformHandler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[DatabaseHelper, None]:
    """Fresh in-memory SQLite schema for a single test."""
    helper = DatabaseHelper(TEST_DB_URL)
    async with helper.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield helper

    await helper.dispose()


@pytest_asyncio.fixture
async def db_session(database: DatabaseHelper) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Platform HTTP stubs
# ---------------------------------------------------------------------------


def _unexpected_request(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected platform request: {request.method} {request.url}")


class PlatformStub:
    """Routes adapter HTTP traffic to a test-provided handler and records it."""

    def __init__(self) -> None:
        self.handler: PlatformHandler = _unexpected_request
        self.requests: list[httpx.Request] = []

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client_factory(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._dispatch), **kwargs)

    def registry(self) -> PlatformAdapterRegistry:
        return PlatformAdapterRegistry.default(http_client=self.client_factory)


@pytest.fixture
def platform_stub() -> PlatformStub:
    return PlatformStub()


@pytest.fixture
def cipher() -> TokenCipher:
    return TokenCipher.from_hex(TOKEN_KEY_HEX)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------


@pytest.fixture
def override_dependencies(
    db_session: AsyncSession, platform_stub: PlatformStub
) -> Generator[None, None, None]:
    """Point the app at the test session and the stubbed platform adapters."""

    async def _get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    registry = platform_stub.registry()
    app.dependency_overrides[get_session] = _get_session_override
    app.dependency_overrides[get_platform_registry] = lambda: registry

    try:
        yield
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(override_dependencies: None) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX client configured for the ASGI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
