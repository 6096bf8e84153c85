import logging
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from socialhub.core.config import get_settings
from socialhub.core.logging_config import configure_logging
from socialhub.core.models.platform_connection import PlatformConnection
from socialhub.core.repositories.oauth_app_credential_repository import (
    OAuthAppCredentialRepository,
)
from socialhub.core.repositories.platform_connection_repository import (
    PlatformConnectionRepository,
)
from socialhub.core.services.oauth_credentials_service import (
    MissingOAuthCredentials,
    OAuthCredentialsService,
)
from socialhub.core.services.oauth_state import (
    SESSION_COOKIE,
    CookiePolicy,
    CookieStateStore,
    RedisConnection,
    RedisStateStore,
    state_key,
    user_key,
    verifier_key,
)
from socialhub.core.use_cases.connect_platform_use_case import (
    ConnectPlatformUseCase,
    ExchangeFailure,
    OAuthFlowError,
    PersistenceFailure,
    ProtocolMismatch,
    SessionExpired,
    StateUnavailable,
    UnsupportedPlatform,
    UserDenied,
)
from tests.factories import create_user


def _linkedin_handler(access_token: str = "li-access", sub: str = "li-123"):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/v2/accessToken":
            return httpx.Response(
                200,
                json={"access_token": access_token, "expires_in": 5184000, "scope": "openid"},
            )
        return httpx.Response(200, json={"sub": sub, "given_name": "Ada", "family_name": "L"})

    return handler


@pytest.fixture
def use_case(db_session, platform_stub, cipher) -> ConnectPlatformUseCase:
    service = OAuthCredentialsService(OAuthAppCredentialRepository(db_session), get_settings())
    return ConnectPlatformUseCase(
        session=db_session,
        adapters=platform_stub.registry(),
        credentials_service=service,
        cipher=cipher,
    )


async def _started(use_case, platform: str, user_id) -> tuple[CookieStateStore, str]:
    """Run the authorize half and return a store holding what the browser would send back."""
    store = CookieStateStore({}, CookiePolicy())
    url = await use_case.start(platform, user_id, store)
    return store, parse_qs(urlparse(url).query)["state"][0]


async def _connection_count(db_session) -> int:
    return await db_session.scalar(select(func.count()).select_from(PlatformConnection))


@pytest.mark.asyncio
async def test_start_records_state_user_and_verifier(db_session, use_case):
    user = await create_user(db_session)
    store = CookieStateStore({}, CookiePolicy())

    url = await use_case.start("twitter", user.id, store)

    params = parse_qs(urlparse(url).query)
    assert params["state"][0] == await store.get(state_key("twitter"))
    assert await store.get(user_key("twitter")) == str(user.id)
    assert await store.get(verifier_key("twitter"))
    assert params["code_challenge_method"] == ["S256"]
    assert params["redirect_uri"] == ["http://api.test/api/v1/oauth/twitter/callback"]


@pytest.mark.asyncio
async def test_start_without_credentials_leaves_no_state(db_session, use_case):
    user = await create_user(db_session)
    store = CookieStateStore({}, CookiePolicy())

    with pytest.raises(MissingOAuthCredentials):
        await use_case.start("tiktok", user.id, store)

    assert await store.get(state_key("tiktok")) is None


@pytest.mark.asyncio
async def test_start_rejects_unknown_platform(db_session, use_case):
    user = await create_user(db_session)

    with pytest.raises(UnsupportedPlatform):
        await use_case.start("myspace", user.id, CookieStateStore({}, CookiePolicy()))


@pytest.mark.asyncio
async def test_complete_stores_encrypted_tokens_and_clears_state(
    db_session, use_case, platform_stub, cipher
):
    user = await create_user(db_session)
    store, state = await _started(use_case, "linkedin", user.id)
    platform_stub.handler = _linkedin_handler()

    connection = await use_case.complete(
        "linkedin", code="auth-code", state=state, error=None, store=store
    )

    assert connection.user_id == user.id
    assert connection.platform == "linkedin"
    assert connection.platform_user_id == "li-123"
    assert connection.platform_username == "Ada L"
    assert connection.is_active is True
    assert connection.access_token != "li-access"
    assert cipher.decrypt(connection.access_token) == "li-access"
    assert connection.refresh_token is None
    assert await store.get(state_key("linkedin")) is None
    assert await store.get(user_key("linkedin")) is None


@pytest.mark.asyncio
async def test_state_mismatch_never_contacts_the_platform(db_session, use_case, platform_stub):
    user = await create_user(db_session)
    store, _ = await _started(use_case, "linkedin", user.id)

    with pytest.raises(ProtocolMismatch) as exc_info:
        await use_case.complete(
            "linkedin", code="auth-code", state="forged-state", error=None, store=store
        )

    assert exc_info.value.code == "invalid_state"
    assert platform_stub.requests == []
    assert await _connection_count(db_session) == 0


@pytest.mark.asyncio
async def test_state_from_another_platform_is_rejected(db_session, use_case, platform_stub):
    user = await create_user(db_session)
    store, linkedin_state = await _started(use_case, "linkedin", user.id)

    with pytest.raises(ProtocolMismatch) as exc_info:
        await use_case.complete(
            "youtube", code="auth-code", state=linkedin_state, error=None, store=store
        )

    assert exc_info.value.code == "invalid_state"
    assert platform_stub.requests == []


@pytest.mark.asyncio
async def test_missing_state_cookie_is_invalid_state(use_case):
    store = CookieStateStore({}, CookiePolicy())

    with pytest.raises(ProtocolMismatch) as exc_info:
        await use_case.complete("linkedin", code="c", state="anything", error=None, store=store)

    assert exc_info.value.code == "invalid_state"


@pytest.mark.asyncio
async def test_missing_code_or_state_is_missing_params(use_case):
    store = CookieStateStore({}, CookiePolicy())

    with pytest.raises(ProtocolMismatch) as exc_info:
        await use_case.complete("linkedin", code=None, state="s", error=None, store=store)

    assert exc_info.value.code == "missing_params"


@pytest.mark.asyncio
async def test_provider_error_is_user_denied(use_case, platform_stub):
    store = CookieStateStore({}, CookiePolicy())

    with pytest.raises(UserDenied) as exc_info:
        await use_case.complete(
            "linkedin", code=None, state="s", error="access_denied", store=store
        )

    assert exc_info.value.code == "oauth_denied"
    assert platform_stub.requests == []


@pytest.mark.asyncio
async def test_missing_user_is_session_expired(use_case, platform_stub):
    store = CookieStateStore({state_key("linkedin"): "s1"}, CookiePolicy())

    with pytest.raises(SessionExpired) as exc_info:
        await use_case.complete("linkedin", code="c", state="s1", error=None, store=store)

    assert exc_info.value.redirect_to_login is True
    assert exc_info.value.code == "session_expired"
    assert platform_stub.requests == []


@pytest.mark.asyncio
async def test_pkce_platform_without_verifier_is_rejected(db_session, use_case, platform_stub):
    user = await create_user(db_session)
    store = CookieStateStore(
        {state_key("twitter"): "s1", user_key("twitter"): str(user.id)}, CookiePolicy()
    )

    with pytest.raises(ProtocolMismatch) as exc_info:
        await use_case.complete("twitter", code="c", state="s1", error=None, store=store)

    assert exc_info.value.code == "missing_verifier"
    assert platform_stub.requests == []


@pytest.mark.asyncio
async def test_twitter_sends_stored_verifier_and_clears_it(db_session, use_case, platform_stub):
    user = await create_user(db_session)
    store, state = await _started(use_case, "twitter", user.id)
    verifier = await store.get(verifier_key("twitter"))

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/2/oauth2/token":
            assert f"code_verifier={verifier}" in request.content.decode()
            return httpx.Response(200, json={"access_token": "tw", "refresh_token": "tw-r"})
        return httpx.Response(200, json={"data": {"id": "7", "username": "ada"}})

    platform_stub.handler = handler
    await use_case.complete("twitter", code="c", state=state, error=None, store=store)

    assert await store.get(verifier_key("twitter")) is None


@pytest.mark.asyncio
async def test_exchange_failure_uses_platform_message(db_session, use_case, platform_stub):
    user = await create_user(db_session)
    store, state = await _started(use_case, "linkedin", user.id)
    platform_stub.handler = lambda request: httpx.Response(
        400, json={"error": "invalid_grant", "error_description": "Code expired"}
    )

    with pytest.raises(ExchangeFailure) as exc_info:
        await use_case.complete("linkedin", code="c", state=state, error=None, store=store)

    assert exc_info.value.code == "Failed to exchange code: Code expired"
    assert await store.get(state_key("linkedin")) == state


@pytest.mark.asyncio
async def test_reconnecting_overwrites_the_same_row(db_session, use_case, platform_stub, cipher):
    user = await create_user(db_session)

    store, state = await _started(use_case, "linkedin", user.id)
    platform_stub.handler = _linkedin_handler(access_token="first", sub="li-1")
    first = await use_case.complete("linkedin", code="c1", state=state, error=None, store=store)

    store, state = await _started(use_case, "linkedin", user.id)
    platform_stub.handler = _linkedin_handler(access_token="second", sub="li-2")
    second = await use_case.complete("linkedin", code="c2", state=state, error=None, store=store)

    assert await _connection_count(db_session) == 1
    assert second.id == first.id
    assert second.platform_user_id == "li-2"
    assert cipher.decrypt(second.access_token) == "second"


@pytest.mark.asyncio
async def test_database_failure_is_reported_as_db_error(
    db_session, use_case, platform_stub, monkeypatch
):
    user = await create_user(db_session)
    store, state = await _started(use_case, "linkedin", user.id)
    platform_stub.handler = _linkedin_handler()

    async def failing_upsert(self, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(PlatformConnectionRepository, "upsert", failing_upsert)

    with pytest.raises(PersistenceFailure) as exc_info:
        await use_case.complete("linkedin", code="c", state=state, error=None, store=store)

    assert exc_info.value.code == "db_error"
    assert await store.get(state_key("linkedin")) == state


@pytest.mark.asyncio
async def test_tokens_never_appear_in_logs(db_session, use_case, platform_stub, caplog):
    user = await create_user(db_session)
    store, state = await _started(use_case, "linkedin", user.id)
    platform_stub.handler = _linkedin_handler(access_token="very-secret-access-token")

    with caplog.at_level(logging.DEBUG):
        await use_case.complete("linkedin", code="secret-code", state=state, error=None, store=store)

    assert "very-secret-access-token" not in caplog.text
    assert "secret-code" not in caplog.text


class _RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.lines: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(record.getMessage())


def _graph_handler(request: httpx.Request) -> httpx.Response:
    params = request.url.params
    path = request.url.path
    if path == "/v18.0/oauth/access_token":
        if params.get("grant_type") == "fb_exchange_token":
            return httpx.Response(200, json={"access_token": "LONG-LIVED-TOKEN", "expires_in": 5183944})
        return httpx.Response(200, json={"access_token": "SHORT-LIVED-TOKEN", "expires_in": 3600})
    if path == "/v18.0/me/accounts":
        return httpx.Response(
            200, json={"data": [{"id": "page-1", "access_token": "PAGE-TOKEN"}]}
        )
    if path == "/v18.0/page-1":
        return httpx.Response(
            200,
            json={"id": "page-1", "instagram_business_account": {"id": "ig-1", "username": "shop"}},
        )
    return httpx.Response(200, json={"id": "fb-1", "name": "Ada FB"})


@pytest.mark.asyncio
@pytest.mark.parametrize("platform", ["facebook", "instagram"])
async def test_graph_api_secrets_stay_out_of_debug_logs(
    db_session, use_case, platform_stub, monkeypatch, platform
):
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    configure_logging()
    recorder = _RecordingHandler()
    watched = [logging.getLogger(), logging.getLogger("httpx"), logging.getLogger("httpcore")]
    for watched_logger in watched:
        watched_logger.addHandler(recorder)

    user = await create_user(db_session)
    store, state = await _started(use_case, platform, user.id)
    platform_stub.handler = _graph_handler
    try:
        await use_case.complete(platform, code="GRAPH-CODE", state=state, error=None, store=store)
    finally:
        for watched_logger in watched:
            watched_logger.removeHandler(recorder)

    assert platform_stub.requests
    output = "\n".join(recorder.lines)
    for secret in (
        "GRAPH-CODE",
        "facebook-secret",
        "SHORT-LIVED-TOKEN",
        "LONG-LIVED-TOKEN",
        "PAGE-TOKEN",
    ):
        assert secret not in output
    assert logging.getLogger("httpx").getEffectiveLevel() == logging.WARNING


@pytest.mark.asyncio
async def test_unreachable_state_store_is_not_reported_as_invalid_state(use_case, platform_stub):
    connection = RedisConnection("redis://example")

    async def unreachable():
        raise RedisError("Connection refused")

    connection.get_client = unreachable
    store = RedisStateStore(connection, {SESSION_COOKIE: "sid-1"}, CookiePolicy())

    with pytest.raises(StateUnavailable) as exc_info:
        await use_case.complete("linkedin", code="c", state="s1", error=None, store=store)

    assert exc_info.value.code == "state_unavailable"
    assert exc_info.value.redirect_to_login is False
    assert platform_stub.requests == []


def test_flow_errors_carry_redirect_codes():
    assert UnsupportedPlatform("x").code == "unsupported_platform"
    assert OAuthFlowError("boom").code == "oauth_error"
    assert PersistenceFailure("x").redirect_to_login is False
