import pytest
from cryptography.fernet import Fernet

from socialhub.core.config import get_settings
from socialhub.core.models.platform_connection import Platform
from socialhub.core.repositories.oauth_app_credential_repository import (
    OAuthAppCredentialRepository,
)
from socialhub.core.services.oauth_credentials_service import (
    MissingOAuthCredentials,
    OAuthCredentialsService,
    mask_secret,
)


@pytest.fixture
def service(db_session) -> OAuthCredentialsService:
    return OAuthCredentialsService(OAuthAppCredentialRepository(db_session), get_settings())


@pytest.mark.asyncio
async def test_resolve_falls_back_to_environment(service):
    credentials = await service.resolve(Platform.LINKEDIN)

    assert credentials.client_id == "linkedin-client"
    assert credentials.client_secret == "linkedin-secret"
    assert credentials.redirect_uri == "http://api.test/api/v1/oauth/linkedin/callback"


@pytest.mark.asyncio
async def test_instagram_shares_the_facebook_app(service):
    credentials = await service.resolve(Platform.INSTAGRAM)

    assert credentials.client_id == "facebook-app"
    assert credentials.redirect_uri.endswith("/oauth/instagram/callback")


@pytest.mark.asyncio
async def test_resolve_raises_when_nothing_is_configured(service):
    with pytest.raises(MissingOAuthCredentials, match="OAuth is not configured for tiktok"):
        await service.resolve(Platform.TIKTOK)


@pytest.mark.asyncio
async def test_active_database_row_wins_over_environment(db_session, service):
    row = await service.save(
        platform=Platform.LINKEDIN,
        client_id="db-client",
        client_secret="db-secret-value",
        redirect_uri="https://app.example.com/li/callback",
        additional_config={"tenant": "acme"},
    )
    await db_session.commit()

    assert row.client_secret_encrypted != "db-secret-value"
    credentials = await service.resolve(Platform.LINKEDIN)
    assert credentials.client_id == "db-client"
    assert credentials.client_secret == "db-secret-value"
    assert credentials.redirect_uri == "https://app.example.com/li/callback"
    assert credentials.additional_config == {"tenant": "acme"}


@pytest.mark.asyncio
async def test_inactive_row_is_ignored(db_session, service):
    await service.save(
        platform=Platform.LINKEDIN,
        client_id="db-client",
        client_secret="db-secret",
        is_active=False,
    )
    await db_session.commit()

    assert (await service.resolve(Platform.LINKEDIN)).client_id == "linkedin-client"


@pytest.mark.asyncio
async def test_save_replaces_existing_row(db_session, service):
    first = await service.save(platform=Platform.YOUTUBE, client_id="one", client_secret="s1")
    await db_session.commit()
    second = await service.save(platform=Platform.YOUTUBE, client_id="two", client_secret="s2")
    await db_session.commit()

    assert second.id == first.id
    rows = await service.list_credentials()
    assert [(r.platform, r.client_id) for r in rows] == [("youtube", "two")]
    assert service.masked_secret(second) == "**"


@pytest.mark.asyncio
async def test_unreadable_secret_counts_as_missing(db_session, service):
    row = await service.save(platform=Platform.TWITTER, client_id="c", client_secret="s")
    row.client_secret_encrypted = Fernet(Fernet.generate_key()).encrypt(b"s").decode()
    await db_session.commit()

    with pytest.raises(MissingOAuthCredentials):
        await service.resolve(Platform.TWITTER)
    assert service.masked_secret(row) == "<unreadable>"


@pytest.mark.asyncio
async def test_delete(db_session, service):
    await service.save(platform=Platform.FACEBOOK, client_id="c", client_secret="s")
    await db_session.commit()

    assert await service.delete(Platform.FACEBOOK) is True
    assert await service.delete(Platform.FACEBOOK) is False


@pytest.mark.asyncio
async def test_status_reports_source_per_platform(db_session, service):
    await service.save(platform=Platform.YOUTUBE, client_id="c", client_secret="s")
    await db_session.commit()

    statuses = {s.platform: s for s in await service.status()}

    assert statuses[Platform.YOUTUBE].source == "database"
    assert statuses[Platform.LINKEDIN].source == "env"
    assert statuses[Platform.LINKEDIN].configured is True
    assert statuses[Platform.TIKTOK].configured is False
    assert statuses[Platform.TIKTOK].missing == ["TIKTOK_CLIENT_KEY", "TIKTOK_CLIENT_SECRET"]


def test_mask_secret_keeps_last_four_characters():
    assert mask_secret("abcdefgh") == "****efgh"
    assert mask_secret("abc") == "***"
