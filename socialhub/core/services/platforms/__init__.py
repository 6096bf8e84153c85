"""Per-platform OAuth adapters and the registry that selects them."""

from __future__ import annotations

from typing import Iterator, Optional

import httpx

from socialhub.core.models.platform_connection import Platform
from socialhub.core.services.platforms.base import (
    DEFAULT_TIMEOUT,
    ConnectionGrant,
    HttpClientFactory,
    OAuthCredentials,
    OAuthExchangeError,
    PlatformAdapter,
    PlatformAPIError,
    PlatformIdentity,
    RefreshNotSupported,
    TokenSet,
)
from socialhub.core.services.platforms.facebook import FacebookAdapter, InstagramAdapter
from socialhub.core.services.platforms.linkedin import LinkedInAdapter
from socialhub.core.services.platforms.tiktok import TikTokAdapter
from socialhub.core.services.platforms.twitter import TwitterAdapter
from socialhub.core.services.platforms.youtube import YouTubeAdapter

ADAPTER_CLASSES: dict[Platform, type[PlatformAdapter]] = {
    Platform.TWITTER: TwitterAdapter,
    Platform.LINKEDIN: LinkedInAdapter,
    Platform.FACEBOOK: FacebookAdapter,
    Platform.INSTAGRAM: InstagramAdapter,
    Platform.TIKTOK: TikTokAdapter,
    Platform.YOUTUBE: YouTubeAdapter,
}


class PlatformAdapterRegistry:
    """Maps each Platform to its adapter instance."""

    def __init__(self, adapters: dict[Platform, PlatformAdapter]):
        self._adapters = dict(adapters)

    @classmethod
    def default(
        cls,
        http_client: HttpClientFactory = httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "PlatformAdapterRegistry":
        return cls(
            {
                platform: adapter_cls(http_client=http_client, timeout=timeout)
                for platform, adapter_cls in ADAPTER_CLASSES.items()
            }
        )

    def get(self, platform: Platform) -> Optional[PlatformAdapter]:
        return self._adapters.get(platform)

    def __getitem__(self, platform: Platform) -> PlatformAdapter:
        return self._adapters[platform]

    def __contains__(self, platform: object) -> bool:
        return platform in self._adapters

    def __iter__(self) -> Iterator[Platform]:
        return iter(self._adapters)


__all__ = [
    "ADAPTER_CLASSES",
    "ConnectionGrant",
    "FacebookAdapter",
    "InstagramAdapter",
    "LinkedInAdapter",
    "OAuthCredentials",
    "OAuthExchangeError",
    "PlatformAdapter",
    "PlatformAdapterRegistry",
    "PlatformAPIError",
    "PlatformIdentity",
    "RefreshNotSupported",
    "TikTokAdapter",
    "TokenSet",
    "TwitterAdapter",
    "YouTubeAdapter",
]
