"""
Registry of publishable platforms.

Maps a lowercase platform identifier to the pair of capabilities the
publish flow needs: turning blocks into a message, and posting it.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

import httpx

from src.storage.platform_account_store import PlatformAccountStore
from src.types.social import ExtractedMessage, PublishMessage, PublishResult, SocialPlatform

from .extractor import BlocksInput, extract_linkedin, extract_twitter
from .platforms.base import BasePlatform
from .platforms.linkedin import LinkedInPlatform
from .platforms.twitter import TwitterPlatform

logger = logging.getLogger(__name__)


class UnsupportedPlatformError(Exception):
    """Raised when no capability is registered for a platform name."""

    def __init__(self, platform: str):
        self.platform = platform
        self.message = f"Unsupported platform: {platform}"
        super().__init__(self.message)


@dataclass(frozen=True)
class PlatformCapability:
    """What the publish flow can do with one platform."""

    platform: SocialPlatform
    extractor: Callable[[BlocksInput], ExtractedMessage]
    adapter: BasePlatform

    def extract(self, blocks: BlocksInput) -> ExtractedMessage:
        return self.extractor(blocks)

    async def post(
        self,
        team_id: str,
        account_id: str,
        message: PublishMessage,
    ) -> PublishResult:
        return await self.adapter.post(team_id, account_id, message)


class PlatformRegistry:
    """Lookup table from platform name to PlatformCapability."""

    def __init__(self) -> None:
        self._capabilities: Dict[str, PlatformCapability] = {}

    def register(self, capability: PlatformCapability) -> None:
        name = capability.platform.value
        if name in self._capabilities:
            logger.warning(f"Replacing registered capability for {name}")
        self._capabilities[name] = capability

    def get(self, platform: str) -> PlatformCapability:
        """
        Look up a platform case-insensitively.

        Raises:
            UnsupportedPlatformError: With the name as the caller spelled it.
        """
        capability = self._capabilities.get(platform.lower())
        if capability is None:
            raise UnsupportedPlatformError(platform)
        return capability

    def names(self) -> List[str]:
        return sorted(self._capabilities)

    def __contains__(self, platform: str) -> bool:
        return platform.lower() in self._capabilities


def build_default_registry(
    http_client: httpx.AsyncClient,
    account_store: PlatformAccountStore,
) -> PlatformRegistry:
    """Registry with the X and LinkedIn adapters wired to shared clients."""
    registry = PlatformRegistry()
    registry.register(PlatformCapability(
        platform=SocialPlatform.TWITTER,
        extractor=extract_twitter,
        adapter=TwitterPlatform(http_client, account_store),
    ))
    registry.register(PlatformCapability(
        platform=SocialPlatform.LINKEDIN,
        extractor=extract_linkedin,
        adapter=LinkedInPlatform(http_client, account_store),
    ))
    return registry
