"""
Publish-now service.

Provides:
- Authorization of the caller against the content's team
- Extraction and posting through the platform registry
- A conditional claim so one content item is published at most once
- Release of the claim when the platform call fails
- Atomic recording of the activity and schedule rows on success
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from src.storage.base import StoreError
from src.storage.content_store import ContentStore
from src.storage.platform_account_store import PlatformAccountStore
from src.types.content import (
    ActivityAction,
    ContentActivity,
    ContentSchedule,
    ContentStatus,
    ScheduleStatus,
)
from src.types.social import NoContent

from .registry import PlatformRegistry

logger = logging.getLogger(__name__)


class PublishServiceError(Exception):
    """Base exception for publish flow errors."""

    def __init__(self, message: str, code: str = "PUBLISH_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ContentNotFoundError(PublishServiceError):
    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__("Content not found", code="CONTENT_NOT_FOUND")


class ContentAccessDeniedError(PublishServiceError):
    def __init__(self):
        super().__init__("Access denied", code="ACCESS_DENIED")


class PlatformAccountNotFoundError(PublishServiceError):
    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Platform account not found", code="PLATFORM_ACCOUNT_NOT_FOUND")


class NoPublishableContentError(PublishServiceError):
    """The blocks hold nothing the platform can post."""

    def __init__(self, reason: str = "No content to post"):
        super().__init__(reason, code="NO_CONTENT")


class AlreadyPublishedError(PublishServiceError):
    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__("Content is already published", code="ALREADY_PUBLISHED")


class PlatformPublishError(PublishServiceError):
    """The platform adapter reported a failure. `message` is its error text."""

    def __init__(self, message: str):
        super().__init__(message, code="PLATFORM_PUBLISH_FAILED")


@dataclass(frozen=True)
class PublishOutcome:
    platform_post_id: str
    published_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PublishService:
    """
    Publishes a content item to one platform account, synchronously.

    Nothing is written before the claim. After the claim, a failed platform
    call restores the previous status; a successful one is recorded with a
    single RPC so the activity and schedule rows land together.
    """

    def __init__(
        self,
        content_store: ContentStore,
        account_store: PlatformAccountStore,
        registry: PlatformRegistry,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.content = content_store
        self.accounts = account_store
        self.registry = registry
        self._now = clock or _utcnow

    async def publish(
        self,
        platform: str,
        content_id: str,
        platform_account_id: str,
        user_id: str,
    ) -> PublishOutcome:
        """
        Publish content now.

        Args:
            platform: Platform name from the URL, case-insensitive
            content_id: Content item to publish
            platform_account_id: Team platform account to post from
            user_id: Authenticated caller

        Returns:
            PublishOutcome with the platform's post id

        Raises:
            ContentNotFoundError: Unknown content id
            ContentAccessDeniedError: Caller is not a member of the content's team
            PlatformAccountNotFoundError: Account missing or owned by another team
            UnsupportedPlatformError: No capability registered for `platform`
            NoPublishableContentError: Blocks have nothing to post
            AlreadyPublishedError: Another request already published the item
            PlatformPublishError: The platform call failed
            StoreError: A data store query failed
        """
        content = await self.content.get_content(content_id)
        if content is None:
            raise ContentNotFoundError(content_id)

        if not content.has_member(user_id):
            logger.warning(f"User {user_id} denied publishing content {content_id}")
            raise ContentAccessDeniedError()

        account = await self.accounts.get_account(platform_account_id, content.team_id)
        if account is None:
            raise PlatformAccountNotFoundError(platform_account_id)

        capability = self.registry.get(platform)
        message = capability.extract(content.blocks)
        if isinstance(message, NoContent):
            raise NoPublishableContentError(message.reason)

        claimed_at = self._now()
        claimed = await self.content.claim_for_publish(content_id, claimed_at)
        if not claimed:
            logger.info(f"Content {content_id} was already published; skipping {platform}")
            raise AlreadyPublishedError(content_id)

        logger.info(f"Publishing content {content_id} to {capability.platform.value}")
        try:
            result = await capability.post(content.team_id, platform_account_id, message)
        except Exception:
            logger.exception(f"Posting content {content_id} to {capability.platform.value} raised")
            await self._release(content_id, content.status, content.published_at)
            raise

        if not result.success or result.data is None:
            await self._release(content_id, content.status, content.published_at)
            raise PlatformPublishError(result.error or f"Failed to publish to {platform}")

        await self.content.record_publish(
            ContentActivity(
                content_id=content_id,
                team_id=content.team_id,
                user_id=user_id,
                action=ActivityAction.STATUS_CHANGED,
                from_status=content.status,
                to_status=ContentStatus.PUBLISHED,
                metadata={"source": "publish", "platform": capability.platform.value},
            ),
            ContentSchedule(
                content_id=content_id,
                platform_account_id=platform_account_id,
                scheduled_at=claimed_at,
                status=ScheduleStatus.SENT,
                platform_post_id=result.data.id,
            ),
        )

        logger.info(f"Published content {content_id} as {result.data.id}")
        return PublishOutcome(platform_post_id=result.data.id, published_at=claimed_at)

    async def _release(
        self,
        content_id: str,
        previous_status: ContentStatus,
        previous_published_at: Optional[datetime],
    ) -> None:
        """Compensate for the claim. A failure here leaves the item PUBLISHED."""
        try:
            await self.content.release_publish_claim(
                content_id,
                previous_status,
                previous_published_at,
            )
        except StoreError:
            logger.exception(f"Failed to release publish claim on content {content_id}")
            raise
