"""
X (Twitter) API v2 adapter.

Posts single tweets and reply-chained threads with a user's OAuth 2.0
bearer token.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from src.storage.platform_account_store import PlatformAccountStore
from src.types.social import (
    PLATFORM_CONFIGS,
    ArticlePost,
    PlatformCredentials,
    PublishMessage,
    PublishResult,
    SocialPlatform,
    TextPost,
    ThreadPost,
)

from .base import BasePlatform, PlatformError

logger = logging.getLogger(__name__)


class TwitterPlatform(BasePlatform):
    """
    X API v2 adapter.

    A thread is posted one tweet at a time, each replying to the previous
    one. The first failing tweet aborts the rest of the thread; tweets that
    were already posted stay up and their ids are not reported.
    """

    API_BASE = "https://api.twitter.com/2"

    CONNECT_ERROR = "Failed to connect to X API"
    DEFAULT_ERROR = "Failed to post to X"
    THREAD_ERROR = "Failed to publish thread to X"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        account_store: PlatformAccountStore,
    ) -> None:
        super().__init__(PLATFORM_CONFIGS[SocialPlatform.TWITTER], http_client, account_store)

    async def _publish(
        self,
        credentials: PlatformCredentials,
        message: PublishMessage,
    ) -> str:
        if isinstance(message, ThreadPost):
            if len(message.tweets) == 1:
                return await self._create_tweet(credentials, message.tweets[0])
            return await self._publish_thread(credentials, message.tweets)

        if isinstance(message, TextPost):
            return await self._create_tweet(credentials, message.text)

        if isinstance(message, ArticlePost):
            text = " ".join(part for part in (message.title, message.url) if part)
            return await self._create_tweet(credentials, text)

        raise PlatformError(self.DEFAULT_ERROR, platform=self.platform)

    async def publish_thread(
        self,
        team_id: str,
        account_id: str,
        tweets: List[str],
    ) -> PublishResult:
        """Publish tweets as a reply chain. Returns the first tweet's id."""
        return await self.post(team_id, account_id, ThreadPost(tweets=list(tweets)))

    async def _publish_thread(
        self,
        credentials: PlatformCredentials,
        tweets: List[str],
    ) -> str:
        normalized = [tweet.strip() for tweet in tweets if tweet and tweet.strip()]
        if not normalized:
            raise PlatformError("No tweets to publish", platform=self.platform)

        first_id: Optional[str] = None
        previous_id: Optional[str] = None

        for index, tweet in enumerate(normalized):
            try:
                previous_id = await self._create_tweet(credentials, tweet, previous_id)
            except PlatformError as e:
                logger.warning(
                    f"Thread aborted at tweet {index + 1}/{len(normalized)}: {e.message}"
                )
                raise PlatformError(
                    e.message or self.THREAD_ERROR,
                    platform=self.platform,
                    status_code=e.status_code,
                    raw_error=e.raw_error,
                ) from e

            if first_id is None:
                first_id = previous_id

        return first_id or previous_id or ""

    async def _create_tweet(
        self,
        credentials: PlatformCredentials,
        text: str,
        reply_to_id: Optional[str] = None,
    ) -> str:
        """Post one tweet, optionally as a reply. Returns the new tweet id."""
        payload: Dict[str, Any] = {"text": self.truncate_text(text)}
        if reply_to_id:
            payload["reply"] = {"in_reply_to_tweet_id": reply_to_id}

        response = await self._send(
            "POST",
            f"{self.API_BASE}/tweets",
            headers={**self._bearer(credentials), "Content-Type": "application/json"},
            json=payload,
        )
        self._raise_for_error(response, ("detail", "title"))

        data = self._json_body(response).get("data") or {}
        tweet_id = data.get("id") if isinstance(data, dict) else None
        if not tweet_id:
            raise PlatformError("X API did not return a post id", platform=self.platform)

        return str(tweet_id)

    async def delete_post(
        self,
        team_id: str,
        account_id: str,
        post_id: str,
    ) -> PublishResult:
        """Delete a tweet."""
        try:
            credentials = await self.get_credentials(team_id, account_id)
            response = await self._send(
                "DELETE",
                f"{self.API_BASE}/tweets/{post_id}",
                headers=self._bearer(credentials),
            )
            self._raise_for_error(response, ("detail", "title"), default="Failed to delete X post")
        except PlatformError as e:
            return PublishResult.failed(e.message)
        except Exception:
            logger.exception(f"Unexpected error deleting tweet {post_id}")
            return PublishResult.failed("Failed to delete X post")

        logger.info(f"Deleted tweet {post_id}")
        return PublishResult.ok(post_id)
