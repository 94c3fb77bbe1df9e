"""
LinkedIn UGC Posts API adapter.
"""

import logging
from typing import Any, Dict

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


class LinkedInPlatform(BasePlatform):
    """
    LinkedIn adapter posting as the member who connected the account.

    The created post's URN comes back in the `x-restli-id` header; older
    API versions put it in the JSON body as `id`.
    """

    API_BASE = "https://api.linkedin.com/v2"

    CONNECT_ERROR = "Failed to connect to LinkedIn API"
    DEFAULT_ERROR = "Failed to post to LinkedIn"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        account_store: PlatformAccountStore,
    ) -> None:
        super().__init__(PLATFORM_CONFIGS[SocialPlatform.LINKEDIN], http_client, account_store)

    async def _publish(
        self,
        credentials: PlatformCredentials,
        message: PublishMessage,
    ) -> str:
        if isinstance(message, ArticlePost):
            share_content = self._article_share(message)
        elif isinstance(message, TextPost):
            share_content = self._text_share(message)
        elif isinstance(message, ThreadPost):
            share_content = self._text_share(TextPost(text="\n\n".join(message.tweets)))
        else:
            raise PlatformError(self.DEFAULT_ERROR, platform=self.platform)

        return await self._create_post(credentials, share_content)

    def _text_share(self, post: TextPost) -> Dict[str, Any]:
        share: Dict[str, Any] = {
            "shareCommentary": {"text": self.truncate_text(post.text)},
            "shareMediaCategory": "IMAGE" if post.has_image else "NONE",
        }
        if post.has_image and post.image_url:
            share["media"] = [{"status": "READY", "originalUrl": post.image_url}]
        return share

    def _article_share(self, article: ArticlePost) -> Dict[str, Any]:
        media: Dict[str, Any] = {
            "status": "READY",
            "originalUrl": article.url,
            "title": {"text": article.title},
            "description": {"text": article.description},
        }
        if article.thumbnail_url:
            media["thumbnails"] = [{"url": article.thumbnail_url}]

        return {
            "shareCommentary": {
                "text": self.truncate_text(f"{article.title}\n\n{article.description}"),
            },
            "shareMediaCategory": "ARTICLE",
            "media": [media],
        }

    async def _create_post(
        self,
        credentials: PlatformCredentials,
        share_content: Dict[str, Any],
    ) -> str:
        author = f"urn:li:person:{credentials.account_id}"
        payload = {
            "author": author,
            "lifecycleState": "PUBLISHED",
            "specificContent": {
                "com.linkedin.ugc.ShareContent": share_content,
            },
            "visibility": {
                "com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC",
            },
        }

        response = await self._send(
            "POST",
            f"{self.API_BASE}/ugcPosts",
            headers=self._headers(credentials),
            json=payload,
        )
        self._raise_for_error(response, ("message", "error"))

        post_id = response.headers.get("x-restli-id") or self._json_body(response).get("id")
        if not post_id:
            raise PlatformError("LinkedIn API did not return a post id", platform=self.platform)

        return str(post_id)

    async def delete_post(
        self,
        team_id: str,
        account_id: str,
        post_id: str,
    ) -> PublishResult:
        """Delete a LinkedIn post by id or URN."""
        urn = post_id if post_id.startswith("urn:") else f"urn:li:share:{post_id}"

        try:
            credentials = await self.get_credentials(team_id, account_id)
            response = await self._send(
                "DELETE",
                f"{self.API_BASE}/ugcPosts/{urn}",
                headers=self._headers(credentials),
            )
            self._raise_for_error(
                response,
                ("message", "error"),
                default="Failed to delete LinkedIn post",
            )
        except PlatformError as e:
            return PublishResult.failed(e.message)
        except Exception:
            logger.exception(f"Unexpected error deleting LinkedIn post {urn}")
            return PublishResult.failed("Failed to delete LinkedIn post")

        logger.info(f"Deleted LinkedIn post {urn}")
        return PublishResult.ok(urn)

    def _headers(self, credentials: PlatformCredentials) -> Dict[str, str]:
        return {
            **self._bearer(credentials),
            "Content-Type": "application/json",
            "X-Restli-Protocol-Version": "2.0.0",
        }
