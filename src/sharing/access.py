"""
Share links for content items.

A content item is shared by giving it a random token; anyone holding
`/share/{content_id}?token=...` can read it, and comment on it unless the
owner turned comments off. Team members with an editing role manage the
link.
"""

import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from src.storage.content_store import ContentStore
from src.storage.team_store import TeamStore
from src.types.content import Content
from src.types.share import ShareSettings
from src.types.team import SHARE_MANAGER_ROLES

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 16


def generate_share_token() -> str:
    """16 random bytes as 32 lowercase hex characters."""
    return secrets.token_hex(SHARE_TOKEN_BYTES)


def tokens_match(expected: Optional[str], provided: Optional[str]) -> bool:
    """Constant-time comparison; a missing token never matches."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


# =============================================================================
# Errors
# =============================================================================


class ShareServiceError(Exception):
    """Base exception for share link errors."""

    def __init__(self, message: str, code: str = "SHARE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ShareValidationError(ShareServiceError):
    """Visitor input failed validation. `message` is shown to the visitor."""

    def __init__(self, message: str):
        super().__init__(message, code="SHARE_VALIDATION")


class SharedContentNotFoundError(ShareServiceError):
    def __init__(self):
        super().__init__("Shared content not found", code="SHARED_CONTENT_NOT_FOUND")


class CommentsDisabledError(ShareServiceError):
    def __init__(self):
        super().__init__("Comments are disabled for this link", code="COMMENTS_DISABLED")


class ShareContentNotFoundError(ShareServiceError):
    def __init__(self):
        super().__init__("Content not found", code="CONTENT_NOT_FOUND")


class ShareForbiddenError(ShareServiceError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="SHARE_FORBIDDEN")


# =============================================================================
# Service
# =============================================================================


@dataclass(frozen=True)
class SharedContent:
    content: Content
    settings: ShareSettings


@dataclass(frozen=True)
class ShareStatus:
    """Current link state of a content item."""

    content_id: str
    share_token: Optional[str]
    settings: ShareSettings

    @property
    def is_public(self) -> bool:
        return bool(self.share_token)


class ShareAccessService:
    """Resolves share tokens and manages a content item's share link."""

    def __init__(self, content_store: ContentStore, team_store: TeamStore):
        self.content = content_store
        self.teams = team_store

    async def resolve_shared_content(
        self,
        content_id: str,
        token: Optional[str],
    ) -> Optional[SharedContent]:
        """
        Content and visitor permissions for a valid share token.

        Returns:
            None when the content does not exist, is not shared, or the
            token does not match.
        """
        if not token:
            return None

        content = await self.content.get_content(content_id)
        if content is None or not tokens_match(content.share_token, token):
            return None

        return SharedContent(
            content=content,
            settings=ShareSettings.from_stored(content.share_settings),
        )

    async def require_shared_content(self, content_id: str, token: Optional[str]) -> SharedContent:
        shared = await self.resolve_shared_content(content_id, token)
        if shared is None:
            raise SharedContentNotFoundError()
        return shared

    async def require_commentable(self, content_id: str, token: Optional[str]) -> SharedContent:
        """
        Raises:
            SharedContentNotFoundError: Token does not resolve.
            CommentsDisabledError: The link is read-only.
        """
        shared = await self.require_shared_content(content_id, token)
        if not shared.settings.allow_comments:
            raise CommentsDisabledError()
        return shared

    # -------------------------------------------------------------------------
    # Link management
    # -------------------------------------------------------------------------

    async def get_share_status(self, content_id: str, user_id: str) -> ShareStatus:
        """Link state for a member of the content's team."""
        content = await self.content.get_content(content_id)
        if content is None:
            raise ShareContentNotFoundError()
        if not content.has_member(user_id):
            raise ShareForbiddenError()
        return self._status(content)

    async def get_share_status_by_token(self, content_id: str, token: str) -> ShareStatus:
        shared = await self.resolve_shared_content(content_id, token)
        if shared is None:
            raise ShareContentNotFoundError()
        return self._status(shared.content)

    async def set_sharing(
        self,
        content_id: str,
        user_id: str,
        enabled: bool,
        allow_comments: bool = True,
        allow_editing: bool = False,
    ) -> ShareStatus:
        """
        Turn the share link on (with a fresh token) or off.

        Turning it off clears both the token and the settings, so links
        handed out earlier stop resolving.
        """
        await self._require_manager(content_id, user_id)

        if not enabled:
            await self.content.update_share(content_id, None, None)
            logger.info(f"Sharing disabled for content {content_id} by {user_id}")
            return ShareStatus(content_id=content_id, share_token=None, settings=ShareSettings())

        settings = ShareSettings(allow_comments=allow_comments, allow_editing=allow_editing)
        token = generate_share_token()
        await self.content.update_share(content_id, token, settings.model_dump())
        logger.info(f"Sharing enabled for content {content_id} by {user_id}")
        return ShareStatus(content_id=content_id, share_token=token, settings=settings)

    async def revoke_sharing(self, content_id: str, user_id: str) -> None:
        await self._require_manager(content_id, user_id)
        await self.content.update_share(content_id, None, None)
        logger.info(f"Share link revoked for content {content_id} by {user_id}")

    async def _require_manager(self, content_id: str, user_id: str) -> Content:
        content = await self.content.get_content(content_id)
        if content is None:
            raise ShareContentNotFoundError()

        role = await self.teams.get_member_role(content.team_id, user_id)
        if role not in SHARE_MANAGER_ROLES:
            logger.warning(f"User {user_id} may not manage sharing of content {content_id}")
            raise ShareForbiddenError("Insufficient permissions")
        return content

    @staticmethod
    def _status(content: Content) -> ShareStatus:
        return ShareStatus(
            content_id=content.id,
            share_token=content.share_token,
            settings=ShareSettings.from_stored(content.share_settings),
        )
