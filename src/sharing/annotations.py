"""
Visitor annotations on shared content.

Visitors are anonymous: they identify themselves with a display name and a
browser session id. A comment can only be edited or deleted from the
session that wrote it.

Input is validated before anything is loaded, and each check produces the
message shown to the visitor.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from src.storage.share_store import ShareStore
from src.types.share import (
    MAX_NOTE_LENGTH,
    MAX_VISITOR_NAME_LENGTH,
    AnnotationStatus,
    ShareAnnotation,
    ShareAnnotationComment,
)

from .access import ShareAccessService, ShareServiceError, ShareValidationError

logger = logging.getLogger(__name__)


class AnnotationNotFoundError(ShareServiceError):
    def __init__(self):
        super().__init__("Annotation not found", code="ANNOTATION_NOT_FOUND")


class CommentNotFoundError(ShareServiceError):
    def __init__(self):
        super().__init__("Comment not found", code="COMMENT_NOT_FOUND")


class NotCommentAuthorError(ShareServiceError):
    def __init__(self, action: str):
        super().__init__(f"You can only {action} your own comments", code="NOT_COMMENT_AUTHOR")


# =============================================================================
# Input parsing
# =============================================================================


def _string(value: Any, strip: bool = True) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip() if strip else value


def _integer(value: Any) -> Optional[int]:
    """Whole numbers from JSON numbers or numeric strings; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


def require_token(token: Any) -> str:
    token = _string(token, strip=False)
    if not token:
        raise ShareValidationError("Share token is required")
    return token


def _require(value: str, message: str) -> str:
    if not value:
        raise ShareValidationError(message)
    return value


def _check_visitor_name(name: str) -> None:
    if len(name) > MAX_VISITOR_NAME_LENGTH:
        raise ShareValidationError(
            f"Visitor name must be {MAX_VISITOR_NAME_LENGTH} characters or fewer"
        )


def _check_comment(text: str) -> None:
    if len(text) > MAX_NOTE_LENGTH:
        raise ShareValidationError(f"Comment must be {MAX_NOTE_LENGTH} characters or fewer")


@dataclass(frozen=True)
class AnnotationDraft:
    token: str
    visitor_name: str
    visitor_session_id: str
    block_id: str
    comment_text: str
    text_snapshot: str
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class CommentDraft:
    token: str
    visitor_name: str
    visitor_session_id: str
    text: str


@dataclass(frozen=True)
class CommentEdit:
    token: str
    visitor_session_id: str
    text: str


def parse_annotation_draft(
    token: Any,
    visitor_name: Any,
    visitor_session_id: Any,
    block_id: Any,
    comment_text: Any,
    text_snapshot: Any,
    start_offset: Any,
    end_offset: Any,
) -> AnnotationDraft:
    """
    Validate a new annotation thread.

    Raises:
        ShareValidationError: For the first failing check.
    """
    token = require_token(token)
    name = _require(_string(visitor_name), "Visitor name is required")
    session = _require(_string(visitor_session_id), "Visitor session is required")
    block = _require(_string(block_id), "Block is required")
    comment = _require(_string(comment_text), "Comment text is required")
    snapshot = _string(text_snapshot, strip=False)
    if not snapshot.strip():
        raise ShareValidationError("Selected text is required")

    start = _integer(start_offset)
    end = _integer(end_offset)
    if start is None or end is None or start < 0 or end <= start:
        raise ShareValidationError("Invalid annotation range")

    _check_visitor_name(name)
    _check_comment(comment)
    if len(snapshot) > MAX_NOTE_LENGTH:
        raise ShareValidationError(f"Selected text must be {MAX_NOTE_LENGTH} characters or fewer")

    return AnnotationDraft(
        token=token,
        visitor_name=name,
        visitor_session_id=session,
        block_id=block,
        comment_text=comment,
        text_snapshot=snapshot,
        start_offset=start,
        end_offset=end,
    )


def parse_comment_draft(
    token: Any,
    visitor_name: Any,
    visitor_session_id: Any,
    text: Any,
) -> CommentDraft:
    token = require_token(token)
    name = _require(_string(visitor_name), "Visitor name is required")
    session = _require(_string(visitor_session_id), "Visitor session is required")
    body = _require(_string(text), "Comment text is required")
    _check_visitor_name(name)
    _check_comment(body)
    return CommentDraft(token=token, visitor_name=name, visitor_session_id=session, text=body)


def parse_comment_edit(token: Any, visitor_session_id: Any, text: Any) -> CommentEdit:
    token = require_token(token)
    session = _require(_string(visitor_session_id), "Visitor session is required")
    body = _require(_string(text), "Comment text is required")
    _check_comment(body)
    return CommentEdit(token=token, visitor_session_id=session, text=body)


def parse_session(visitor_session_id: Any) -> str:
    return _require(_string(visitor_session_id), "Visitor session is required")


def parse_status(status: Any) -> AnnotationStatus:
    if status in (AnnotationStatus.OPEN.value, AnnotationStatus.RESOLVED.value):
        return AnnotationStatus(status)
    raise ShareValidationError("Invalid status")


# =============================================================================
# Service
# =============================================================================


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShareAnnotationService:
    """
    Annotation threads for visitors holding a share token.

    Loading and token checks are separate steps so callers can apply rate
    limits between them.
    """

    def __init__(
        self,
        share_store: ShareStore,
        access: ShareAccessService,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = share_store
        self.access = access
        self._now = clock or _utcnow

    async def list_annotations(self, content_id: str, token: str) -> List[ShareAnnotation]:
        """Threads with their comments, oldest first. Empty when comments are off."""
        shared = await self.access.require_shared_content(content_id, token)
        if not shared.settings.allow_comments:
            return []
        return await self.store.list_annotations(content_id)

    async def load_annotation(self, annotation_id: str) -> ShareAnnotation:
        annotation = await self.store.get_annotation(annotation_id)
        if annotation is None:
            raise AnnotationNotFoundError()
        return annotation

    async def load_comment(self, comment_id: str) -> ShareAnnotationComment:
        comment = await self.store.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError()
        return comment

    async def create_annotation(self, content_id: str, draft: AnnotationDraft) -> ShareAnnotation:
        """Open a thread on a text range with its first comment."""
        await self.access.require_commentable(content_id, draft.token)

        annotation = await self.store.create_annotation({
            "content_id": content_id,
            "block_id": draft.block_id,
            "start_offset": draft.start_offset,
            "end_offset": draft.end_offset,
            "text_snapshot": draft.text_snapshot,
            "status": AnnotationStatus.OPEN.value,
            "created_by_name": draft.visitor_name,
            "created_by_session_id": draft.visitor_session_id,
        })
        comment = await self.store.create_comment({
            "annotation_id": annotation.id,
            "content_id": content_id,
            "text": draft.comment_text,
            "author_name": draft.visitor_name,
            "author_session_id": draft.visitor_session_id,
        })

        annotation.comments = [comment]
        logger.info(f"Annotation {annotation.id} opened on content {content_id}")
        return annotation

    async def set_status(
        self,
        annotation: ShareAnnotation,
        token: str,
        status: AnnotationStatus,
    ) -> ShareAnnotation:
        await self.access.require_commentable(annotation.content_id, token)
        resolved_at = self._now() if status == AnnotationStatus.RESOLVED else None
        return await self.store.update_annotation_status(annotation.id, status, resolved_at)

    async def add_comment(
        self,
        annotation: ShareAnnotation,
        draft: CommentDraft,
    ) -> ShareAnnotationComment:
        await self.access.require_commentable(annotation.content_id, draft.token)
        return await self.store.create_comment({
            "annotation_id": annotation.id,
            "content_id": annotation.content_id,
            "text": draft.text,
            "author_name": draft.visitor_name,
            "author_session_id": draft.visitor_session_id,
        })

    async def edit_comment(
        self,
        comment: ShareAnnotationComment,
        edit: CommentEdit,
    ) -> ShareAnnotationComment:
        await self.access.require_commentable(comment.content_id, edit.token)
        if comment.author_session_id != edit.visitor_session_id:
            raise NotCommentAuthorError("edit")
        return await self.store.update_comment_text(comment.id, edit.text)

    async def delete_comment(
        self,
        comment: ShareAnnotationComment,
        token: str,
        visitor_session_id: str,
    ) -> None:
        await self.access.require_commentable(comment.content_id, token)
        if comment.author_session_id != visitor_session_id:
            raise NotCommentAuthorError("delete")
        await self.store.delete_comment(comment.id)
        logger.info(f"Comment {comment.id} deleted by its author")
