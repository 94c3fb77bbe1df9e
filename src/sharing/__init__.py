"""
Share links and visitor annotations.
"""

from .access import (
    CommentsDisabledError,
    ShareAccessService,
    SharedContent,
    SharedContentNotFoundError,
    ShareContentNotFoundError,
    ShareForbiddenError,
    ShareServiceError,
    ShareStatus,
    ShareValidationError,
    generate_share_token,
    tokens_match,
)
from .annotations import (
    AnnotationDraft,
    AnnotationNotFoundError,
    CommentDraft,
    CommentEdit,
    CommentNotFoundError,
    NotCommentAuthorError,
    ShareAnnotationService,
    parse_annotation_draft,
    parse_comment_draft,
    parse_comment_edit,
    parse_session,
    parse_status,
    require_token,
)

__all__ = [
    "ShareAccessService",
    "ShareAnnotationService",
    "SharedContent",
    "ShareStatus",
    "AnnotationDraft",
    "CommentDraft",
    "CommentEdit",
    "ShareServiceError",
    "ShareValidationError",
    "SharedContentNotFoundError",
    "ShareContentNotFoundError",
    "ShareForbiddenError",
    "CommentsDisabledError",
    "AnnotationNotFoundError",
    "CommentNotFoundError",
    "NotCommentAuthorError",
    "generate_share_token",
    "tokens_match",
    "parse_annotation_draft",
    "parse_comment_draft",
    "parse_comment_edit",
    "parse_session",
    "parse_status",
    "require_token",
]
