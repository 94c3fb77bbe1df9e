"""Request models for the CollabPost API."""

from .requests import (
    AnnotationCreateRequest,
    AnnotationStatusRequest,
    CommentCreateRequest,
    CommentUpdateRequest,
    InviteAcceptRequest,
    InviteCreateRequest,
    PublishRequest,
    ShareSettingsRequest,
)

__all__ = [
    "AnnotationCreateRequest",
    "AnnotationStatusRequest",
    "CommentCreateRequest",
    "CommentUpdateRequest",
    "InviteAcceptRequest",
    "InviteCreateRequest",
    "PublishRequest",
    "ShareSettingsRequest",
]
