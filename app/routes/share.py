"""
Share link endpoints.

Team members manage a content item's link under /api/content/{id}/share.
Visitors holding the link's token read the content and discuss it under
/api/share/...; those endpoints need no account and are rate limited per
content item and client IP.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from src.config import Settings
from src.sharing import (
    AnnotationNotFoundError,
    CommentNotFoundError,
    CommentsDisabledError,
    NotCommentAuthorError,
    ShareAccessService,
    ShareAnnotationService,
    SharedContentNotFoundError,
    ShareContentNotFoundError,
    ShareForbiddenError,
    ShareServiceError,
    ShareStatus,
    ShareValidationError,
    parse_annotation_draft,
    parse_comment_draft,
    parse_comment_edit,
    parse_session,
    parse_status,
    require_token,
)
from src.storage import StoreError
from src.types.share import ShareAnnotation, ShareAnnotationComment

from ..auth import AuthenticatedUser, get_current_user, get_optional_user
from ..dependencies import (
    get_app_settings,
    get_rate_limiter,
    get_share_access_service,
    get_share_annotation_service,
)
from ..exceptions import (
    AuthenticationError,
    AuthorizationError,
    CollabPostException,
    DatabaseError,
    ErrorCode,
    ResourceNotFoundError,
    ValidationError,
)
from ..middleware.rate_limiter import RateLimiter, get_request_ip
from ..models.requests import (
    AnnotationCreateRequest,
    AnnotationStatusRequest,
    CommentCreateRequest,
    CommentUpdateRequest,
    ShareSettingsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["share"])


# =============================================================================
# Error Handlers
# =============================================================================


def handle_share_error(e: Exception) -> CollabPostException:
    """Convert share errors to API exceptions."""
    if isinstance(e, ShareValidationError):
        return ValidationError(e.message)
    if isinstance(e, (SharedContentNotFoundError, ShareContentNotFoundError)):
        return ResourceNotFoundError(e.message, error_code=ErrorCode.CONTENT_NOT_FOUND)
    if isinstance(e, (AnnotationNotFoundError, CommentNotFoundError)):
        return ResourceNotFoundError(e.message)
    if isinstance(e, CommentsDisabledError):
        return AuthorizationError(e.message, error_code=ErrorCode.COMMENTS_DISABLED)
    if isinstance(e, (NotCommentAuthorError, ShareForbiddenError)):
        return AuthorizationError(e.message)
    if isinstance(e, StoreError):
        return DatabaseError(internal_message=e.message)
    if isinstance(e, ShareServiceError):
        return ValidationError(e.message)

    logger.exception(f"Unexpected share error: {e}")
    return CollabPostException()


SHARE_ERRORS = (ShareServiceError, StoreError)


class ShareLimits:
    """Per-request rate limit checks keyed by operation, content item and IP."""

    def __init__(
        self,
        request: Request,
        limiter: RateLimiter = Depends(get_rate_limiter),
        settings: Settings = Depends(get_app_settings),
    ):
        self.ip = get_request_ip(request)
        self.limiter = limiter
        self.settings = settings.rate_limit

    async def read(self, operation: str, content_id: str) -> None:
        await self.limiter.enforce(
            f"{operation}:{content_id}:{self.ip}",
            self.settings.share_read_limit,
            self.settings.share_window_ms,
        )

    async def write(self, operation: str, content_id: str) -> None:
        await self.limiter.enforce(
            f"{operation}:{content_id}:{self.ip}",
            self.settings.share_write_limit,
            self.settings.share_window_ms,
        )


# =============================================================================
# Serialization
# =============================================================================


def share_url(base_url: str, content_id: str, token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    return f"{base_url}/share/{content_id}?token={token}"


def status_payload(status: ShareStatus, base_url: str) -> Dict[str, Any]:
    return {
        "isPublic": status.is_public,
        "shareUrl": share_url(base_url, status.content_id, status.share_token),
        "allowComments": status.settings.allow_comments,
        "allowEditing": status.settings.allow_editing,
    }


def comment_payload(comment: ShareAnnotationComment) -> Dict[str, Any]:
    return comment.model_dump(mode="json", exclude={"content_id"})


def annotation_payload(annotation: ShareAnnotation) -> Dict[str, Any]:
    data = annotation.model_dump(mode="json", exclude={"comments"})
    data["comments"] = [comment_payload(c) for c in annotation.comments]
    return data


# =============================================================================
# Share settings (team members)
# =============================================================================


@router.get("/api/content/{content_id}/share", summary="Get share link status")
async def get_share_status(
    content_id: str,
    token: Optional[str] = Query(default=None),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    access: ShareAccessService = Depends(get_share_access_service),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """
    Team members see the link of their content. Anyone holding the token
    may read the same status without signing in.
    """
    try:
        if token:
            status = await access.get_share_status_by_token(content_id, token)
        elif user is None:
            raise AuthenticationError()
        else:
            status = await access.get_share_status(content_id, user.id)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": status_payload(status, settings.app.base_url)}


@router.post("/api/content/{content_id}/share", summary="Enable or disable the share link")
async def update_share_settings(
    content_id: str,
    body: Optional[ShareSettingsRequest] = Body(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    access: ShareAccessService = Depends(get_share_access_service),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Enabling always issues a new token, so previously shared links stop working."""
    body = body or ShareSettingsRequest()
    try:
        status = await access.set_sharing(
            content_id,
            user.id,
            enabled=body.enable_share,
            allow_comments=body.allow_comments,
            allow_editing=body.allow_editing,
        )
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": status_payload(status, settings.app.base_url)}


@router.delete("/api/content/{content_id}/share", summary="Revoke the share link")
async def revoke_share_link(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    access: ShareAccessService = Depends(get_share_access_service),
) -> Dict[str, Any]:
    try:
        await access.revoke_sharing(content_id, user.id)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": {"success": True}}


# =============================================================================
# Visitor access
# =============================================================================


@router.get("/api/share/{content_id}", summary="Read shared content")
async def read_shared_content(
    content_id: str,
    token: Optional[str] = Query(default=None),
    limits: ShareLimits = Depends(),
    access: ShareAccessService = Depends(get_share_access_service),
) -> Dict[str, Any]:
    try:
        token = require_token(token)
        await limits.read("share-content:get", content_id)
        shared = await access.require_shared_content(content_id, token)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    content = shared.content
    return {
        "data": {
            "id": content.id,
            "title": content.title,
            "status": content.status.value,
            "blocks": [block.model_dump(mode="json") for block in content.blocks],
            "allowComments": shared.settings.allow_comments,
            "allowEditing": shared.settings.allow_editing,
        }
    }


@router.get("/api/share/{content_id}/annotations", summary="List annotation threads")
async def list_annotations(
    content_id: str,
    token: Optional[str] = Query(default=None),
    limits: ShareLimits = Depends(),
    service: ShareAnnotationService = Depends(get_share_annotation_service),
) -> Dict[str, Any]:
    try:
        token = require_token(token)
        await limits.read("share-annotations:get", content_id)
        annotations = await service.list_annotations(content_id, token)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": [annotation_payload(a) for a in annotations]}


@router.post("/api/share/{content_id}/annotations", summary="Open an annotation thread")
async def create_annotation(
    content_id: str,
    body: Optional[AnnotationCreateRequest] = Body(default=None),
    limits: ShareLimits = Depends(),
    service: ShareAnnotationService = Depends(get_share_annotation_service),
) -> Dict[str, Any]:
    body = body or AnnotationCreateRequest()
    try:
        draft = parse_annotation_draft(
            token=body.token,
            visitor_name=body.visitor_name,
            visitor_session_id=body.visitor_session_id,
            block_id=body.block_id,
            comment_text=body.comment_text,
            text_snapshot=body.text_snapshot,
            start_offset=body.start_offset,
            end_offset=body.end_offset,
        )
        await limits.write("share-annotations:post", content_id)
        annotation = await service.create_annotation(content_id, draft)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": annotation_payload(annotation)}


@router.patch("/api/share/annotations/{annotation_id}", summary="Resolve or reopen a thread")
async def update_annotation_status(
    annotation_id: str,
    body: Optional[AnnotationStatusRequest] = Body(default=None),
    limits: ShareLimits = Depends(),
    service: ShareAnnotationService = Depends(get_share_annotation_service),
) -> Dict[str, Any]:
    body = body or AnnotationStatusRequest()
    try:
        token = require_token(body.token)
        new_status = parse_status(body.status)
        annotation = await service.load_annotation(annotation_id)
        await limits.write("share-annotations:patch", annotation.content_id)
        updated = await service.set_status(annotation, token, new_status)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": annotation_payload(updated)}


@router.post("/api/share/annotations/{annotation_id}/comments", summary="Reply to a thread")
async def add_comment(
    annotation_id: str,
    body: Optional[CommentCreateRequest] = Body(default=None),
    limits: ShareLimits = Depends(),
    service: ShareAnnotationService = Depends(get_share_annotation_service),
) -> Dict[str, Any]:
    body = body or CommentCreateRequest()
    try:
        draft = parse_comment_draft(
            token=body.token,
            visitor_name=body.visitor_name,
            visitor_session_id=body.visitor_session_id,
            text=body.text,
        )
        annotation = await service.load_annotation(annotation_id)
        await limits.write("share-annotation-comments:post", annotation.content_id)
        comment = await service.add_comment(annotation, draft)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": comment_payload(comment)}


@router.patch("/api/share/annotation-comments/{comment_id}", summary="Edit your comment")
async def edit_comment(
    comment_id: str,
    body: Optional[CommentUpdateRequest] = Body(default=None),
    limits: ShareLimits = Depends(),
    service: ShareAnnotationService = Depends(get_share_annotation_service),
) -> Dict[str, Any]:
    body = body or CommentUpdateRequest()
    try:
        edit = parse_comment_edit(
            token=body.token,
            visitor_session_id=body.visitor_session_id,
            text=body.text,
        )
        comment = await service.load_comment(comment_id)
        await limits.write("share-annotation-comments:patch", comment.content_id)
        updated = await service.edit_comment(comment, edit)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": comment_payload(updated)}


@router.delete("/api/share/annotation-comments/{comment_id}", summary="Delete your comment")
async def delete_comment(
    comment_id: str,
    token: Optional[str] = Query(default=None),
    visitor_session_id: Optional[str] = Query(default=None, alias="visitorSessionId"),
    limits: ShareLimits = Depends(),
    service: ShareAnnotationService = Depends(get_share_annotation_service),
) -> Dict[str, Any]:
    try:
        token = require_token(token)
        session = parse_session(visitor_session_id)
        comment = await service.load_comment(comment_id)
        await limits.write("share-annotation-comments:delete", comment.content_id)
        await service.delete_comment(comment, token, session)
    except SHARE_ERRORS as e:
        raise handle_share_error(e) from e

    return {"data": {"success": True}}
