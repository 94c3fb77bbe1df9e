"""
Publish-now endpoint.

POST /api/publish/{platform} posts a content item to one of its team's
connected platform accounts and marks it published.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, status

from src.social import (
    AlreadyPublishedError,
    ContentAccessDeniedError,
    ContentNotFoundError,
    NoPublishableContentError,
    PlatformAccountNotFoundError,
    PlatformPublishError,
    PublishService,
    PublishServiceError,
    UnsupportedPlatformError,
)
from src.storage import StoreError

from ..auth import AuthenticatedUser, get_current_user
from ..dependencies import get_publish_service
from ..exceptions import (
    AuthorizationError,
    CollabPostException,
    ConflictError,
    DatabaseError,
    ErrorCode,
    PublishError,
    ResourceNotFoundError,
    ValidationError,
)
from ..models.requests import PublishRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/publish", tags=["publish"])


# =============================================================================
# Error Handlers
# =============================================================================


def handle_publish_error(e: Exception) -> CollabPostException:
    """Convert publish flow errors to API exceptions."""
    if isinstance(e, UnsupportedPlatformError):
        return ValidationError(e.message, error_code=ErrorCode.UNSUPPORTED_PLATFORM)
    if isinstance(e, ContentNotFoundError):
        return ResourceNotFoundError(e.message, error_code=ErrorCode.CONTENT_NOT_FOUND)
    if isinstance(e, PlatformAccountNotFoundError):
        return ResourceNotFoundError(e.message, error_code=ErrorCode.PLATFORM_ACCOUNT_NOT_FOUND)
    if isinstance(e, ContentAccessDeniedError):
        return AuthorizationError(e.message)
    if isinstance(e, AlreadyPublishedError):
        return ConflictError(e.message, error_code=ErrorCode.ALREADY_PUBLISHED)
    if isinstance(e, NoPublishableContentError):
        # Nothing to post is reported like a platform failure
        return PublishError(e.message, error_code=ErrorCode.NO_CONTENT)
    if isinstance(e, PlatformPublishError):
        return PublishError(e.message)
    if isinstance(e, StoreError):
        return DatabaseError(internal_message=e.message)
    if isinstance(e, PublishServiceError):
        return PublishError(e.message)

    logger.exception(f"Unexpected publish error: {e}")
    return CollabPostException()


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/{platform}",
    status_code=status.HTTP_200_OK,
    summary="Publish content now",
    description="""
Post a content item to a connected platform account and mark it published.

The content's blocks are converted for the platform (a thread or single
post for X, an article or text share for LinkedIn). An item can be
published once; a second request gets 409.
    """,
    responses={
        200: {
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "platformPostId": "1790000000000000000",
                        "publishedAt": "2026-01-24T12:00:00+00:00",
                    }
                }
            }
        }
    },
)
async def publish_content(
    platform: str,
    body: Optional[PublishRequest] = Body(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: PublishService = Depends(get_publish_service),
) -> Dict[str, Any]:
    if body is None or not body.content_id or not body.platform_account_id:
        raise ValidationError("contentId and platformAccountId are required")

    try:
        outcome = await service.publish(
            platform=platform,
            content_id=body.content_id,
            platform_account_id=body.platform_account_id,
            user_id=user.id,
        )
    except (PublishServiceError, UnsupportedPlatformError, StoreError) as e:
        raise handle_publish_error(e) from e

    return {
        "success": True,
        "platformPostId": outcome.platform_post_id,
        "publishedAt": outcome.published_at.isoformat(),
    }
