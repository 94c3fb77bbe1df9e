"""
Team invite endpoints.

- POST /api/teams/{team_id}/invites: owners and admins create an invite link
- POST /api/invite/{team_id}/accept: the signed-in user redeems one
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends

from src.config import Settings
from src.storage import StoreError
from src.teams import (
    InvalidInviteError,
    InviteAlreadyUsedError,
    InviteEmailMismatchError,
    InviteExpiredError,
    InviteForbiddenError,
    InviteService,
    InviteServiceError,
    TeamNotFoundError,
)

from ..auth import AuthenticatedUser, get_current_user
from ..dependencies import get_app_settings, get_invite_service
from ..exceptions import (
    AuthorizationError,
    CollabPostException,
    DatabaseError,
    ErrorCode,
    ResourceNotFoundError,
    ValidationError,
)
from ..models.requests import InviteAcceptRequest, InviteCreateRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["invites"])


def handle_invite_error(e: Exception) -> CollabPostException:
    """Convert invite errors to API exceptions."""
    if isinstance(e, TeamNotFoundError):
        return ResourceNotFoundError(e.message, error_code=ErrorCode.TEAM_NOT_FOUND)
    if isinstance(e, (InvalidInviteError, InviteAlreadyUsedError, InviteExpiredError)):
        return ValidationError(e.message, error_code=ErrorCode.INVALID_INVITE)
    if isinstance(e, (InviteForbiddenError, InviteEmailMismatchError)):
        return AuthorizationError(e.message)
    if isinstance(e, StoreError):
        return DatabaseError(internal_message=e.message)
    if isinstance(e, InviteServiceError):
        return ValidationError(e.message)

    logger.exception(f"Unexpected invite error: {e}")
    return CollabPostException()


def build_invite_url(base_url: str, team_id: str, token: str) -> str:
    return f"{base_url}/invite/{team_id}?token={quote(token, safe='')}"


@router.post(
    "/api/teams/{team_id}/invites",
    summary="Create an invite link",
    description="Owners and admins only. The raw token appears once, in `inviteUrl`; only its hash is stored.",
)
async def create_invite(
    team_id: str,
    body: Optional[InviteCreateRequest] = Body(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    body = body or InviteCreateRequest()
    try:
        created = await service.create_invite(
            team_id=team_id,
            user_id=user.id,
            role=body.role,
            email=body.email,
        )
    except (InviteServiceError, StoreError) as e:
        raise handle_invite_error(e) from e

    return {
        "data": {
            "inviteUrl": build_invite_url(settings.app.base_url, team_id, created.token),
            "expiresAt": created.invite.expires_at.isoformat(),
            "role": created.invite.invite_role.value,
        }
    }


@router.post(
    "/api/invite/{team_id}/accept",
    summary="Accept an invite",
    description="Joins the team with the invite's role. Each invite can be used once.",
)
async def accept_invite(
    team_id: str,
    body: Optional[InviteAcceptRequest] = Body(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service),
) -> Dict[str, Any]:
    token = body.token if body else None
    if not isinstance(token, str) or not token.strip():
        raise ValidationError("Invite token is required", field="token")

    try:
        team = await service.accept_invite(
            team_id=team_id,
            token=token.strip(),
            user_id=user.id,
            user_email=user.email,
        )
    except (InviteServiceError, StoreError) as e:
        raise handle_invite_error(e) from e

    return {"data": {"slug": team.slug}}
