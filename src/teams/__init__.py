"""
Team membership and invites.
"""

from .invites import (
    INVITE_EXPIRY_DAYS,
    CreatedInvite,
    InvalidInviteError,
    InviteAlreadyUsedError,
    InviteEmailMismatchError,
    InviteExpiredError,
    InviteForbiddenError,
    InviteService,
    InviteServiceError,
    TeamNotFoundError,
    generate_invite_token,
    hash_invite_token,
    normalize_invite_email,
    normalize_invite_role,
)

__all__ = [
    "INVITE_EXPIRY_DAYS",
    "CreatedInvite",
    "InviteService",
    "InviteServiceError",
    "InvalidInviteError",
    "InviteAlreadyUsedError",
    "InviteEmailMismatchError",
    "InviteExpiredError",
    "InviteForbiddenError",
    "TeamNotFoundError",
    "generate_invite_token",
    "hash_invite_token",
    "normalize_invite_email",
    "normalize_invite_role",
]
