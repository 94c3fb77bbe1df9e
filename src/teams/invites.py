"""
Team invite links.

This module provides:
- Invite token generation and hashing
- Invite creation by team owners and admins
- Invite acceptance with single-use enforcement

Security Notes:
- Only the SHA-256 digest of a token is stored or compared
- An invite is marked used by a conditional update, so two concurrent
  accepts of the same token cannot both succeed
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from src.storage.team_store import TeamStore
from src.types.team import (
    INVITABLE_ROLES,
    INVITE_MANAGER_ROLES,
    Team,
    TeamInvite,
    TeamRole,
)

logger = logging.getLogger(__name__)

INVITE_TOKEN_BYTES = 24
INVITE_EXPIRY_DAYS = 7


def generate_invite_token() -> str:
    """24 random bytes, URL-safe base64 without padding."""
    raw = secrets.token_bytes(INVITE_TOKEN_BYTES)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def hash_invite_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def normalize_invite_role(role: Optional[str]) -> TeamRole:
    """Uppercase the requested role; anything not invitable becomes VIEWER."""
    if isinstance(role, str):
        try:
            candidate = TeamRole(role.strip().upper())
        except ValueError:
            candidate = None
        if candidate in INVITABLE_ROLES:
            return candidate
    return TeamRole.VIEWER


def normalize_invite_email(email: Optional[str]) -> Optional[str]:
    if isinstance(email, str) and email.strip():
        return email.strip().lower()
    return None


# =============================================================================
# Errors
# =============================================================================


class InviteServiceError(Exception):
    """Base exception for invite errors."""

    def __init__(self, message: str, code: str = "INVITE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InviteForbiddenError(InviteServiceError):
    def __init__(self):
        super().__init__("Forbidden", code="INVITE_FORBIDDEN")


class TeamNotFoundError(InviteServiceError):
    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__("Team not found", code="TEAM_NOT_FOUND")


class InvalidInviteError(InviteServiceError):
    def __init__(self):
        super().__init__("Invalid invite link", code="INVITE_INVALID")


class InviteAlreadyUsedError(InviteServiceError):
    def __init__(self):
        super().__init__("Invite link has already been used", code="INVITE_USED")


class InviteExpiredError(InviteServiceError):
    def __init__(self):
        super().__init__("Invite link has expired", code="INVITE_EXPIRED")


class InviteEmailMismatchError(InviteServiceError):
    def __init__(self):
        super().__init__(
            "This invite was sent to a different account",
            code="INVITE_EMAIL_MISMATCH",
        )


# =============================================================================
# Service
# =============================================================================


@dataclass(frozen=True)
class CreatedInvite:
    """A stored invite together with the raw token, which is never persisted."""

    invite: TeamInvite
    token: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InviteService:
    """Creates and redeems team invite links."""

    def __init__(
        self,
        team_store: TeamStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.teams = team_store
        self._now = clock or _utcnow

    async def create_invite(
        self,
        team_id: str,
        user_id: str,
        role: Optional[str] = None,
        email: Optional[str] = None,
    ) -> CreatedInvite:
        """
        Create an invite link for a team.

        Args:
            team_id: Team to invite into.
            user_id: Caller; must be an OWNER or ADMIN of the team.
            role: Requested role for the invitee, VIEWER if absent or invalid.
            email: Restrict acceptance to this address, case-insensitively.

        Returns:
            CreatedInvite with the raw token.

        Raises:
            InviteForbiddenError: If the caller cannot invite to this team.
        """
        caller_role = await self.teams.get_member_role(team_id, user_id)
        if caller_role not in INVITE_MANAGER_ROLES:
            logger.warning(f"User {user_id} may not invite to team {team_id}")
            raise InviteForbiddenError()

        token = generate_invite_token()
        expires_at = self._now() + timedelta(days=INVITE_EXPIRY_DAYS)
        invite_role = normalize_invite_role(role)

        invite = await self.teams.create_invite({
            "team_id": team_id,
            "invited_by": user_id,
            "invited_email": normalize_invite_email(email),
            "invite_role": invite_role.value,
            "token_hash": hash_invite_token(token),
            "expires_at": expires_at.isoformat(),
        })

        logger.info(f"Invite {invite.id} created for team {team_id} with role {invite_role.value}")
        return CreatedInvite(invite=invite, token=token)

    async def accept_invite(
        self,
        team_id: str,
        token: str,
        user_id: str,
        user_email: Optional[str] = None,
    ) -> Team:
        """
        Redeem an invite for the calling user.

        Checks run in order: the hash must match an invite for the team, the
        invite must be unused, then unexpired, then addressed to the caller
        if it names an email. Accepting when already a member is not an
        error; the existing membership is kept as it is.

        Returns:
            The team joined.

        Raises:
            TeamNotFoundError, InvalidInviteError, InviteAlreadyUsedError,
            InviteExpiredError, InviteEmailMismatchError
        """
        team = await self.teams.get_team(team_id)
        if team is None:
            raise TeamNotFoundError(team_id)

        invite = await self.teams.find_invite(team_id, hash_invite_token(token))
        if invite is None:
            raise InvalidInviteError()

        if invite.is_used:
            raise InviteAlreadyUsedError()

        now = self._now()
        if invite.is_expired(now):
            raise InviteExpiredError()

        if invite.invited_email:
            if (user_email or "").strip().lower() != invite.invited_email.strip().lower():
                logger.warning(f"Invite {invite.id} addressed to another account, user {user_id}")
                raise InviteEmailMismatchError()

        inserted = await self.teams.add_member_if_absent(team_id, user_id, invite.invite_role)

        marked = await self.teams.mark_invite_used(invite.id, user_id, now)
        if not marked:
            # lost the race to a concurrent accept
            if inserted and not await self._used_by(team_id, token, user_id):
                await self.teams.remove_member(team_id, user_id)
            raise InviteAlreadyUsedError()

        logger.info(f"Invite {invite.id} accepted by {user_id} for team {team_id}")
        return team

    async def _used_by(self, team_id: str, token: str, user_id: str) -> bool:
        """Whether the winning accept was made by the same user (a double submit)."""
        invite = await self.teams.find_invite(team_id, hash_invite_token(token))
        return invite is not None and invite.used_by == user_id
