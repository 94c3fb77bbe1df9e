"""
Type definitions for teams, membership and invites.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class TeamRole(str, Enum):
    """Team member roles, highest privilege first."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


# Roles an invite can grant. Ownership is never handed out by link.
INVITABLE_ROLES: List[TeamRole] = [TeamRole.ADMIN, TeamRole.EDITOR, TeamRole.VIEWER]

# Roles allowed to create invites
INVITE_MANAGER_ROLES: List[TeamRole] = [TeamRole.OWNER, TeamRole.ADMIN]

# Roles allowed to change a content item's share settings
SHARE_MANAGER_ROLES: List[TeamRole] = [TeamRole.OWNER, TeamRole.ADMIN, TeamRole.EDITOR]


class Team(BaseModel):
    id: str
    name: str = ""
    slug: str


class TeamMember(BaseModel):
    team_id: str
    user_id: str
    role: TeamRole


class TeamInvite(BaseModel):
    """A stored invite. Only the SHA-256 digest of the raw token is kept."""

    id: str
    team_id: str
    token_hash: str
    invite_role: TeamRole = TeamRole.VIEWER
    invited_by: Optional[str] = None
    invited_email: Optional[str] = None
    expires_at: datetime
    used_at: Optional[datetime] = None
    used_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
