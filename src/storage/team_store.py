"""
Team, membership and invite queries.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.types.team import Team, TeamInvite, TeamRole

from .base import SupabaseStore

logger = logging.getLogger(__name__)


class TeamStore(SupabaseStore):
    """Queries over `teams`, `team_members` and `team_invites`."""

    async def get_team(self, team_id: str) -> Optional[Team]:
        result = await self._lookup(
            self.db.table("teams").select("id, name, slug").eq("id", team_id).maybe_single(),
            "load team",
        )
        row = self._single(result)
        return Team.model_validate(row) if row else None

    async def get_member_role(self, team_id: str, user_id: str) -> Optional[TeamRole]:
        """Role of a user in a team, or None if they are not a member."""
        result = await self._lookup(
            self.db.table("team_members")
            .select("role")
            .eq("team_id", team_id)
            .eq("user_id", user_id)
            .maybe_single(),
            "load team membership",
        )
        row = self._single(result)
        if not row:
            return None
        try:
            return TeamRole(row.get("role"))
        except ValueError:
            logger.warning(f"Unknown team role {row.get('role')!r} for user {user_id}")
            return None

    async def add_member_if_absent(
        self,
        team_id: str,
        user_id: str,
        role: TeamRole,
    ) -> bool:
        """
        Insert a membership row unless one already exists.

        Returns:
            True if a new row was inserted, False if the user was already
            a member (their existing role is left untouched).
        """
        result = await self._execute(
            self.db.table("team_members").upsert(
                {"team_id": team_id, "user_id": user_id, "role": role.value},
                on_conflict="team_id,user_id",
                ignore_duplicates=True,
            ),
            "add team member",
        )
        return bool(self._rows(result))

    async def remove_member(self, team_id: str, user_id: str) -> None:
        await self._execute(
            self.db.table("team_members")
            .delete()
            .eq("team_id", team_id)
            .eq("user_id", user_id),
            "remove team member",
        )

    async def create_invite(self, data: Dict[str, Any]) -> TeamInvite:
        result = await self._execute(
            self.db.table("team_invites").insert(data),
            "create team invite",
        )
        return TeamInvite.model_validate(self._first(result, "create team invite"))

    async def find_invite(self, team_id: str, token_hash: str) -> Optional[TeamInvite]:
        result = await self._lookup(
            self.db.table("team_invites")
            .select("*")
            .eq("team_id", team_id)
            .eq("token_hash", token_hash)
            .maybe_single(),
            "load team invite",
        )
        row = self._single(result)
        return TeamInvite.model_validate(row) if row else None

    async def mark_invite_used(
        self,
        invite_id: str,
        user_id: str,
        used_at: datetime,
    ) -> bool:
        """
        Mark an invite used if nobody has yet.

        Returns:
            True if this call marked it. Of two concurrent callers at most
            one gets True.
        """
        result = await self._execute(
            self.db.table("team_invites")
            .update({"used_at": used_at.isoformat(), "used_by": user_id})
            .eq("id", invite_id)
            .is_("used_at", "null"),
            "mark invite used",
        )
        return bool(self._rows(result))

