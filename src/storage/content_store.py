"""
Content item queries.

Reads join the owning team's members so authorization needs no second
round trip. Publishing state changes go through a conditional claim and a
single RPC that appends the activity and schedule rows in one transaction.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from src.types.content import (
    Content,
    ContentActivity,
    ContentSchedule,
    ContentStatus,
)

from .base import SupabaseStore

logger = logging.getLogger(__name__)

CONTENT_WITH_MEMBERS = "*, team:teams(id, members:team_members(user_id))"


def _map_content(row: Dict[str, Any]) -> Content:
    team = row.get("team") or {}
    members = team.get("members") or []
    data = {k: v for k, v in row.items() if k != "team"}
    data["member_ids"] = [m["user_id"] for m in members if m.get("user_id")]
    return Content.model_validate(data)


class ContentStore(SupabaseStore):
    """Queries over the `content` table and its append-only side tables."""

    async def get_content(self, content_id: str) -> Optional[Content]:
        """Load a content item with its team's member ids, or None."""
        result = await self._lookup(
            self.db.table("content")
            .select(CONTENT_WITH_MEMBERS)
            .eq("id", content_id)
            .maybe_single(),
            "load content",
        )
        row = self._single(result)
        return _map_content(row) if row else None

    async def claim_for_publish(
        self,
        content_id: str,
        published_at: datetime,
    ) -> bool:
        """
        Mark content PUBLISHED only if it is not already.

        Returns:
            True if this call performed the transition. Two concurrent
            publishes of the same item cannot both get True.
        """
        result = await self._execute(
            self.db.table("content")
            .update({
                "status": ContentStatus.PUBLISHED.value,
                "published_at": published_at.isoformat(),
            })
            .eq("id", content_id)
            .neq("status", ContentStatus.PUBLISHED.value),
            "claim content for publishing",
        )
        return bool(self._rows(result))

    async def release_publish_claim(
        self,
        content_id: str,
        previous_status: ContentStatus,
        previous_published_at: Optional[datetime],
    ) -> None:
        """Undo claim_for_publish after the platform call failed."""
        await self._execute(
            self.db.table("content")
            .update({
                "status": previous_status.value,
                "published_at": previous_published_at.isoformat() if previous_published_at else None,
            })
            .eq("id", content_id)
            .eq("status", ContentStatus.PUBLISHED.value),
            "release publish claim",
        )

    async def record_publish(
        self,
        activity: ContentActivity,
        schedule: ContentSchedule,
    ) -> None:
        """Append the activity and SENT schedule rows atomically."""
        await self._execute(
            self.db.rpc(
                "record_content_publish",
                {
                    "p_content_id": activity.content_id,
                    "p_team_id": activity.team_id,
                    "p_user_id": activity.user_id,
                    "p_from_status": activity.from_status.value if activity.from_status else None,
                    "p_metadata": activity.metadata,
                    "p_platform_account_id": schedule.platform_account_id,
                    "p_scheduled_at": schedule.scheduled_at.isoformat(),
                    "p_platform_post_id": schedule.platform_post_id,
                },
            ),
            "record publish activity",
        )

    async def update_share(
        self,
        content_id: str,
        share_token: Optional[str],
        share_settings: Optional[Dict[str, Any]],
    ) -> None:
        await self._execute(
            self.db.table("content")
            .update({"share_token": share_token, "share_settings": share_settings})
            .eq("id", content_id),
            "update share settings",
        )

    async def ping(self) -> None:
        """Cheapest possible round trip, used by the health check."""
        await self._execute(
            self.db.table("content").select("id").limit(1),
            "reach the data store",
        )
