"""
Stored platform account connections.
"""

import logging
from typing import Any, Dict, Optional

from src.types.social import PlatformAccount

from .base import SupabaseStore

logger = logging.getLogger(__name__)


class PlatformAccountStore(SupabaseStore):
    """Reads and creates rows in `platform_accounts`. Accounts are never mutated."""

    async def get_account(
        self,
        account_id: str,
        team_id: str,
        platform: Optional[str] = None,
    ) -> Optional[PlatformAccount]:
        """
        Load an account scoped to a team.

        Args:
            account_id: Primary key of the account row.
            team_id: The account must belong to this team.
            platform: When given, the account must also be for this platform.

        Returns:
            The account, or None when no row matches every filter.
        """
        query = (
            self.db.table("platform_accounts")
            .select("*")
            .eq("id", account_id)
            .eq("team_id", team_id)
        )
        if platform:
            query = query.eq("platform", platform)

        result = await self._lookup(query.maybe_single(), "load platform account")
        row = self._single(result)
        return PlatformAccount.model_validate(row) if row else None

    async def create_account(self, data: Dict[str, Any]) -> PlatformAccount:
        result = await self._execute(
            self.db.table("platform_accounts").insert(data),
            "create platform account",
        )
        return PlatformAccount.model_validate(self._first(result, "create platform account"))
