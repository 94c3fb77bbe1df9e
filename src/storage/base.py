"""
Shared plumbing for Supabase-backed stores.
"""

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError

logger = logging.getLogger(__name__)

# Postgres invalid_text_representation, e.g. a malformed uuid in a filter
INVALID_TEXT_REPRESENTATION = "22P02"


class StoreError(Exception):
    """A query against the data store failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class SupabaseStore:
    """Base class holding the injected async Supabase client."""

    def __init__(self, db_client: Any):
        """
        Args:
            db_client: Async Supabase client (or any object exposing the
                same `table(...)` / `rpc(...)` query builders).
        """
        self.db = db_client

    async def _execute(self, query: Any, action: str) -> Any:
        """Run a built query, turning PostgREST failures into StoreError."""
        try:
            return await query.execute()
        except APIError as e:
            logger.error(f"Supabase error while trying to {action}: {e.message}")
            raise StoreError(f"Failed to {action}", original_error=e) from e

    async def _lookup(self, query: Any, action: str) -> Any:
        """
        Run a single-row read. An id the column type rejects matches no row,
        so it reads as a miss (None) rather than a failure.
        """
        try:
            return await query.execute()
        except APIError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                logger.info(f"Malformed id while trying to {action}: {e.message}")
                return None
            logger.error(f"Supabase error while trying to {action}: {e.message}")
            raise StoreError(f"Failed to {action}", original_error=e) from e

    @staticmethod
    def _single(result: Any) -> Optional[dict]:
        """Row from a maybe_single() query; newer clients return None for no match."""
        if result is None:
            return None
        data = result.data
        if isinstance(data, list):
            return data[0] if data else None
        return data or None

    @staticmethod
    def _rows(result: Any) -> list:
        if result is None or not result.data:
            return []
        return list(result.data)

    @classmethod
    def _first(cls, result: Any, action: str) -> dict:
        """First returned row of a write; a write with no representation is a failure."""
        rows = cls._rows(result)
        if not rows:
            logger.error(f"Supabase returned no row while trying to {action}")
            raise StoreError(f"Failed to {action}")
        return rows[0]
