"""
Async Supabase client lifecycle.

The client is built once by the application lifespan, stored on
`app.state` and handed to request handlers through dependencies. It is
closed when the application shuts down.
"""

import logging
from typing import Optional

from supabase import AsyncClient, acreate_client

from src.config import DatabaseSettings

logger = logging.getLogger(__name__)


async def create_supabase_client(settings: DatabaseSettings) -> Optional[AsyncClient]:
    """
    Create the server-side Supabase client.

    Returns:
        The client, or None when Supabase is not configured.
    """
    if not settings.is_configured:
        logger.warning("Supabase is not configured; data store endpoints will be unavailable")
        return None

    client = await acreate_client(settings.supabase_url, settings.api_key)
    logger.info("Supabase client initialized")
    return client


async def close_supabase_client(client: Optional[AsyncClient]) -> None:
    """Release the HTTP sessions held by the client."""
    if client is None:
        return

    try:
        await client.postgrest.aclose()
        logger.info("Supabase client closed")
    except Exception as e:
        logger.warning(f"Error closing Supabase client: {e}")
