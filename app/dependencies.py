"""
FastAPI dependencies for the CollabPost API.

Long-lived clients are created by the application lifespan and kept on
`app.state`; these functions hand them, and the stores and services built
on them, to route handlers. Tests replace any of them through
`app.dependency_overrides`.

Usage:
    from app.dependencies import get_publish_service

    @router.post("/{platform}")
    async def publish(service: PublishService = Depends(get_publish_service)):
        ...
"""

import logging
from typing import Any

import httpx
from fastapi import Depends, Request

from src.config import Settings, get_settings
from src.sharing import ShareAccessService, ShareAnnotationService
from src.social import PlatformRegistry, PublishService, build_default_registry
from src.storage import ContentStore, PlatformAccountStore, ShareStore, TeamStore
from src.teams import InviteService

from .exceptions import DatabaseError
from .middleware.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# =============================================================================
# Clients
# =============================================================================


def get_app_settings() -> Settings:
    return get_settings()


def get_db(request: Request) -> Any:
    """
    The async Supabase client.

    Raises:
        DatabaseError: Supabase is not configured for this process.
    """
    db = getattr(request.app.state, "db", None)
    if db is None:
        logger.error("Data store requested but Supabase is not configured")
        raise DatabaseError(internal_message="Supabase client is not configured")
    return db


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


# =============================================================================
# Stores
# =============================================================================


def get_content_store(db: Any = Depends(get_db)) -> ContentStore:
    return ContentStore(db)


def get_team_store(db: Any = Depends(get_db)) -> TeamStore:
    return TeamStore(db)


def get_platform_account_store(db: Any = Depends(get_db)) -> PlatformAccountStore:
    return PlatformAccountStore(db)


def get_share_store(db: Any = Depends(get_db)) -> ShareStore:
    return ShareStore(db)


# =============================================================================
# Services
# =============================================================================


def get_platform_registry(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    accounts: PlatformAccountStore = Depends(get_platform_account_store),
) -> PlatformRegistry:
    return build_default_registry(http_client, accounts)


def get_publish_service(
    content: ContentStore = Depends(get_content_store),
    accounts: PlatformAccountStore = Depends(get_platform_account_store),
    registry: PlatformRegistry = Depends(get_platform_registry),
) -> PublishService:
    return PublishService(content, accounts, registry)


def get_invite_service(teams: TeamStore = Depends(get_team_store)) -> InviteService:
    return InviteService(teams)


def get_share_access_service(
    content: ContentStore = Depends(get_content_store),
    teams: TeamStore = Depends(get_team_store),
) -> ShareAccessService:
    return ShareAccessService(content, teams)


def get_share_annotation_service(
    store: ShareStore = Depends(get_share_store),
    access: ShareAccessService = Depends(get_share_access_service),
) -> ShareAnnotationService:
    return ShareAnnotationService(store, access)
