"""API routes for the CollabPost application."""

from .health import router as health_router
from .invites import router as invites_router
from .platforms import router as platforms_router
from .publish import router as publish_router
from .share import router as share_router

__all__ = [
    "health_router",
    "invites_router",
    "platforms_router",
    "publish_router",
    "share_router",
]
