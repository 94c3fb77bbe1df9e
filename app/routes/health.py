"""
Health check endpoints.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import sentry_sdk
from fastapi import APIRouter, Request

from src.config import get_settings
from src.storage import ContentStore, StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

SERVICE_VERSION = "1.0.0"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_database_status(db: Optional[Any]) -> Dict[str, Any]:
    """Run one trivial query through the application's client."""
    if db is None:
        return {
            "configured": False,
            "connected": False,
            "error": "Supabase is not configured",
        }

    start = time.perf_counter()
    try:
        await ContentStore(db).ping()
    except StoreError as e:
        logger.warning(f"Database health check failed: {e.message}")
        return {"configured": True, "connected": False, "error": e.message}

    return {
        "configured": True,
        "connected": True,
        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
    }


def get_sentry_status() -> Dict[str, Any]:
    settings = get_settings()
    configured = settings.is_sentry_configured
    return {
        "configured": configured,
        "active": sentry_sdk.get_client().is_active() if configured else False,
        "environment": settings.sentry.sentry_environment if configured else None,
    }


def _service_state(status: Dict[str, Any], up_key: str) -> str:
    if status.get(up_key):
        return "up"
    return "down" if status.get("configured") else "unconfigured"


@router.get(
    "/health",
    summary="Service health check",
    description="Liveness for load balancers. Public; reports degraded when the database is unreachable.",
)
async def health_check(request: Request) -> Dict[str, Any]:
    db_status = await get_database_status(getattr(request.app.state, "db", None))
    sentry_status = get_sentry_status()
    limiter = getattr(request.app.state, "rate_limiter", None)

    # An unconfigured database is a local setup, not an outage
    is_healthy = db_status["connected"] or not db_status["configured"]

    return {
        "status": "healthy" if is_healthy else "degraded",
        "version": SERVICE_VERSION,
        "timestamp": _timestamp(),
        "environment": get_settings().app.environment,
        "services": {
            "database": {
                "status": _service_state(db_status, "connected"),
                "latency_ms": db_status.get("latency_ms"),
            },
            "sentry": {"status": _service_state(sentry_status, "active")},
            "rate_limiter": {
                "backend": type(limiter.backend).__name__ if limiter else None,
                "enabled": bool(limiter and limiter.enabled),
            },
        },
    }


@router.get("/health/db")
async def database_health(request: Request) -> Dict[str, Any]:
    """Database connectivity through the injected client."""
    db_status = await get_database_status(getattr(request.app.state, "db", None))
    return {
        "status": "healthy" if db_status["connected"] else "unhealthy",
        "timestamp": _timestamp(),
        "database": db_status,
    }
