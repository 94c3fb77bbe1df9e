"""
Backend server for the CollabPost API.

Team content collaboration: publishing to social platforms, team invites,
and share links that let visitors read and annotate a draft.
"""

import os
import re
from contextlib import asynccontextmanager

import httpx
import sentry_sdk
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from app.error_handlers import register_exception_handlers
from app.middleware import RateLimiter, RequestLoggingMiddleware
from app.routes import (
    health_router,
    invites_router,
    platforms_router,
    publish_router,
    share_router,
)
from src.config import get_settings
from src.storage.supabase_client import close_supabase_client, create_supabase_client
from src.utils.logging import setup_logging

settings = get_settings()

logger = setup_logging(
    service_name="collabpost-api",
    log_level=settings.logging.log_level,
    use_json=settings.is_production or settings.logging.log_format_json,
)

logger.info("Configuration loaded", extra=settings.get_config_summary())


# =============================================================================
# Sentry Error Tracking
# =============================================================================

SENSITIVE_BREADCRUMB_KEYS = [
    "password", "api_key", "apikey", "api-key", "secret", "token",
    "authorization", "auth", "bearer", "credential", "private",
    "visitorsessionid",
]


def filter_sensitive_breadcrumbs(crumb, hint):
    """
    Filter sensitive data from Sentry breadcrumbs.

    Share and invite tokens travel in query strings, so URLs are scrubbed
    as well as headers and log messages.
    """
    if crumb.get("category") == "http":
        data = crumb.get("data")
        if isinstance(data, dict):
            headers = data.get("headers")
            if isinstance(headers, dict):
                for key in list(headers.keys()):
                    if any(s in key.lower() for s in SENSITIVE_BREADCRUMB_KEYS):
                        headers[key] = "[FILTERED]"
            if "url" in data:
                for key in SENSITIVE_BREADCRUMB_KEYS:
                    pattern = re.compile(f"({re.escape(key)}=)[^&]*", re.IGNORECASE)
                    data["url"] = pattern.sub(r"\1[FILTERED]", data["url"])

    if crumb.get("category") in ("console", "log") and "message" in crumb:
        message = str(crumb["message"]).lower()
        if any(key in message for key in SENSITIVE_BREADCRUMB_KEYS):
            crumb["message"] = "[FILTERED - may contain sensitive data]"

    return crumb


if settings.is_sentry_configured:
    sentry_settings = settings.sentry
    sentry_sdk.init(
        dsn=sentry_settings.sentry_dsn,
        environment=sentry_settings.sentry_environment,
        sample_rate=1.0,
        traces_sample_rate=sentry_settings.sentry_traces_sample_rate,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        before_breadcrumb=filter_sensitive_breadcrumbs,
        send_default_pii=False,
        attach_stacktrace=True,
        release=sentry_settings.sentry_release,
    )
    logger.info(f"Sentry initialized for environment: {sentry_settings.sentry_environment}")
else:
    logger.info("Sentry DSN not configured, error tracking disabled")


# =============================================================================
# Initialize FastAPI App
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared clients on startup and release them on shutdown."""
    app.state.db = await create_supabase_client(settings.database)
    app.state.http_client = httpx.AsyncClient(timeout=settings.platforms.platform_http_timeout)
    yield
    try:
        await app.state.http_client.aclose()
    except Exception as e:
        logger.warning("Failed to close platform HTTP client: %s", e)
    await close_supabase_client(app.state.db)
    try:
        await app.state.rate_limiter.close()
    except Exception as e:
        logger.warning("Failed to close rate limiter: %s", e)


app = FastAPI(
    title="CollabPost API",
    description="""
## Team Content Collaboration API

### Key Features

- **Publishing**: Post team content to X (Twitter) and LinkedIn through connected accounts
- **Team Invites**: Invite links with a role, valid for seven days and usable once
- **Share Links**: Token-guarded read access with visitor annotations and comment threads
- **Sandbox Connections**: Mock platform accounts for local development

### Authentication

Team endpoints expect a Supabase access token:
```
Authorization: Bearer <access_token>
```
Share endpoints are public and authorized by the share token instead.
    """,
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Health checks and system status"},
        {"name": "publish", "description": "Publish content to social platforms"},
        {"name": "invites", "description": "Team invite links"},
        {"name": "share", "description": "Share links, annotations and comments"},
        {"name": "platforms", "description": "Platform account connections"},
    ],
)

# Replaced by the lifespan; requests served without it see an unconfigured store
app.state.db = None
app.state.http_client = None
app.state.rate_limiter = RateLimiter.from_settings(settings.rate_limit)

# =============================================================================
# Exception Handlers
# =============================================================================

register_exception_handlers(app)

# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-Request-ID",
        "Accept",
        "Accept-Language",
        "Origin",
    ],
    expose_headers=[
        "X-Request-ID",
        "X-Response-Time",
        "Retry-After",
    ],
    max_age=600,
)

# Added last so it wraps everything else and times the full request
if settings.logging.request_logging_enabled:
    app.add_middleware(RequestLoggingMiddleware)
    logger.info("Request logging middleware enabled")

# =============================================================================
# Routers
# =============================================================================

app.include_router(health_router)
app.include_router(publish_router)
app.include_router(invites_router)
app.include_router(share_router)
app.include_router(platforms_router)


@app.get("/", tags=["health"])
async def root():
    return {"message": "Welcome to the CollabPost API", "docs": "/docs"}


if __name__ == "__main__":
    reload_enabled = os.environ.get("UVICORN_RELOAD", "false").lower() == "true"
    port = int(os.environ.get("PORT") or os.environ.get("BACKEND_PORT", "8000"))
    uvicorn.run("server:app", host="0.0.0.0", port=port, reload=reload_enabled)
