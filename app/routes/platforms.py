"""
Sandbox platform connections.

GET /api/platforms/dev-connect stands in for the OAuth round trip during
local development: it records a mock platform account for the team and
answers the way the real callback would, as JSON, as a popup page that
notifies its opener, or as a redirect back into the app.

Never available in production.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote, urlsplit

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from src.config import Settings
from src.storage import PlatformAccountStore, StoreError, TeamStore
from src.types.social import ConnectionMode

from ..auth import AuthenticatedUser, get_optional_user
from ..dependencies import get_app_settings, get_platform_account_store, get_team_store
from ..error_handlers import create_error_response
from ..exceptions import ErrorCode, ResourceNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/platforms", tags=["platforms"])

DEFAULT_RETURN_TO = "/dashboard/integrations"

OAUTH_RESULT_MESSAGE = "platform_oauth_result"

_ERROR_STATUS = {
    "missing_params": (400, ErrorCode.MISSING_REQUIRED_FIELD),
    "unauthorized": (401, ErrorCode.AUTHENTICATION_REQUIRED),
    "forbidden": (403, ErrorCode.PERMISSION_DENIED),
}


def sanitize_return_to(return_to: Optional[str], fallback: str = DEFAULT_RETURN_TO) -> str:
    """Only same-site absolute paths; `//host` would leave the app."""
    if not return_to or not return_to.startswith("/") or return_to.startswith("//"):
        return fallback
    return return_to


def with_query(path: str, key: str, value: str) -> str:
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{key}={quote(value, safe='')}"


def app_origin(app_url: str) -> str:
    parts = urlsplit(app_url)
    return f"{parts.scheme}://{parts.netloc}"


def _script_json(value: Any) -> str:
    # Keep a "</script>" inside a value from closing the tag
    return json.dumps(value).replace("</", "<\\/")


def popup_completion_html(origin: str, payload: Dict[str, Any]) -> str:
    """Page that posts the result to `window.opener` at `origin`, then closes."""
    if payload.get("status") == "success":
        text = "Connection successful. You can close this window."
    else:
        text = "Connection failed. You can close this window."

    return f"""<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Connection Complete</title></head>
  <body style="font-family: sans-serif; padding: 24px;">
    <p>{text}</p>
    <script>
      (function () {{
        var payload = {_script_json(payload)};
        var targetOrigin = {_script_json(origin)};
        if (window.opener && !window.opener.closed) {{
          window.opener.postMessage({{ type: {_script_json(OAUTH_RESULT_MESSAGE)}, payload: payload }}, targetOrigin);
        }}
        window.close();
      }})();
    </script>
  </body>
</html>"""


class ConnectResponder:
    """Renders one outcome in the mode the caller asked for."""

    def __init__(
        self,
        settings: Settings,
        platform: Optional[str],
        mode: Optional[str],
        return_to: str,
        direct: bool,
    ):
        self.base_url = settings.app.base_url
        self.origin = app_origin(self.base_url)
        self.platform = platform
        self.popup = mode == "popup"
        self.return_to = return_to
        self.direct = direct

    def error(self, code: str) -> Response:
        if self.direct:
            status_code, error_code = _ERROR_STATUS[code]
            return create_error_response(status_code, code, error_code.value)
        if self.popup:
            return HTMLResponse(popup_completion_html(self.origin, {
                "status": "error",
                "platform": self.platform or "unknown",
                "error": code,
                "returnTo": self.return_to,
            }))
        return RedirectResponse(f"{self.base_url}{with_query(self.return_to, 'error', code)}")

    def success(self, data: Dict[str, Any]) -> Response:
        if self.direct:
            return JSONResponse({"data": data})
        if self.popup:
            return HTMLResponse(popup_completion_html(self.origin, {
                "status": "success",
                "platform": self.platform,
                "returnTo": self.return_to,
            }))
        return RedirectResponse(f"{self.base_url}{with_query(self.return_to, 'connected', self.platform)}")


def _handle_for(user: AuthenticatedUser) -> Optional[str]:
    if user.email and "@" in user.email:
        return f"@{user.email.split('@')[0]}"
    return None


@router.get(
    "/dev-connect",
    summary="Connect a sandbox platform account",
    description="""
Local development replacement for the platform OAuth flow.

- `direct=1`: JSON response
- `mode=popup`: HTML page that posts a `platform_oauth_result` message to its opener
- otherwise: redirect to `returnTo` with `connected=<platform>` or `error=<code>`
    """,
)
async def dev_connect(
    platform: Optional[str] = Query(default=None),
    team_id: Optional[str] = Query(default=None, alias="teamId"),
    mode: Optional[str] = Query(default=None),
    return_to: Optional[str] = Query(default=None, alias="returnTo"),
    direct: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_app_settings),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    teams: TeamStore = Depends(get_team_store),
    accounts: PlatformAccountStore = Depends(get_platform_account_store),
) -> Response:
    if not settings.sandbox_connect_allowed:
        raise ResourceNotFoundError("Not found")

    responder = ConnectResponder(
        settings,
        platform=platform,
        mode=mode,
        return_to=sanitize_return_to(return_to),
        direct=direct == "1",
    )

    if not platform or not team_id:
        return responder.error("missing_params")

    if user is None:
        return responder.error("unauthorized")

    role = await teams.get_member_role(team_id, user.id)
    if role is None:
        logger.warning(f"User {user.id} tried to connect {platform} for team {team_id}")
        return responder.error("forbidden")

    account_name = f"{platform} Local Sandbox"
    handle = _handle_for(user)

    persisted = True
    try:
        await accounts.create_account({
            "team_id": team_id,
            "user_id": user.id,
            "platform": platform,
            "account_id": f"dev_{platform}_{user.id[:8]}",
            "account_name": account_name,
            "account_handle": handle,
            "access_token": f"dev-token-{int(time.time() * 1000)}",
            "refresh_token": None,
            "token_expires_at": None,
            "scope": "dev_mock",
            "connection_mode": ConnectionMode.LOCAL_SANDBOX.value,
            "connection_status": "connected",
        })
    except StoreError as e:
        # Non-fatal; the web client also remembers sandbox connections locally
        logger.warning(f"Dev connect could not store the sandbox account: {e.message}")
        persisted = False

    logger.info(f"Sandbox {platform} account connected for team {team_id}")

    return responder.success({
        "success": True,
        "platform": platform,
        "mode": "sandbox",
        "persisted": persisted,
        "account": {
            "account_name": account_name,
            "account_id": f"local_{platform}",
            "account_handle": handle,
            "source": ConnectionMode.LOCAL_SANDBOX.value,
            "status": "connected",
            "connected_at": datetime.now(timezone.utc).isoformat(),
        },
    })
