"""
Authentication for the CollabPost API.

Sessions are issued by Supabase Auth. Callers send the access token as
`Authorization: Bearer <jwt>`; it is verified by asking the auth server
for the user it belongs to.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AuthError

from src.utils.logging import set_request_context

from .dependencies import get_db
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

BEARER_SCHEME = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str] = None


async def _resolve_user(db, token: str) -> Optional[AuthenticatedUser]:
    try:
        response = await db.auth.get_user(token)
    except AuthError as e:
        logger.debug(f"Rejected access token: {e}")
        return None

    user = getattr(response, "user", None)
    if user is None or not getattr(user, "id", None):
        return None
    return AuthenticatedUser(id=str(user.id), email=getattr(user, "email", None))


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(BEARER_SCHEME),
    db=Depends(get_db),
) -> Optional[AuthenticatedUser]:
    """The signed-in user, or None when no valid session is presented."""
    if credentials is None or not credentials.credentials:
        return None

    user = await _resolve_user(db, credentials.credentials)
    if user is not None:
        request.state.user_id = user.id
        set_request_context(user_id=user.id)
    return user


async def get_current_user(
    request: Request,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
    """
    Require a signed-in user.

    Raises:
        AuthenticationError: 401 when the token is missing or invalid.
    """
    if user is None:
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Unauthenticated request to {request.url.path} from {client}")
        raise AuthenticationError()
    return user
