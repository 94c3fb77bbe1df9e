"""
Base class for social platform adapters.

An adapter resolves a team's stored credentials, builds the platform's
request body, performs the HTTP call and folds every outcome into a
PublishResult. Nothing raised inside an adapter escapes `post()`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import httpx

from src.storage.base import StoreError
from src.storage.platform_account_store import PlatformAccountStore
from src.types.social import (
    PlatformConfig,
    PlatformCredentials,
    PublishMessage,
    PublishResult,
    SocialPlatform,
)
from src.utils.logging import log_duration

logger = logging.getLogger(__name__)


class PlatformError(Exception):
    """Base exception for platform errors."""

    def __init__(
        self,
        message: str,
        platform: Optional[SocialPlatform] = None,
        status_code: Optional[int] = None,
        raw_error: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize platform error.

        Args:
            message: Human-readable error message, returned to callers as-is
            platform: The platform that raised the error
            status_code: HTTP status returned by the platform, if any
            raw_error: Raw error body from the platform
        """
        super().__init__(message)
        self.message = message
        self.platform = platform
        self.status_code = status_code
        self.raw_error = raw_error


class CredentialsNotFoundError(PlatformError):
    """No stored account matches the team, account id and platform."""

    pass


class BasePlatform(ABC):
    """
    Abstract base class for platform adapters.

    Subclasses set CONNECT_ERROR and DEFAULT_ERROR and implement `_publish`
    and `delete_post`.
    """

    CONNECT_ERROR = "Failed to connect to platform API"
    DEFAULT_ERROR = "Failed to post to platform"

    def __init__(
        self,
        config: PlatformConfig,
        http_client: httpx.AsyncClient,
        account_store: PlatformAccountStore,
    ) -> None:
        """
        Args:
            config: Static platform limits
            http_client: Shared outbound client owned by the application
            account_store: Source of stored platform credentials
        """
        self.config = config
        self.platform = config.platform
        self.http = http_client
        self.accounts = account_store
        self._logger = logging.getLogger(f"{__name__}.{config.platform.value}")

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    async def get_credentials(self, team_id: str, account_id: str) -> PlatformCredentials:
        """
        Resolve credentials for a team's account on this platform.

        Raises:
            CredentialsNotFoundError: If no account row matches or the
                lookup itself fails.
        """
        try:
            account = await self.accounts.get_account(
                account_id,
                team_id,
                platform=self.platform.value,
            )
        except StoreError as e:
            self._logger.error(f"Error fetching {self.config.name} credentials: {e.message}")
            account = None

        if account is None:
            self._logger.warning(
                f"No {self.platform.value} account {account_id} for team {team_id}"
            )
            raise CredentialsNotFoundError(
                f"{self.config.name} credentials not found",
                platform=self.platform,
            )
        return PlatformCredentials(
            access_token=account.access_token,
            account_id=account.account_id,
        )

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def post(
        self,
        team_id: str,
        account_id: str,
        message: PublishMessage,
    ) -> PublishResult:
        """
        Publish a message from a team's account.

        Returns:
            PublishResult with the platform's post id, or the failure text.
            Never raises; unexpected errors become DEFAULT_ERROR.
        """
        try:
            credentials = await self.get_credentials(team_id, account_id)
            with log_duration(f"{self.platform.value}.publish", self._logger):
                post_id = await self._publish(credentials, message)
        except PlatformError as e:
            self._logger.warning(f"Publishing to {self.config.name} failed: {e.message}")
            return PublishResult.failed(e.message)
        except Exception:
            self._logger.exception(f"Unexpected error publishing to {self.config.name}")
            return PublishResult.failed(self.DEFAULT_ERROR)

        self._logger.info(f"Published {self.platform.value} post {post_id}")
        return PublishResult.ok(post_id)

    @abstractmethod
    async def _publish(
        self,
        credentials: PlatformCredentials,
        message: PublishMessage,
    ) -> str:
        """
        Send the message and return the platform's post id.

        Raises:
            PlatformError: With the text to surface to the caller.
        """
        pass

    @abstractmethod
    async def delete_post(
        self,
        team_id: str,
        account_id: str,
        post_id: str,
    ) -> PublishResult:
        """Delete a published post. Same never-raise contract as `post`."""
        pass

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request, mapping transport failures to CONNECT_ERROR."""
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            self._logger.error(f"{self.config.name} request failed: {e}")
            raise PlatformError(self.CONNECT_ERROR, platform=self.platform) from e

    def _raise_for_error(
        self,
        response: httpx.Response,
        message_keys: Iterable[str],
        default: Optional[str] = None,
    ) -> None:
        """
        Raise PlatformError for a non-2xx response.

        The message is the first non-empty body field among `message_keys`,
        else `default`, else DEFAULT_ERROR.
        """
        if response.is_success:
            return

        body = self._json_body(response)
        message = next(
            (body[key] for key in message_keys if isinstance(body.get(key), str) and body[key]),
            default or self.DEFAULT_ERROR,
        )
        self._logger.error(f"{self.config.name} API error {response.status_code}: {body}")
        raise PlatformError(
            message,
            platform=self.platform,
            status_code=response.status_code,
            raw_error=body,
        )

    @staticmethod
    def _json_body(response: httpx.Response) -> Dict[str, Any]:
        """Response JSON as a dict; empty for missing or malformed bodies."""
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def truncate_text(self, text: str, max_length: Optional[int] = None) -> str:
        """
        Clip text to the platform limit.

        Clipping is silent: over-long text is cut, never rejected.
        """
        max_len = max_length or self.config.max_text_length
        return text[:max_len]

    @staticmethod
    def _bearer(credentials: PlatformCredentials) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credentials.access_token}"}
