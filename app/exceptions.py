"""
Exception classes for the CollabPost API.

Each exception carries the HTTP status it maps to, so route handlers can
raise them directly and the registered handlers render a consistent body.

Exception Hierarchy:
    CollabPostException (base, 500)
    ├── ValidationError (400)
    ├── AuthenticationError (401)
    ├── AuthorizationError (403)
    ├── ResourceNotFoundError (404)
    ├── ConflictError (409)
    ├── RateLimitError (429)
    ├── PublishError (500)
    └── DatabaseError (500)
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes returned as `error_code`."""

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    UNSUPPORTED_PLATFORM = "UNSUPPORTED_PLATFORM"
    INVALID_INVITE = "INVALID_INVITE"

    # 401
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # 403
    PERMISSION_DENIED = "PERMISSION_DENIED"
    COMMENTS_DISABLED = "COMMENTS_DISABLED"

    # 404
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    PLATFORM_ACCOUNT_NOT_FOUND = "PLATFORM_ACCOUNT_NOT_FOUND"

    # 409
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    ALREADY_PUBLISHED = "ALREADY_PUBLISHED"

    # 429
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # 500 / 502
    PUBLISH_FAILED = "PUBLISH_FAILED"
    NO_CONTENT = "NO_CONTENT"
    DATABASE_ERROR = "DATABASE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


class CollabPostException(Exception):
    """
    Base exception for all CollabPost API errors.

    Attributes:
        message: Message shown to the client.
        error_code: Machine-readable error code.
        status_code: HTTP status code to return.
        details: Additional client-safe context (optional).
        internal_message: Detail for logs only, never returned.
    """

    status_code: int = 500
    default_error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        internal_message: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.internal_message = internal_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Body of the error response."""
        response = {
            "success": False,
            "error": self.message,
            "error_code": self.error_code.value,
        }
        if self.details:
            response["details"] = self.details
        return response

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code.value!r}, "
            f"status_code={self.status_code})"
        )


# =============================================================================
# 400 Bad Request
# =============================================================================

class ValidationError(CollabPostException):
    """Malformed or missing input, unsupported platform, unusable invite."""

    status_code = 400
    default_error_code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid request data"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        internal_message: Optional[str] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            internal_message=internal_message,
        )


# =============================================================================
# 401 Unauthorized
# =============================================================================

class AuthenticationError(CollabPostException):
    status_code = 401
    default_error_code = ErrorCode.AUTHENTICATION_REQUIRED
    default_message = "Unauthorized"


# =============================================================================
# 403 Forbidden
# =============================================================================

class AuthorizationError(CollabPostException):
    """Authenticated, but not allowed: wrong team, role or account."""

    status_code = 403
    default_error_code = ErrorCode.PERMISSION_DENIED
    default_message = "Forbidden"


# =============================================================================
# 404 Not Found
# =============================================================================

class ResourceNotFoundError(CollabPostException):
    status_code = 404
    default_error_code = ErrorCode.RESOURCE_NOT_FOUND
    default_message = "Resource not found"

    def __init__(
        self,
        message: Optional[str] = None,
        resource_type: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        internal_message: Optional[str] = None,
    ):
        details = details or {}
        if resource_type:
            details["resource_type"] = resource_type
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            internal_message=internal_message,
        )


# =============================================================================
# 409 Conflict
# =============================================================================

class ConflictError(CollabPostException):
    status_code = 409
    default_error_code = ErrorCode.RESOURCE_CONFLICT
    default_message = "Resource conflict"


# =============================================================================
# 429 Too Many Requests
# =============================================================================

class RateLimitError(CollabPostException):
    """Rendered with a Retry-After header when `retry_after` is set."""

    status_code = 429
    default_error_code = ErrorCode.RATE_LIMIT_EXCEEDED
    default_message = "Too many requests. Please try again shortly."

    def __init__(
        self,
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        internal_message: Optional[str] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            internal_message=internal_message,
        )

    def to_dict(self) -> Dict[str, Any]:
        response = super().to_dict()
        if self.retry_after:
            response["retry_after"] = self.retry_after
        return response


# =============================================================================
# 500 Internal Server Error
# =============================================================================

class PublishError(CollabPostException):
    """
    The publish flow could not post.

    Covers both platform failures and content with nothing to post; the
    message tells them apart.
    """

    status_code = 500
    default_error_code = ErrorCode.PUBLISH_FAILED
    default_message = "Failed to publish"


class DatabaseError(CollabPostException):
    status_code = 500
    default_error_code = ErrorCode.DATABASE_ERROR
    default_message = "Internal server error"
