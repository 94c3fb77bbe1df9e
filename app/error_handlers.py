"""
FastAPI exception handlers for the CollabPost API.

This module provides centralized exception handling that:
- Maps CollabPostException subclasses to their HTTP status
- Renders request validation failures as 400 responses
- Reports unexpected exceptions to Sentry
- Keeps internal details out of responses

All error responses follow the format:
{
    "success": false,
    "error": "Human-readable message",
    "error_code": "MACHINE_READABLE_CODE",
    "details": {}  # Optional additional context
}
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import CollabPostException, ErrorCode, RateLimitError

logger = logging.getLogger(__name__)

# Patterns that mark a message from an unexpected error as unsafe to echo
SENSITIVE_PATTERNS = [
    r"api[_-]?key",
    r"secret",
    r"password",
    r"bearer",
    r"access[_-]?token",
    r"refresh[_-]?token",
    r"service[_-]?role",
    r"postgres(ql)?://",
    r"redis://",
    r"/home/",
    r"/Users/",
    r"/var/",
    r"/etc/",
]

SENSITIVE_REGEX = re.compile("|".join(SENSITIVE_PATTERNS), re.IGNORECASE)

GENERIC_ERROR_MESSAGE = "An error occurred while processing your request"


def sanitize_error_message(message: str) -> str:
    """
    Strip sensitive fragments from a message that did not come from our code.

    Messages matching SENSITIVE_PATTERNS are replaced entirely; otherwise
    file paths, IP addresses and UUIDs are masked and long text is cut.
    """
    if not message:
        return message

    if SENSITIVE_REGEX.search(message):
        return GENERIC_ERROR_MESSAGE

    message = re.sub(r"[/\\][\w./\\-]+\.\w+", "[path]", message)
    message = re.sub(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b", "[ip]", message)
    message = re.sub(
        r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b",
        "[id]",
        message,
        flags=re.IGNORECASE,
    )

    if len(message) > 500:
        message = message[:500] + "..."

    return message


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic errors to `{field, message}` pairs, at most ten."""
    formatted = []
    for error in errors:
        loc = error.get("loc", [])
        field_parts = [str(p) for p in loc if p not in ("body", "query", "path")]
        field = ".".join(field_parts) if field_parts else "request"

        error_type = error.get("type", "")
        if error_type == "missing":
            msg = f"Field '{field}' is required"
        elif error_type == "json_invalid":
            msg = "Request body must be valid JSON"
        elif error_type in ("string_type", "bool_type", "int_type", "dict_type", "model_attributes_type"):
            msg = f"Field '{field}' has an invalid type"
        else:
            msg = sanitize_error_message(error.get("msg", "Invalid value"))

        formatted.append({"field": field, "message": msg})

    return formatted[:10]


def create_error_response(
    status_code: int,
    error: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the standard error body."""
    content: Dict[str, Any] = {
        "success": False,
        "error": error,
        "error_code": error_code,
    }
    if details:
        content["details"] = details

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def report_to_sentry(
    exc: Exception,
    request: Optional[Request] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Report an exception to Sentry with request context.

    Returns:
        Sentry event ID if reported, None when Sentry is not active.
    """
    try:
        client = sentry_sdk.get_client()
        if not client.is_active():
            return None

        with sentry_sdk.push_scope() as scope:
            if request:
                scope.set_context("request", {
                    "method": request.method,
                    "path": request.url.path,
                })

                user_id = getattr(request.state, "user_id", None)
                if user_id:
                    scope.set_user({"id": user_id})

                request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
                if request_id:
                    scope.set_tag("request_id", request_id)

            if extra_context:
                scope.set_context("extra", extra_context)

            return sentry_sdk.capture_exception(exc)

    except Exception as e:
        logger.warning(f"Failed to report exception to Sentry: {e}")
        return None


# =============================================================================
# Exception Handlers
# =============================================================================

async def collabpost_exception_handler(
    request: Request,
    exc: CollabPostException,
) -> JSONResponse:
    """Render our own exceptions. Their messages are authored and sent as-is."""
    log_message = f"{exc.__class__.__name__}: {exc.message}"
    if exc.internal_message:
        log_message += f" | Internal: {exc.internal_message}"

    if exc.status_code >= 500:
        logger.error(log_message)
        report_to_sentry(exc, request)
    else:
        logger.warning(log_message)

    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}

    return create_error_response(
        status_code=exc.status_code,
        error=exc.message,
        error_code=exc.error_code.value,
        details=exc.details,
        headers=headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Request body, query or path failed validation: 400."""
    errors = format_validation_errors(exc.errors())

    logger.warning(
        f"Validation error on {request.method} {request.url.path}: "
        f"{len(errors)} error(s)"
    )

    if len(errors) == 1:
        error_message = errors[0]["message"]
    else:
        error_message = f"Validation failed with {len(errors)} error(s)"

    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        error=error_message,
        error_code=ErrorCode.VALIDATION_ERROR.value,
        details={"errors": errors},
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Routing errors (404, 405) and any HTTPException raised by libraries."""
    status_code_mapping = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.AUTHENTICATION_REQUIRED,
        403: ErrorCode.PERMISSION_DENIED,
        404: ErrorCode.RESOURCE_NOT_FOUND,
        405: ErrorCode.VALIDATION_ERROR,
        409: ErrorCode.RESOURCE_CONFLICT,
        429: ErrorCode.RATE_LIMIT_EXCEEDED,
        500: ErrorCode.INTERNAL_ERROR,
        502: ErrorCode.EXTERNAL_SERVICE_ERROR,
        503: ErrorCode.EXTERNAL_SERVICE_ERROR,
    }
    error_code = status_code_mapping.get(exc.status_code, ErrorCode.UNKNOWN_ERROR)
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {detail}")
    else:
        logger.warning(f"HTTP {exc.status_code}: {detail}")

    headers = None
    if exc.headers:
        safe_headers = {"Retry-After", "Allow"}
        headers = {k: v for k, v in exc.headers.items() if k in safe_headers} or None

    return create_error_response(
        status_code=exc.status_code,
        error=sanitize_error_message(detail),
        error_code=error_code.value,
        headers=headers,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all for unexpected errors.

    Logs the traceback and reports to Sentry; the client only gets a
    generic message and a short reference for support.
    """
    error_reference = uuid.uuid4().hex[:8]

    logger.error(
        f"Unhandled exception [ref:{error_reference}] on "
        f"{request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    report_to_sentry(exc, request, extra_context={"error_reference": error_reference})

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error="Internal server error",
        error_code=ErrorCode.INTERNAL_ERROR.value,
        details={"error_reference": error_reference},
    )


# =============================================================================
# Handler Registration
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler on the application."""
    app.add_exception_handler(CollabPostException, collabpost_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info("Exception handlers registered")
