"""Utility modules for CollabPost."""

from .logging import (
    ConsoleFormatter,
    JSONFormatter,
    SensitiveDataFilter,
    clear_request_context,
    get_request_id,
    log_duration,
    redact_sensitive_data,
    set_request_context,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "set_request_context",
    "clear_request_context",
    "get_request_id",
    "log_duration",
    "JSONFormatter",
    "ConsoleFormatter",
    "SensitiveDataFilter",
    "redact_sensitive_data",
]
