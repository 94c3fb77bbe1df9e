"""
Logging setup for CollabPost.

One stdout handler on the root logger. Every record is stamped with the
current request id and user id and scrubbed of credentials before it is
formatted, as a JSON line in production or a plain line in development.
"""

import json
import logging
import re
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

REDACTED = "[REDACTED]"

# Bearer headers, share/invite/OAuth tokens, passwords and Supabase JWTs
_SECRETS = re.compile(
    r"bearer\s+[\w.-]+"
    r"|(?:access_|refresh_|share_|invite_)?token[\"']?\s*[:=]\s*[\"']?[\w.-]+"
    r"|(?:secret|password)[\"']?\s*[:=]\s*[\"']?[^\s,}\"']+"
    r"|eyJ[\w-]+\.eyJ[\w-]+\.[\w-]+",
    re.IGNORECASE,
)

# Attributes every LogRecord carries; anything else arrived through `extra=`
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "request_id", "user_id"}


def redact_sensitive_data(message: str) -> str:
    """Replace credentials in `message` with [REDACTED]."""
    if not message:
        return message
    return _SECRETS.sub(REDACTED, message)


class SensitiveDataFilter(logging.Filter):
    """Attach request context to the record and scrub its message and args."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.user_id = user_id_var.get() or "-"
        if record.msg:
            record.msg = redact_sensitive_data(str(record.msg))
        if record.args:
            record.args = tuple(
                redact_sensitive_data(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with `extra=` fields nested under "extra"."""

    def __init__(self, service_name: str = "collabpost-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "request_id": getattr(record, "request_id", "-"),
            "user_id": getattr(record, "user_id", "-"),
        }
        extra = _extra_fields(record)
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format for local runs."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        line = super().format(record)
        extra = _extra_fields(record)
        return f"{line} {extra}" if extra else line


def setup_logging(
    service_name: str = "collabpost-api",
    log_level: str = "INFO",
    use_json: bool = False,
) -> logging.Logger:
    """
    Replace the root logger's handlers with a single configured one.

    Call once at startup.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JSONFormatter(service_name) if use_json else ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    for noisy in ("uvicorn.access", "httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def set_request_context(
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    if request_id is not None:
        request_id_var.set(request_id)
    if user_id is not None:
        user_id_var.set(user_id)


def clear_request_context() -> None:
    request_id_var.set(None)
    user_id_var.set(None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


@contextmanager
def log_duration(
    operation: str,
    logger: logging.Logger,
    level: int = logging.DEBUG,
) -> Iterator[None]:
    """Log how long the wrapped block took, and whether it raised."""
    started = time.perf_counter()
    succeeded = False
    try:
        yield
        succeeded = True
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        logger.log(
            level,
            f"{operation} took {duration_ms:.1f}ms",
            extra={"operation": operation, "duration_ms": round(duration_ms, 1), "success": succeeded},
        )
