"""
Social publishing for CollabPost.

This package provides:
- Platform adapters for X (Twitter) and LinkedIn
- Block extraction per platform
- The platform registry consulted by the publish flow
- The publish-now service
"""

from .extractor import extract_linkedin, extract_message, extract_twitter
from .publisher import (
    AlreadyPublishedError,
    ContentAccessDeniedError,
    ContentNotFoundError,
    NoPublishableContentError,
    PlatformAccountNotFoundError,
    PlatformPublishError,
    PublishOutcome,
    PublishService,
    PublishServiceError,
)
from .registry import (
    PlatformCapability,
    PlatformRegistry,
    UnsupportedPlatformError,
    build_default_registry,
)

__all__ = [
    "extract_message",
    "extract_twitter",
    "extract_linkedin",
    "PublishService",
    "PublishOutcome",
    "PublishServiceError",
    "AlreadyPublishedError",
    "ContentAccessDeniedError",
    "ContentNotFoundError",
    "NoPublishableContentError",
    "PlatformAccountNotFoundError",
    "PlatformPublishError",
    "PlatformCapability",
    "PlatformRegistry",
    "UnsupportedPlatformError",
    "build_default_registry",
]
