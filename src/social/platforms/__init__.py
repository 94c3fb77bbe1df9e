"""
Platform adapters for X (Twitter) and LinkedIn.
"""

from .base import BasePlatform, CredentialsNotFoundError, PlatformError
from .linkedin import LinkedInPlatform
from .twitter import TwitterPlatform

__all__ = [
    "BasePlatform",
    "CredentialsNotFoundError",
    "PlatformError",
    "LinkedInPlatform",
    "TwitterPlatform",
]
