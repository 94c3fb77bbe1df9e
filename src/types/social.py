"""
Type definitions for social platform publishing.

Provides models for:
- Platform identifiers and per-platform limits
- Stored platform account credentials
- Publishable messages produced by the block extractor
- The normalized result every platform adapter returns
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SocialPlatform(str, Enum):
    """Platforms content can be published to."""

    TWITTER = "twitter"
    LINKEDIN = "linkedin"


class ConnectionMode(str, Enum):
    """How a platform account was connected."""

    OAUTH = "oauth"
    LOCAL_SANDBOX = "local_sandbox"


# -----------------------------------------------------------------------------
# Platform configuration
# -----------------------------------------------------------------------------


class PlatformConfig(BaseModel):
    """Static limits and display data for a platform."""

    platform: SocialPlatform
    name: str
    max_text_length: int
    supports_threads: bool = False


PLATFORM_CONFIGS: Dict[SocialPlatform, PlatformConfig] = {
    SocialPlatform.TWITTER: PlatformConfig(
        platform=SocialPlatform.TWITTER,
        name="X",
        max_text_length=280,
        supports_threads=True,
    ),
    SocialPlatform.LINKEDIN: PlatformConfig(
        platform=SocialPlatform.LINKEDIN,
        name="LinkedIn",
        max_text_length=3000,
    ),
}


def get_platform_config(platform: SocialPlatform) -> PlatformConfig:
    """Get configuration for a platform."""
    return PLATFORM_CONFIGS[platform]


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


class PlatformAccount(BaseModel):
    """A team's stored connection to an external platform."""

    id: str
    team_id: str
    platform: str
    account_id: str
    access_token: str
    user_id: Optional[str] = None
    account_name: Optional[str] = None
    account_handle: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    connection_mode: Optional[str] = None
    connection_status: Optional[str] = None


class PlatformCredentials(BaseModel):
    """The subset of an account an adapter needs to call the platform."""

    access_token: str
    account_id: str


# -----------------------------------------------------------------------------
# Messages
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TextPost:
    """A single plain post."""

    text: str
    has_image: bool = False
    image_url: Optional[str] = None


@dataclass(frozen=True)
class ThreadPost:
    """An ordered list of posts published as a reply chain."""

    tweets: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ArticlePost:
    """A link share with preview metadata."""

    url: str
    title: str = ""
    description: str = ""
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class NoContent:
    """The blocks hold nothing publishable for the platform."""

    reason: str = "No content to post"


PublishMessage = Union[TextPost, ThreadPost, ArticlePost]
ExtractedMessage = Union[TextPost, ThreadPost, ArticlePost, NoContent]


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


class PublishedPost(BaseModel):
    """Identifiers returned by a platform after a successful post."""

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PublishResult(BaseModel):
    """Normalized outcome of an adapter call. Adapters never raise past it."""

    success: bool
    data: Optional[PublishedPost] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, post_id: str) -> "PublishResult":
        return cls(success=True, data=PublishedPost(id=post_id))

    @classmethod
    def failed(cls, error: str) -> "PublishResult":
        return cls(success=False, error=error)
