"""
Type definitions for team content items.

A content item is an ordered list of typed blocks owned by a team, moving
through the review pipeline DRAFT -> IN_REVIEW -> APPROVED -> SCHEDULED ->
PUBLISHED (or ARCHIVED).
"""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class ContentStatus(str, Enum):
    """Review pipeline status of a content item."""

    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class BlockType(str, Enum):
    """Block types the publish flow understands. Others are passed through."""

    TEXT = "text"
    THREAD = "thread"
    LINK = "link"
    IMAGE = "image"


class ActivityAction(str, Enum):
    """Actions recorded in the content activity log."""

    STATUS_CHANGED = "STATUS_CHANGED"


class ScheduleStatus(str, Enum):
    """Delivery status of a content schedule row."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class ContentBlock(BaseModel):
    """A typed unit of content. `content` shape depends on `type`."""

    id: Optional[str] = None
    type: str
    content: Any = None
    props: Optional[Dict[str, Any]] = None

    def get(self, name: str, default: Any = None) -> Any:
        """Read a key from a dict-shaped `content`, tolerating other shapes."""
        if isinstance(self.content, dict):
            value = self.content.get(name, default)
            return default if value is None else value
        return default


def parse_blocks(raw: Any) -> List[ContentBlock]:
    """
    Normalize a stored `blocks` column into ContentBlock models.

    The column may hold a list or a JSON-encoded string of that list.
    Malformed JSON and entries without a `type` are dropped.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed blocks JSON")
            return []

    if not isinstance(raw, list):
        return []

    blocks = []
    for item in raw:
        if isinstance(item, ContentBlock):
            blocks.append(item)
        elif isinstance(item, dict) and isinstance(item.get("type"), str):
            blocks.append(ContentBlock.model_validate(item))
    return blocks


class Content(BaseModel):
    """A team-owned content item."""

    id: str
    team_id: str
    title: str = ""
    blocks: List[ContentBlock] = Field(default_factory=list)
    status: ContentStatus = ContentStatus.DRAFT
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    share_token: Optional[str] = None
    share_settings: Optional[Dict[str, Any]] = None
    # user ids from the joined team members relation
    member_ids: List[str] = Field(default_factory=list)

    @field_validator("blocks", mode="before")
    @classmethod
    def _decode_blocks(cls, value: Any) -> List[ContentBlock]:
        return parse_blocks(value)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.member_ids


class ContentActivity(BaseModel):
    """Append-only audit row for a content item."""

    content_id: str
    team_id: str
    user_id: str
    action: ActivityAction = ActivityAction.STATUS_CHANGED
    from_status: Optional[ContentStatus] = None
    to_status: Optional[ContentStatus] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ContentSchedule(BaseModel):
    """Append-only delivery record for a content item on one account."""

    content_id: str
    platform_account_id: str
    scheduled_at: datetime
    status: ScheduleStatus = ScheduleStatus.PENDING
    platform_post_id: Optional[str] = None
