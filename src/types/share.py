"""
Type definitions for share links and visitor annotations.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# Validation limits for visitor input on share links
MAX_VISITOR_NAME_LENGTH = 80
MAX_NOTE_LENGTH = 2000


class AnnotationStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class ShareSettings(BaseModel):
    """Per-content visitor permissions. Stored as snake_case JSON."""

    allow_comments: bool = True
    allow_editing: bool = False

    @classmethod
    def from_stored(cls, raw: Optional[Dict[str, Any]]) -> "ShareSettings":
        raw = raw or {}
        return cls(
            allow_comments=raw.get("allow_comments", True) is not False,
            allow_editing=raw.get("allow_editing", False) is True,
        )


class ShareAnnotationComment(BaseModel):
    id: str
    annotation_id: str
    content_id: str
    text: str
    author_name: str
    author_session_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShareAnnotation(BaseModel):
    """A visitor-created thread anchored to a text range inside one block."""

    id: str
    content_id: str
    block_id: str
    start_offset: int
    end_offset: int
    text_snapshot: str
    status: AnnotationStatus = AnnotationStatus.OPEN
    created_by_name: str
    created_by_session_id: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    comments: List[ShareAnnotationComment] = Field(default_factory=list)
