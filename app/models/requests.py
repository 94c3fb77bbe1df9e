"""
Pydantic request models for API endpoints.

Bodies use the camelCase keys the web client sends. Visitor-facing share
bodies keep their fields loosely typed; the sharing package validates them
so each failure gets its own message.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Publishing
# =============================================================================


class PublishRequest(CamelModel):
    """Body of POST /api/publish/{platform}."""

    content_id: Optional[str] = Field(default=None, alias="contentId", max_length=100)
    platform_account_id: Optional[str] = Field(default=None, alias="platformAccountId", max_length=100)

    @field_validator("content_id", "platform_account_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# Invites
# =============================================================================


class InviteCreateRequest(CamelModel):
    # Unknown roles fall back to VIEWER rather than failing
    role: Optional[Any] = None
    email: Optional[Any] = None


class InviteAcceptRequest(CamelModel):
    token: Optional[Any] = None


# =============================================================================
# Share settings
# =============================================================================


class ShareSettingsRequest(CamelModel):
    """Body of POST /api/content/{content_id}/share."""

    enable_share: bool = Field(default=False, alias="enableShare")
    allow_comments: bool = Field(default=True, alias="allowComments")
    allow_editing: bool = Field(default=False, alias="allowEditing")


# =============================================================================
# Share annotations (visitor-facing)
# =============================================================================


class AnnotationCreateRequest(CamelModel):
    token: Any = None
    visitor_name: Any = Field(default=None, alias="visitorName")
    visitor_session_id: Any = Field(default=None, alias="visitorSessionId")
    block_id: Any = Field(default=None, alias="blockId")
    comment_text: Any = Field(default=None, alias="commentText")
    text_snapshot: Any = Field(default=None, alias="textSnapshot")
    start_offset: Any = Field(default=None, alias="startOffset")
    end_offset: Any = Field(default=None, alias="endOffset")


class AnnotationStatusRequest(CamelModel):
    token: Any = None
    status: Any = None


class CommentCreateRequest(CamelModel):
    token: Any = None
    visitor_name: Any = Field(default=None, alias="visitorName")
    visitor_session_id: Any = Field(default=None, alias="visitorSessionId")
    text: Any = None


class CommentUpdateRequest(CamelModel):
    token: Any = None
    visitor_session_id: Any = Field(default=None, alias="visitorSessionId")
    text: Any = None
