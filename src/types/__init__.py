"""
Type definitions for the CollabPost project.
"""

from .content import (
    ActivityAction,
    BlockType,
    Content,
    ContentActivity,
    ContentBlock,
    ContentSchedule,
    ContentStatus,
    ScheduleStatus,
    parse_blocks,
)
from .share import (
    MAX_NOTE_LENGTH,
    MAX_VISITOR_NAME_LENGTH,
    AnnotationStatus,
    ShareAnnotation,
    ShareAnnotationComment,
    ShareSettings,
)
from .social import (
    PLATFORM_CONFIGS,
    ArticlePost,
    ConnectionMode,
    ExtractedMessage,
    NoContent,
    PlatformAccount,
    PlatformConfig,
    PlatformCredentials,
    PublishedPost,
    PublishMessage,
    PublishResult,
    SocialPlatform,
    TextPost,
    ThreadPost,
    get_platform_config,
)
from .team import (
    INVITABLE_ROLES,
    INVITE_MANAGER_ROLES,
    SHARE_MANAGER_ROLES,
    Team,
    TeamInvite,
    TeamMember,
    TeamRole,
)

__all__ = [
    # Content
    "ActivityAction",
    "BlockType",
    "Content",
    "ContentActivity",
    "ContentBlock",
    "ContentSchedule",
    "ContentStatus",
    "ScheduleStatus",
    "parse_blocks",
    # Sharing
    "MAX_NOTE_LENGTH",
    "MAX_VISITOR_NAME_LENGTH",
    "AnnotationStatus",
    "ShareAnnotation",
    "ShareAnnotationComment",
    "ShareSettings",
    # Social
    "PLATFORM_CONFIGS",
    "ArticlePost",
    "ConnectionMode",
    "ExtractedMessage",
    "NoContent",
    "PlatformAccount",
    "PlatformConfig",
    "PlatformCredentials",
    "PublishedPost",
    "PublishMessage",
    "PublishResult",
    "SocialPlatform",
    "TextPost",
    "ThreadPost",
    "get_platform_config",
    # Teams
    "INVITABLE_ROLES",
    "INVITE_MANAGER_ROLES",
    "SHARE_MANAGER_ROLES",
    "Team",
    "TeamInvite",
    "TeamMember",
    "TeamRole",
]
