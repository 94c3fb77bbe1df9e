"""
Visitor annotation threads on shared content.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.types.share import AnnotationStatus, ShareAnnotation, ShareAnnotationComment

from .base import SupabaseStore

logger = logging.getLogger(__name__)

ANNOTATION_COLUMNS = (
    "id, content_id, block_id, start_offset, end_offset, text_snapshot, status, "
    "created_by_name, created_by_session_id, created_at, resolved_at"
)
COMMENT_COLUMNS = (
    "id, annotation_id, content_id, text, author_name, author_session_id, created_at, updated_at"
)


class ShareStore(SupabaseStore):
    """Queries over `share_annotations` and `share_annotation_comments`."""

    async def list_annotations(self, content_id: str) -> List[ShareAnnotation]:
        """All annotations for a content item, oldest first, with their comments."""
        result = await self._execute(
            self.db.table("share_annotations")
            .select(ANNOTATION_COLUMNS)
            .eq("content_id", content_id)
            .order("created_at"),
            "list annotations",
        )
        annotations = [ShareAnnotation.model_validate(row) for row in self._rows(result)]
        if not annotations:
            return []

        result = await self._execute(
            self.db.table("share_annotation_comments")
            .select(COMMENT_COLUMNS)
            .eq("content_id", content_id)
            .in_("annotation_id", [a.id for a in annotations])
            .order("created_at"),
            "list annotation comments",
        )
        by_annotation: Dict[str, List[ShareAnnotationComment]] = {}
        for row in self._rows(result):
            comment = ShareAnnotationComment.model_validate(row)
            by_annotation.setdefault(comment.annotation_id, []).append(comment)

        for annotation in annotations:
            annotation.comments = by_annotation.get(annotation.id, [])
        return annotations

    async def get_annotation(self, annotation_id: str) -> Optional[ShareAnnotation]:
        result = await self._lookup(
            self.db.table("share_annotations")
            .select(ANNOTATION_COLUMNS)
            .eq("id", annotation_id)
            .maybe_single(),
            "load annotation",
        )
        row = self._single(result)
        return ShareAnnotation.model_validate(row) if row else None

    async def create_annotation(self, data: Dict[str, Any]) -> ShareAnnotation:
        result = await self._execute(
            self.db.table("share_annotations").insert(data),
            "create annotation",
        )
        return ShareAnnotation.model_validate(self._first(result, "create annotation"))

    async def update_annotation_status(
        self,
        annotation_id: str,
        status: AnnotationStatus,
        resolved_at: Optional[datetime],
    ) -> ShareAnnotation:
        result = await self._execute(
            self.db.table("share_annotations")
            .update({
                "status": status.value,
                "resolved_at": resolved_at.isoformat() if resolved_at else None,
            })
            .eq("id", annotation_id),
            "update annotation",
        )
        return ShareAnnotation.model_validate(self._first(result, "update annotation"))

    async def get_comment(self, comment_id: str) -> Optional[ShareAnnotationComment]:
        result = await self._lookup(
            self.db.table("share_annotation_comments")
            .select(COMMENT_COLUMNS)
            .eq("id", comment_id)
            .maybe_single(),
            "load annotation comment",
        )
        row = self._single(result)
        return ShareAnnotationComment.model_validate(row) if row else None

    async def create_comment(self, data: Dict[str, Any]) -> ShareAnnotationComment:
        result = await self._execute(
            self.db.table("share_annotation_comments").insert(data),
            "create annotation comment",
        )
        return ShareAnnotationComment.model_validate(self._first(result, "create annotation comment"))

    async def update_comment_text(self, comment_id: str, text: str) -> ShareAnnotationComment:
        result = await self._execute(
            self.db.table("share_annotation_comments")
            .update({"text": text})
            .eq("id", comment_id),
            "update annotation comment",
        )
        return ShareAnnotationComment.model_validate(self._first(result, "update annotation comment"))

    async def delete_comment(self, comment_id: str) -> None:
        await self._execute(
            self.db.table("share_annotation_comments").delete().eq("id", comment_id),
            "delete annotation comment",
        )

