"""
Selects the publishable part of a content item for a platform.

`extract_message` is pure: the same blocks and platform always produce an
equal message, and nothing outside the arguments is read or written.
"""

from typing import Any, List, Optional, Sequence, Union

from src.types.content import BlockType, ContentBlock, parse_blocks
from src.types.social import (
    ArticlePost,
    ExtractedMessage,
    NoContent,
    SocialPlatform,
    TextPost,
    ThreadPost,
)

BlocksInput = Union[str, Sequence[Any], None]


def _first(blocks: List[ContentBlock], block_type: BlockType) -> Optional[ContentBlock]:
    return next((b for b in blocks if b.type == block_type.value), None)


def _text_of(block: ContentBlock) -> str:
    text = block.get("text", "")
    return text if isinstance(text, str) else ""


def extract_twitter(blocks: BlocksInput) -> ExtractedMessage:
    """
    Build an X message.

    Every `thread` block's tweets, flattened in block order. With no thread
    block the first `text` block becomes a one-tweet thread.
    """
    parsed = parse_blocks(blocks)

    tweets: List[str] = []
    for block in parsed:
        if block.type == BlockType.THREAD.value:
            items = block.get("tweets", [])
            if isinstance(items, list):
                tweets.extend(t for t in items if isinstance(t, str))

    if not tweets:
        text_block = _first(parsed, BlockType.TEXT)
        if text_block is not None and _text_of(text_block).strip():
            tweets = [_text_of(text_block)]

    if not tweets:
        return NoContent()
    return ThreadPost(tweets=tweets)


def extract_linkedin(blocks: BlocksInput) -> ExtractedMessage:
    """
    Build a LinkedIn message.

    A `link` block wins over a `text` block. A text post is flagged as
    carrying an image when any `image` block is present.
    """
    parsed = parse_blocks(blocks)

    link_block = _first(parsed, BlockType.LINK)
    if link_block is not None:
        return ArticlePost(
            url=link_block.get("url", ""),
            title=link_block.get("title", ""),
            description=link_block.get("description", ""),
            thumbnail_url=link_block.get("thumbnailUrl"),
        )

    text_block = _first(parsed, BlockType.TEXT)
    if text_block is not None:
        image_block = _first(parsed, BlockType.IMAGE)
        return TextPost(
            text=_text_of(text_block),
            has_image=image_block is not None,
            image_url=image_block.get("url") if image_block is not None else None,
        )

    return NoContent()


_EXTRACTORS = {
    SocialPlatform.TWITTER: extract_twitter,
    SocialPlatform.LINKEDIN: extract_linkedin,
}


def extract_message(blocks: BlocksInput, platform: Union[SocialPlatform, str]) -> ExtractedMessage:
    """
    Turn a content item's blocks into the message to publish on a platform.

    Args:
        blocks: Block list, or its JSON encoding as stored.
        platform: Target platform, case-insensitive when given as a string.

    Raises:
        ValueError: If the platform is not one of SocialPlatform.
    """
    key = SocialPlatform(platform.lower()) if isinstance(platform, str) else platform
    return _EXTRACTORS[key](blocks)
