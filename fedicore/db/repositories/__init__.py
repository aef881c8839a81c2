"""Repository layer for database operations.

Keeps data access separate from the media pipeline and text processing.
"""

from fedicore.db.repositories.attachment_repository import SQLAttachmentStore
from fedicore.db.repositories.emoji_repository import (
    DuplicateEmojiError,
    InvalidShortcodeError,
    create_emoji,
    get_emoji,
    get_emojis_for_shortcodes,
    normalize_shortcode,
    set_emoji_disabled,
)

__all__ = [
    "SQLAttachmentStore",
    "DuplicateEmojiError",
    "InvalidShortcodeError",
    "create_emoji",
    "get_emoji",
    "get_emojis_for_shortcodes",
    "normalize_shortcode",
    "set_emoji_disabled",
]
