"""Custom emoji repository.

Resolves :shortcode: references extracted from status text to stored emoji,
and keeps (shortcode, domain) unique on insert.
"""

from __future__ import annotations

import re
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from fedicore.db.models import CustomEmoji
from fedicore.utils.ids import new_id


SHORTCODE_RE = re.compile(r"^[a-z0-9_]+$")


class InvalidShortcodeError(ValueError):
    """Raised when a shortcode contains characters outside [a-z0-9_]."""


class DuplicateEmojiError(Exception):
    """Raised when an emoji with the same shortcode already exists on a domain."""

    def __init__(self, shortcode: str, domain: str) -> None:
        self.shortcode = shortcode
        self.domain = domain
        where = domain or "local instance"
        super().__init__(f"emoji :{shortcode}: already exists on {where}")


def normalize_shortcode(shortcode: str) -> str:
    """Lowercase a shortcode, stripping surrounding colons.

    Raises:
        InvalidShortcodeError: Nothing valid is left
    """
    normalized = shortcode.strip().strip(":").lower()
    if not SHORTCODE_RE.match(normalized):
        raise InvalidShortcodeError(f"invalid emoji shortcode {shortcode!r}")
    return normalized


async def create_emoji(session: AsyncSession, emoji: CustomEmoji) -> CustomEmoji:
    """Insert a custom emoji.

    Args:
        session: Database session
        emoji: CustomEmoji ORM instance; id is generated when unset

    Returns:
        The emoji with normalized shortcode and domain

    Raises:
        InvalidShortcodeError: Shortcode is not [a-z0-9_]+ after lowercasing
        DuplicateEmojiError: (shortcode, domain) is already taken
    """
    emoji.shortcode = normalize_shortcode(emoji.shortcode)
    emoji.domain = (emoji.domain or "").lower()
    if not emoji.id:
        emoji.id = new_id()

    stmt = (
        pg_insert(CustomEmoji)
        .values(
            id=emoji.id,
            shortcode=emoji.shortcode,
            domain=emoji.domain,
            uri=emoji.uri,
            image_remote_url=emoji.image_remote_url,
            image_static_remote_url=emoji.image_static_remote_url,
            image_url=emoji.image_url,
            image_static_url=emoji.image_static_url,
            image_path=emoji.image_path,
            image_static_path=emoji.image_static_path,
            image_content_type=emoji.image_content_type,
            image_static_content_type=emoji.image_static_content_type,
            image_file_size=emoji.image_file_size or 0,
            image_static_file_size=emoji.image_static_file_size or 0,
            image_updated_at=emoji.image_updated_at,
            disabled=bool(emoji.disabled),
            visible_in_picker=(
                True if emoji.visible_in_picker is None else emoji.visible_in_picker
            ),
            category_id=emoji.category_id,
        )
        .on_conflict_do_nothing(index_elements=["shortcode", "domain"])
        .returning(CustomEmoji.id)
    )
    result = await session.execute(stmt)
    if result.scalar_one_or_none() is None:
        raise DuplicateEmojiError(emoji.shortcode, emoji.domain)
    return emoji


async def get_emoji(
    session: AsyncSession, shortcode: str, domain: str = ""
) -> CustomEmoji | None:
    """Get an enabled emoji by shortcode, or None."""
    result = await session.execute(
        select(CustomEmoji).where(
            CustomEmoji.shortcode == shortcode.lower(),
            CustomEmoji.domain == domain.lower(),
            CustomEmoji.disabled == False,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def get_emojis_for_shortcodes(
    session: AsyncSession, shortcodes: Iterable[str], domain: str = ""
) -> list[CustomEmoji]:
    """Resolve extracted shortcodes to enabled emoji.

    Unknown and disabled shortcodes are left out; the rest keep the order
    of `shortcodes`.
    """
    wanted = list(dict.fromkeys(s.lower() for s in shortcodes))
    if not wanted:
        return []

    result = await session.execute(
        select(CustomEmoji).where(
            CustomEmoji.shortcode.in_(wanted),
            CustomEmoji.domain == domain.lower(),
            CustomEmoji.disabled == False,  # noqa: E712
        )
    )
    by_shortcode = {e.shortcode: e for e in result.scalars().all()}
    return [by_shortcode[s] for s in wanted if s in by_shortcode]


async def set_emoji_disabled(
    session: AsyncSession, emoji_id: str, disabled: bool
) -> bool:
    """Enable or disable an emoji.

    Returns:
        True if an emoji with that id exists
    """
    result = await session.execute(
        update(CustomEmoji)
        .where(CustomEmoji.id == emoji_id)
        .values(disabled=disabled)
        .returning(CustomEmoji.id)
    )
    return result.scalar_one_or_none() is not None
