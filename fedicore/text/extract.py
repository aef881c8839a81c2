"""Mention, hashtag and emoji extraction from plaintext status bodies.

Callers strip markup first. Every derive_* function returns unique values
in order of first appearance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from fedicore.text.errors import MalformedMentionError
from fedicore.text.patterns import (
    EMOJI_FINDER,
    HASHTAG_FINDER,
    MENTION_FINDER,
    MENTION_NAME,
)


def unique_strings(values: Iterable[str]) -> list[str]:
    """Drop repeats, keeping the first occurrence of each value."""
    return list(dict.fromkeys(values))


def derive_mentions(status: str) -> list[str]:
    """Accounts mentioned in a status, as "user" or "user@domain".

    The leading "@" is dropped and case is kept as written.

    Example:
        >>> derive_mentions("hello @alice@example.org and @bob")
        ['alice@example.org', 'bob']
    """
    return unique_strings(MENTION_FINDER.findall(status))


def derive_hashtags(status: str) -> list[str]:
    """Hashtags used in a status, lowercased, without the leading "#".

    Example:
        >>> derive_hashtags("Check #FOO and #foo and #bar")
        ['foo', 'bar']
    """
    return unique_strings(tag.lower() for tag in HASHTAG_FINDER.findall(status))


def derive_emojis(status: str) -> list[str]:
    """Custom emoji shortcodes used in a status, without the colons."""
    return unique_strings(EMOJI_FINDER.findall(status))


@dataclass(frozen=True)
class ExtractedEntities:
    mentions: tuple[str, ...] = ()
    hashtags: tuple[str, ...] = ()
    emojis: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.mentions or self.hashtags or self.emojis)


def extract_entities(status: str) -> ExtractedEntities:
    """Run all three extractors over one status body."""
    return ExtractedEntities(
        mentions=tuple(derive_mentions(status)),
        hashtags=tuple(derive_hashtags(status)),
        emojis=tuple(derive_emojis(status)),
    )


def is_mention(value: str) -> bool:
    """Whether the whole string is "@user" or "@user@domain" (any case)."""
    return MENTION_NAME.fullmatch(value.lower()) is not None


def extract_mention_parts(mention: str) -> tuple[str, str]:
    """Split "@user@domain" into ("user", "domain").

    A mention without a domain yields an empty domain.

    Raises:
        MalformedMentionError: The whole string is not a mention
    """
    match = MENTION_NAME.fullmatch(mention)
    if match is None:
        raise MalformedMentionError(mention)
    username, domain = match.groups()
    return username, domain or ""
