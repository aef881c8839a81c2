"""Entity extraction from plaintext status bodies."""

from fedicore.text.errors import MalformedMentionError, UnknownActorError
from fedicore.text.extract import (
    ExtractedEntities,
    derive_emojis,
    derive_hashtags,
    derive_mentions,
    extract_entities,
    extract_mention_parts,
    is_mention,
    unique_strings,
)
from fedicore.text.mentions import (
    LocalActorDirectory,
    MentionResolution,
    MentionResolver,
    ResolvedMention,
)

__all__ = [
    "ExtractedEntities",
    "LocalActorDirectory",
    "MalformedMentionError",
    "MentionResolution",
    "MentionResolver",
    "ResolvedMention",
    "UnknownActorError",
    "derive_emojis",
    "derive_hashtags",
    "derive_mentions",
    "extract_entities",
    "extract_mention_parts",
    "is_mention",
    "unique_strings",
]
