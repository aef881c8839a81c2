"""Resolution of extracted mentions to actor references.

Local mentions are looked up in a LocalActorDirectory. Remote mentions are
only parsed: fetching unknown remote actors belongs to federation, which
consumes the ResolvedMention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Protocol

from fedicore.text.errors import MalformedMentionError, UnknownActorError
from fedicore.text.extract import extract_mention_parts

if TYPE_CHECKING:
    from fedicore.config.settings import AppSettings

log = logging.getLogger(__name__)


class LocalActorDirectory(Protocol):
    async def resolve_local(self, username: str) -> Any | None:
        """Return the actor for a local username, or None."""
        ...


@dataclass(frozen=True)
class ResolvedMention:
    """A mention target. domain "" means an actor on this instance."""

    username: str
    domain: str = ""
    # Directory's actor reference; None for remote mentions
    actor: Any = None

    @property
    def is_local(self) -> bool:
        return self.domain == ""

    @property
    def acct(self) -> str:
        return f"{self.username}@{self.domain}" if self.domain else self.username


@dataclass
class MentionResolution:
    """Outcome of resolving every mention in one status."""

    resolved: list[ResolvedMention] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)


class MentionResolver:
    """Turns raw mention strings into ResolvedMention values.

    Args:
        directory: Lookup for actors on this instance
        local_domain: This instance's host. A mention naming it is local.
    """

    def __init__(self, directory: LocalActorDirectory, local_domain: str = "") -> None:
        self.directory = directory
        self.local_domain = local_domain.lower()

    @classmethod
    def from_settings(
        cls, directory: LocalActorDirectory, settings: "AppSettings"
    ) -> "MentionResolver":
        """Build a resolver that treats settings.instance.host as local."""
        return cls(directory, local_domain=settings.instance.host)

    async def resolve(self, raw: str) -> ResolvedMention:
        """Resolve one mention.

        Accepts "@user", "@user@domain" and the "@"-less form returned by
        derive_mentions().

        Raises:
            MalformedMentionError: raw is not a mention
            UnknownActorError: raw names a local actor that does not exist
        """
        mention = raw.strip()
        if not mention.startswith("@"):
            mention = f"@{mention}"
        username, domain = extract_mention_parts(mention)
        domain = domain.lower()

        if domain and domain != self.local_domain:
            return ResolvedMention(username=username, domain=domain)

        actor = await self.directory.resolve_local(username)
        if actor is None:
            raise UnknownActorError(username)
        return ResolvedMention(username=username, actor=actor)

    async def resolve_all(self, raws: Iterable[str]) -> MentionResolution:
        """Resolve each mention; a failure never stops the others."""
        resolution = MentionResolution()
        for raw in raws:
            try:
                resolution.resolved.append(await self.resolve(raw))
            except MalformedMentionError:
                log.debug(f"Skipping malformed mention {raw!r}")
                resolution.malformed.append(raw)
            except UnknownActorError:
                log.debug(f"No local actor for mention {raw!r}")
                resolution.unknown.append(raw)
        return resolution
