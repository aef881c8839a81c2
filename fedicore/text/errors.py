"""Exceptions raised while parsing and resolving status text entities."""

from __future__ import annotations


class MalformedMentionError(ValueError):
    """Raised when a string does not match the mention grammar exactly."""

    def __init__(self, mention: str) -> None:
        self.mention = mention
        super().__init__(f"could not parse mention {mention!r}")


class UnknownActorError(LookupError):
    """Raised when a well-formed local mention names no known actor."""

    def __init__(self, username: str, domain: str = "") -> None:
        self.username = username
        self.domain = domain
        target = f"@{username}@{domain}" if domain else f"@{username}"
        super().__init__(f"no actor found for {target}")
