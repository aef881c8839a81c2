"""Attachment record persistence.

The lifecycle manager talks to an AttachmentStore. Two implementations:
- InMemoryAttachmentStore (this module), for single-process use and tests
- SQLAttachmentStore (fedicore.db.repositories.attachment_repository)

Both guarantee that concurrent compare_and_swap_state() calls for the same
attachment id have at most one winner.
"""

from __future__ import annotations

import threading
from typing import Protocol

from fedicore.media.errors import InvalidTransitionError
from fedicore.media.types import MediaAttachment, ProcessingState, can_transition


class AttachmentStore(Protocol):
    async def load(self, attachment_id: str) -> MediaAttachment | None: ...

    async def save(self, attachment: MediaAttachment) -> None: ...

    async def compare_and_swap_state(
        self,
        attachment_id: str,
        expected: ProcessingState,
        updated: MediaAttachment,
    ) -> MediaAttachment | None: ...

    async def delete(self, attachment_id: str) -> None: ...

    async def list_by_state(
        self,
        state: ProcessingState,
        limit: int | None = None,
        account_id: str | None = None,
    ) -> list[MediaAttachment]: ...


def check_transition(expected: ProcessingState, updated: MediaAttachment) -> None:
    """Raise InvalidTransitionError unless expected -> updated state is forward."""
    if not can_transition(expected, updated.processing_state):
        raise InvalidTransitionError(expected, updated.processing_state)


class InMemoryAttachmentStore:
    """AttachmentStore holding records in a dict.

    A lock serializes every operation, which makes compare_and_swap_state
    atomic for callers on any thread or event loop.
    """

    def __init__(self) -> None:
        self._records: dict[str, MediaAttachment] = {}
        self._lock = threading.Lock()

    async def load(self, attachment_id: str) -> MediaAttachment | None:
        with self._lock:
            return self._records.get(attachment_id)

    async def save(self, attachment: MediaAttachment) -> None:
        with self._lock:
            self._records[attachment.id] = attachment

    async def compare_and_swap_state(
        self,
        attachment_id: str,
        expected: ProcessingState,
        updated: MediaAttachment,
    ) -> MediaAttachment | None:
        """Replace the record if its state is still `expected`.

        Returns:
            The stored record if this call won, None if the record is missing
            or its state had already moved on.
        """
        check_transition(expected, updated)
        with self._lock:
            current = self._records.get(attachment_id)
            if current is None or current.processing_state is not expected:
                return None
            self._records[attachment_id] = updated
            return updated

    async def delete(self, attachment_id: str) -> None:
        with self._lock:
            self._records.pop(attachment_id, None)

    async def list_by_state(
        self,
        state: ProcessingState,
        limit: int | None = None,
        account_id: str | None = None,
    ) -> list[MediaAttachment]:
        with self._lock:
            matches = [
                a
                for a in self._records.values()
                if a.processing_state is state
                and (account_id is None or a.account_id == account_id)
            ]
        matches.sort(key=lambda a: a.created_at)
        return matches[:limit] if limit is not None else matches
