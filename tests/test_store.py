"""Tests for fedicore.media.store.InMemoryAttachmentStore."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from fedicore.media.errors import InvalidTransitionError
from fedicore.media.store import InMemoryAttachmentStore
from fedicore.media.types import (
    LocalAsset,
    MediaAsset,
    MediaAttachment,
    MediaKind,
    ProcessingState,
)


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _received(attachment_id: str, account_id: str = "u1", offset: int = 0):
    return MediaAttachment(
        id=attachment_id,
        account_id=account_id,
        kind=MediaKind.IMAGE,
        created_at=T0 + timedelta(seconds=offset),
    )


def _claimed(attachment: MediaAttachment) -> MediaAttachment:
    return replace(
        attachment,
        processing_state=ProcessingState.PROCESSING,
        thumbnail=MediaAsset(location=LocalAsset("small/x", "https://f/small/x")),
    )


class TestCompareAndSwap:
    """Tests for compare_and_swap_state."""

    @pytest.mark.asyncio
    async def test_winner_replaces_record(self):
        store = InMemoryAttachmentStore()
        original = _received("a1")
        await store.save(original)

        result = await store.compare_and_swap_state(
            "a1", ProcessingState.RECEIVED, _claimed(original)
        )

        assert result is not None
        assert (await store.load("a1")).processing_state is ProcessingState.PROCESSING

    @pytest.mark.asyncio
    async def test_stale_expected_state_loses(self):
        store = InMemoryAttachmentStore()
        original = _received("a1")
        await store.save(_claimed(original))

        result = await store.compare_and_swap_state(
            "a1", ProcessingState.RECEIVED, _claimed(original)
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_missing_record_loses(self):
        store = InMemoryAttachmentStore()

        result = await store.compare_and_swap_state(
            "ghost", ProcessingState.RECEIVED, _claimed(_received("ghost"))
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_single_winner_under_concurrency(self):
        store = InMemoryAttachmentStore()
        original = _received("a1")
        await store.save(original)

        results = await asyncio.gather(
            *(
                store.compare_and_swap_state(
                    "a1", ProcessingState.RECEIVED, _claimed(original)
                )
                for _ in range(20)
            )
        )

        assert sum(r is not None for r in results) == 1

    @pytest.mark.asyncio
    async def test_backwards_transition_raises(self):
        store = InMemoryAttachmentStore()
        original = _received("a1")
        await store.save(_claimed(original))

        with pytest.raises(InvalidTransitionError):
            await store.compare_and_swap_state(
                "a1", ProcessingState.PROCESSING, original
            )


class TestListByState:
    """Tests for list_by_state."""

    @pytest.mark.asyncio
    async def test_oldest_first_with_limit(self):
        store = InMemoryAttachmentStore()
        for attachment_id, offset in (("late", 30), ("early", 10), ("mid", 20)):
            await store.save(_received(attachment_id, offset=offset))

        result = await store.list_by_state(ProcessingState.RECEIVED, limit=2)

        assert [a.id for a in result] == ["early", "mid"]

    @pytest.mark.asyncio
    async def test_filters_state_and_account(self):
        store = InMemoryAttachmentStore()
        await store.save(_received("a1", account_id="u1"))
        await store.save(_received("a2", account_id="u2"))
        await store.save(_claimed(_received("a3", account_id="u1")))

        result = await store.list_by_state(ProcessingState.RECEIVED, account_id="u1")

        assert [a.id for a in result] == ["a1"]

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryAttachmentStore()
        await store.save(_received("a1"))

        await store.delete("a1")
        await store.delete("a1")

        assert await store.load("a1") is None
