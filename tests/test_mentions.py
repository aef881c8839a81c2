"""Tests for fedicore.text.mentions.MentionResolver."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from fedicore.config.settings import AppSettings
from fedicore.text import (
    MalformedMentionError,
    MentionResolver,
    ResolvedMention,
    UnknownActorError,
    derive_mentions,
)


@pytest.fixture
def directory() -> AsyncMock:
    actors = {"alice": {"id": "actor-alice"}, "bob": {"id": "actor-bob"}}
    directory = AsyncMock()
    directory.resolve_local.side_effect = lambda username: actors.get(username)
    return directory


@pytest.fixture
def resolver(directory) -> MentionResolver:
    return MentionResolver(directory, local_domain="Social.Example")


class TestResolve:
    """Tests for MentionResolver.resolve."""

    @pytest.mark.asyncio
    async def test_local_mention(self, resolver, directory):
        result = await resolver.resolve("@alice")

        assert result == ResolvedMention("alice", "", {"id": "actor-alice"})
        assert result.is_local
        assert result.acct == "alice"
        directory.resolve_local.assert_awaited_once_with("alice")

    @pytest.mark.asyncio
    async def test_remote_mention_skips_directory(self, resolver, directory):
        result = await resolver.resolve("@carol@Remote.Example")

        assert result == ResolvedMention("carol", "remote.example")
        assert not result.is_local
        assert result.acct == "carol@remote.example"
        directory.resolve_local.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_own_domain_is_local(self, resolver):
        result = await resolver.resolve("@bob@social.example")

        assert result.is_local
        assert result.actor == {"id": "actor-bob"}

    @pytest.mark.asyncio
    async def test_accepts_extracted_form(self, resolver):
        result = await resolver.resolve("carol@remote.example")

        assert result.acct == "carol@remote.example"

    @pytest.mark.asyncio
    async def test_unknown_local_actor(self, resolver):
        with pytest.raises(UnknownActorError) as exc_info:
            await resolver.resolve("@nobody")

        assert exc_info.value.username == "nobody"
        assert "@nobody" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_malformed(self, resolver, directory):
        with pytest.raises(MalformedMentionError):
            await resolver.resolve("@not valid")

        directory.resolve_local.assert_not_awaited()


class TestResolveAll:
    """Tests for MentionResolver.resolve_all."""

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_others(self, resolver):
        result = await resolver.resolve_all(
            ["alice", "ghost", "@bad mention", "dave@remote.example"]
        )

        assert [m.acct for m in result.resolved] == ["alice", "dave@remote.example"]
        assert result.unknown == ["ghost"]
        assert result.malformed == ["@bad mention"]

    @pytest.mark.asyncio
    async def test_pipeline_from_status_text(self, resolver):
        mentions = derive_mentions("hi @alice and @erin@remote.example, @alice")

        result = await resolver.resolve_all(mentions)

        assert [m.acct for m in result.resolved] == ["alice", "erin@remote.example"]
        assert result.unknown == []

    @pytest.mark.asyncio
    async def test_empty(self, resolver):
        result = await resolver.resolve_all([])

        assert result.resolved == []
        assert result.unknown == []
        assert result.malformed == []


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_instance_host_is_local(self, directory):
        settings = AppSettings(instance={"host": "Social.Example"})
        resolver = MentionResolver.from_settings(directory, settings)

        result = await resolver.resolve("@alice@social.example")

        assert resolver.local_domain == "social.example"
        assert result.is_local
