"""Tests for fedicore.text.extract."""

from __future__ import annotations

import pytest

from fedicore.text import (
    ExtractedEntities,
    MalformedMentionError,
    derive_emojis,
    derive_hashtags,
    derive_mentions,
    extract_entities,
    extract_mention_parts,
    is_mention,
    unique_strings,
)


class TestUniqueStrings:
    def test_keeps_first_occurrence_order(self):
        assert unique_strings(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    def test_empty(self):
        assert unique_strings([]) == []


# ---------------------------------------------------------------------------
# TestDeriveMentions
# ---------------------------------------------------------------------------


class TestDeriveMentions:
    """Tests for derive_mentions."""

    def test_local_and_remote(self):
        result = derive_mentions("hello @alice@example.org and @bob")

        assert result == ["alice@example.org", "bob"]

    def test_duplicates_dropped(self):
        result = derive_mentions("@alice@example.org @bob @alice@example.org")

        assert result == ["alice@example.org", "bob"]

    def test_case_preserved_first_form_wins(self):
        assert derive_mentions("@Alice then @alice") == ["Alice", "alice"]

    def test_trailing_punctuation(self):
        result = derive_mentions("thanks @carol@social.example.net. cc @dave!")

        assert result == ["carol@social.example.net", "dave"]

    def test_domain_never_truncated_to_earlier_label(self):
        assert derive_mentions("hi @alice@example.org_x") == []
        assert derive_mentions("hi @alice@mail.example.org@x") == []

    def test_email_is_not_a_mention(self):
        assert derive_mentions("write to me at erin@example.org") == []

    def test_start_of_text_and_newlines(self):
        assert derive_mentions("@frank\n@grace") == ["frank", "grace"]

    def test_lone_at_sign(self):
        assert derive_mentions("meet @ noon") == []


# ---------------------------------------------------------------------------
# TestDeriveHashtags
# ---------------------------------------------------------------------------


class TestDeriveHashtags:
    """Tests for derive_hashtags."""

    def test_case_folded_and_deduplicated(self):
        assert derive_hashtags("Check #FOO and #foo and #bar") == ["foo", "bar"]

    def test_underscores_and_digits(self):
        assert derive_hashtags("#day_1 #2024") == ["day_1", "2024"]

    def test_unicode_letters_allowed(self):
        assert derive_hashtags("#Café #日本語") == ["café", "日本語"]

    def test_url_fragment_is_not_a_hashtag(self):
        assert derive_hashtags("see https://example.org/page#section") == []

    def test_double_hash(self):
        assert derive_hashtags("##nope") == []

    def test_stops_at_punctuation(self):
        assert derive_hashtags("#fedi, #fedi-verse") == ["fedi"]


# ---------------------------------------------------------------------------
# TestDeriveEmojis
# ---------------------------------------------------------------------------


class TestDeriveEmojis:
    """Tests for derive_emojis."""

    def test_deduplicated(self):
        assert derive_emojis("nice :blob_hug: and :blob_hug:") == ["blob_hug"]

    def test_order_preserved(self):
        assert derive_emojis(":party: :blob_hug: :party:") == ["party", "blob_hug"]

    def test_case_preserved(self):
        assert derive_emojis(":BlobCat:") == ["BlobCat"]

    def test_times_are_not_emoji(self):
        assert derive_emojis("meet at 12:30:45") == []

    def test_touching_colons_skipped(self):
        assert derive_emojis("::x:: and :a::b:") == []

    def test_invalid_characters(self):
        assert derive_emojis(":blob-cat: :blob cat:") == []


# ---------------------------------------------------------------------------
# TestExtractEntities
# ---------------------------------------------------------------------------


class TestExtractEntities:
    def test_all_three(self):
        result = extract_entities("@alice look #Fedi :wave:")

        assert result == ExtractedEntities(
            mentions=("alice",), hashtags=("fedi",), emojis=("wave",)
        )
        assert result

    def test_plain_text_is_falsy(self):
        assert not extract_entities("nothing to see here")


# ---------------------------------------------------------------------------
# TestMentionGrammar
# ---------------------------------------------------------------------------


class TestMentionGrammar:
    """Tests for is_mention and extract_mention_parts."""

    @pytest.mark.parametrize(
        "value",
        ["@user", "@user@example.org", "@USER@EXAMPLE.ORG", "@a_1@sub.host-name.io"],
    )
    def test_is_mention(self, value):
        assert is_mention(value) is True

    @pytest.mark.parametrize(
        "value",
        ["user", "@", "@user@", "@us er", "hi @user", "@user@-bad.org", ""],
    )
    def test_is_not_mention(self, value):
        assert is_mention(value) is False

    def test_parts_with_domain(self):
        assert extract_mention_parts("@user@example.org") == ("user", "example.org")

    def test_parts_without_domain(self):
        assert extract_mention_parts("@user") == ("user", "")

    def test_parts_keep_case(self):
        assert extract_mention_parts("@Alice@Example.org") == ("Alice", "Example.org")

    def test_not_a_mention(self):
        with pytest.raises(MalformedMentionError) as exc_info:
            extract_mention_parts("not a mention")

        assert exc_info.value.mention == "not a mention"

    def test_substring_is_not_enough(self):
        with pytest.raises(MalformedMentionError):
            extract_mention_parts("cc @user@example.org")
