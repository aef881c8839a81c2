"""Tests for fedicore.utils.time module."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fedicore.utils.time import to_utc, utcnow


class TestUtcnow:
    """Tests for utcnow function."""

    def test_returns_timezone_aware_datetime(self) -> None:
        result = utcnow()
        assert result.tzinfo is not None
        assert result.tzinfo == timezone.utc

    def test_returns_current_time(self) -> None:
        before = datetime.now(timezone.utc)
        result = utcnow()
        after = datetime.now(timezone.utc)

        assert before <= result <= after


class TestToUtc:
    """Tests for to_utc function."""

    def test_none_passes_through(self) -> None:
        assert to_utc(None) is None

    def test_naive_is_assumed_utc(self) -> None:
        result = to_utc(datetime(2024, 1, 15, 10, 30))

        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_converts_other_offsets(self) -> None:
        plus_two = timezone(timedelta(hours=2))

        result = to_utc(datetime(2024, 1, 15, 12, 30, tzinfo=plus_two))

        assert result == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc
