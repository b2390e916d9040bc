"""Tests for the conventional note filename format."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from memctl.domain.errors import ValidationError
from memctl.domain.filenames import generate_filename, parse_filename, slugify


class TestSlugify:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Test Handoff", "test-handoff"),
            ("  Fix: the parser!! ", "fix-the-parser"),
            ("already-slugged", "already-slugged"),
            ("Ünïcode & Symbols", "n-code-symbols"),
            ("---", ""),
        ],
    )
    def test_slugify(self, text: str, expected: str) -> None:
        assert slugify(text) == expected


class TestGenerateFilename:
    def test_exact_format(self) -> None:
        now = datetime(2024, 1, 15, 14, 30, 0, tzinfo=UTC)
        name = generate_filename("handoff", "session-123", "Test Handoff", now)
        assert name == "20240115-143000Z--handoff--session-123--test-handoff.md"

    def test_converts_to_utc(self) -> None:
        now = datetime(2024, 1, 15, 16, 30, 0, tzinfo=timezone(timedelta(hours=2)))
        assert generate_filename("session", "s", "x", now).startswith("20240115-143000Z--")

    def test_same_second_collides(self) -> None:
        """One-second resolution: same inputs within a second share a name."""
        a = datetime(2024, 1, 15, 14, 30, 0, 100_000, tzinfo=UTC)
        b = datetime(2024, 1, 15, 14, 30, 0, 900_000, tzinfo=UTC)
        assert generate_filename("handoff", "s", "t", a) == generate_filename(
            "handoff", "s", "t", b
        )

    @pytest.mark.parametrize(
        ("scope", "expected"),
        [("team/a", "team-a"), ("a--b", "a-b"), ("S 1", "s-1")],
    )
    def test_scope_is_slugified(self, scope: str, expected: str) -> None:
        now = datetime(2024, 1, 15, 14, 30, 0, tzinfo=UTC)
        name = generate_filename("handoff", scope, "t", now)
        assert name == f"20240115-143000Z--handoff--{expected}--t.md"
        parsed = parse_filename(name)
        assert parsed is not None
        assert parsed.scope == expected
        assert parsed.slug == "t"

    def test_empty_scope_rejected(self) -> None:
        with pytest.raises(ValidationError, match="scope"):
            generate_filename("handoff", "//", "t")

    def test_empty_slug_becomes_untitled(self) -> None:
        assert generate_filename("handoff", "s", "!!!").endswith("--handoff--s--untitled.md")


class TestParseFilename:
    def test_inverts_generate(self) -> None:
        now = datetime(2024, 3, 2, 8, 5, 9, tzinfo=UTC)
        parsed = parse_filename(generate_filename("research", "phase", "SQLite vs files", now))
        assert parsed is not None
        assert parsed.type == "research"
        assert parsed.scope == "phase"
        assert parsed.slug == "sqlite-vs-files"
        assert parsed.timestamp == "20240302-080509Z"
        assert parsed.date == now

    @pytest.mark.parametrize(
        "name",
        [
            "phase.md",
            "20240115-143000Z--handoff--scope.md",
            "20241315-143000Z--handoff--s--slug.md",
            "20240115-143000Z--handoff--s--slug.txt",
        ],
    )
    def test_malformed_returns_none(self, name: str) -> None:
        assert parse_filename(name) is None
