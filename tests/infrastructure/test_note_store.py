"""Tests for the Vault note store: layout, path safety, and CRUD rules."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from memctl.config.settings import MemSettings
from memctl.domain.errors import NoteExistsError, NotFoundError, ValidationError
from memctl.domain.frontmatter import create_frontmatter
from memctl.domain.types import VAULT_FOLDERS
from memctl.infrastructure.vault import Vault


def _fm(note_type: str = "session", **extra: object) -> dict[str, object]:
    return create_frontmatter(note_type, tags=["t"], **extra)


class TestLayout:
    def test_ensure_structure_is_idempotent(self, settings: MemSettings) -> None:
        v = Vault(settings)
        assert v.ensure_structure() == list(VAULT_FOLDERS)
        assert v.ensure_structure() == []
        for folder in VAULT_FOLDERS:
            assert (v.root / folder).is_dir()

    def test_dated_path_uses_utc(self, vault: Vault) -> None:
        when = datetime(2024, 12, 31, 23, 59, tzinfo=UTC)
        assert vault.dated_path("handoffs", when) == vault.root / "handoffs" / "2024" / "12"

    def test_relative_is_posix(self, vault: Vault) -> None:
        assert vault.relative(vault.path("handoffs", "2024", "01", "x.md")) == (
            "handoffs/2024/01/x.md"
        )


class TestPathSafety:
    def test_parent_escape_rejected(self, vault: Vault) -> None:
        with pytest.raises(ValidationError, match="escapes vault root"):
            vault.resolve("../outside.md")

    def test_absolute_outside_rejected(self, vault: Vault, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="escapes vault root"):
            vault.create_note(tmp_path / "elsewhere.md", _fm(), "")
        assert not (tmp_path / "elsewhere.md").exists()

    def test_relative_paths_anchor_at_root(self, vault: Vault) -> None:
        assert vault.resolve("sessions/a.md") == vault.root / "sessions" / "a.md"


class TestCreateReadUpdate:
    def test_create_then_read(self, vault: Vault) -> None:
        note = vault.create_note("sessions/a.md", _fm(title="A"), "Body\n")
        assert note.path == vault.root / "sessions" / "a.md"
        read = vault.read_note("sessions/a.md")
        assert read.frontmatter["title"] == "A"
        assert read.body == "Body\n"
        assert read.id == note.id

    def test_create_refuses_overwrite(self, vault: Vault) -> None:
        vault.create_note("sessions/a.md", _fm(), "first")
        with pytest.raises(NoteExistsError) as exc_info:
            vault.create_note("sessions/a.md", _fm(), "second")
        assert exc_info.value.code == "NOTE_EXISTS"
        assert vault.read_note("sessions/a.md").body == "first"

    def test_create_validates_frontmatter(self, vault: Vault) -> None:
        fm = _fm()
        del fm["session_id"]
        with pytest.raises(ValidationError) as exc_info:
            vault.create_note("sessions/a.md", fm, "")
        assert exc_info.value.missing == ["session_id"]
        assert not vault.exists("sessions/a.md")

    def test_create_makes_parent_dirs(self, vault: Vault) -> None:
        vault.create_note("handoffs/2024/01/x.md", _fm("handoff"), "")
        assert (vault.root / "handoffs" / "2024" / "01" / "x.md").is_file()

    def test_read_missing(self, vault: Vault) -> None:
        with pytest.raises(NotFoundError):
            vault.read_note("sessions/none.md")

    def test_update_requires_existing(self, vault: Vault) -> None:
        with pytest.raises(NotFoundError):
            vault.update_note("sessions/none.md", _fm(), "")

    def test_update_replaces(self, vault: Vault) -> None:
        vault.create_note("sessions/a.md", _fm(title="Old"), "old")
        vault.update_note("sessions/a.md", _fm(title="New"), "new")
        note = vault.read_note("sessions/a.md")
        assert note.title == "New"
        assert note.body == "new"

    def test_write_creates_or_replaces(self, vault: Vault) -> None:
        vault.write_note("indexes/catalog.md", _fm("index"), "v1")
        vault.write_note("indexes/catalog.md", _fm("index"), "v2")
        assert vault.read_note("indexes/catalog.md").body == "v2"

    def test_delete(self, vault: Vault) -> None:
        vault.create_note("sessions/a.md", _fm(), "")
        vault.delete_note("sessions/a.md")
        assert not vault.exists("sessions/a.md")
        with pytest.raises(OSError):
            vault.delete_note("sessions/a.md")

    def test_delete_symlink_keeps_target(self, vault: Vault) -> None:
        outside = vault.root.parent / "outside.md"
        outside.write_text("kept\n", encoding="utf-8")
        link = vault.root / "sessions" / "link.md"
        link.symlink_to(outside)
        vault.delete_note("sessions/link.md")
        assert not link.is_symlink()
        assert outside.read_text(encoding="utf-8") == "kept\n"

    def test_delete_outside_vault_rejected(self, vault: Vault) -> None:
        with pytest.raises(ValidationError):
            vault.delete_note("../outside.md")

    def test_crlf_body_round_trips(self, vault: Vault) -> None:
        vault.create_note("sessions/crlf.md", _fm(), "line one\r\nline two\r\n")
        assert vault.read_note("sessions/crlf.md").body == "line one\r\nline two\r\n"


class TestListAndStat:
    def test_list_only_markdown_sorted(self, vault: Vault) -> None:
        for name in ("b.md", "a.md", "notes.txt"):
            (vault.root / "sessions" / name).write_text("x", encoding="utf-8")
        (vault.root / "sessions" / "2024").mkdir()
        (vault.root / "sessions" / "2024" / "c.md").write_text("x", encoding="utf-8")

        flat = vault.list_notes("sessions")
        assert [p.name for p in flat] == ["a.md", "b.md"]
        deep = vault.list_notes("sessions", recursive=True)
        assert [vault.relative(p) for p in deep] == [
            "sessions/2024/c.md",
            "sessions/a.md",
            "sessions/b.md",
        ]

    def test_list_missing_directory(self, vault: Vault) -> None:
        assert vault.list_notes("phases/nope") == []

    def test_list_type_filter_and_pattern(self, vault: Vault) -> None:
        folder = vault.root / "phases" / "p1"
        folder.mkdir(parents=True)
        names = [
            "20240101-000000Z--research--phase--a.md",
            "20240101-000000Z--handoff--phase--b.md",
            "phase.md",
        ]
        for name in names:
            (folder / name).write_text("x", encoding="utf-8")

        by_type = vault.list_notes("phases", recursive=True, type_filter="handoff")
        assert [p.name for p in by_type] == ["20240101-000000Z--handoff--phase--b.md"]
        by_pattern = vault.list_notes("phases", recursive=True, pattern=r"^phase\.md$")
        assert [p.name for p in by_pattern] == ["phase.md"]

    def test_type_filter_reads_frontmatter_for_other_names(self, vault: Vault) -> None:
        vault.create_note("phases/p1/phase.md", _fm("phase"), "")
        found = vault.list_notes("phases", recursive=True, type_filter="phase")
        assert [p.name for p in found] == ["phase.md"]

    def test_stat(self, vault: Vault) -> None:
        assert vault.stat("sessions/none.md") is None
        vault.create_note("sessions/a.md", _fm(), "hello")
        info = vault.stat("sessions/a.md")
        assert info is not None
        assert info.size > 0
        assert info.mtime.tzinfo is not None


class TestSearch:
    def test_search_reports_counts_and_previews(self, vault: Vault) -> None:
        vault.create_note("sessions/a.md", _fm(), "token refresh then token expiry")
        vault.create_note("sessions/sub/b.md", _fm(), "nothing relevant")
        vault.create_note("sessions/sub/c.md", _fm(), "TOKEN in caps")

        hits = vault.search_notes("sessions", "token")
        assert [(vault.relative(h.path), h.match_count) for h in hits] == [
            ("sessions/a.md", 2),
            ("sessions/sub/c.md", 1),
        ]

    def test_search_non_recursive_and_case_sensitive(self, vault: Vault) -> None:
        vault.create_note("sessions/a.md", _fm(), "token")
        vault.create_note("sessions/sub/c.md", _fm(), "TOKEN")
        assert len(vault.search_notes("sessions", "token", recursive=False)) == 1
        assert vault.search_notes("sessions", "TOKEN", case_sensitive=True)[0].path.name == "c.md"

    def test_search_ignores_frontmatter(self, vault: Vault) -> None:
        vault.create_note("sessions/a.md", _fm(title="needle"), "body")
        assert vault.search_notes("sessions", "needle") == []

    def test_undecodable_file_is_skipped(self, vault: Vault) -> None:
        vault.create_note("sessions/good.md", _fm(), "a needle here")
        (vault.root / "sessions" / "bad.md").write_bytes(b"\xff\xfe needle")
        hits = vault.search_notes("sessions", "needle")
        assert [vault.relative(h.path) for h in hits] == ["sessions/good.md"]

    def test_symlink_outside_vault_is_skipped(self, vault: Vault) -> None:
        outside = vault.root.parent / "outside.md"
        outside.write_text("---\nid: x\n---\n\nneedle outside\n", encoding="utf-8")
        (vault.root / "sessions" / "link.md").symlink_to(outside)
        vault.create_note("sessions/good.md", _fm(), "needle inside")
        hits = vault.search_notes("sessions", "needle")
        assert [vault.relative(h.path) for h in hits] == ["sessions/good.md"]


class TestTemplates:
    def test_packaged_default(self, vault: Vault) -> None:
        body = vault.render("handoff", title="Auth work")
        assert body.startswith("# Auth work\n")
        assert "## Next Steps" in body

    def test_vault_override_wins(self, vault: Vault) -> None:
        (vault.root / "templates" / "handoff.md.j2").write_text(
            "Custom {{ title }}\n", encoding="utf-8"
        )
        assert vault.render("handoff", title="X") == "Custom X\n"
