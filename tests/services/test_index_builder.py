"""Tests for IndexService: catalog, phase summary, latest-handoff rebuild."""

from __future__ import annotations

import os
import time
from pathlib import Path

from memctl.config.settings import MemSettings
from memctl.domain.frontmatter import create_frontmatter
from memctl.infrastructure.vault import Vault
from memctl.services.index import IndexService
from memctl.services.notes import NoteService


def _without_generated(body: str) -> str:
    return "\n".join(line for line in body.splitlines() if not line.startswith("Generated:"))


def _touch(vault: Vault, rel: str, stamp: float) -> None:
    os.utime(vault.root / rel, (stamp, stamp))


def _seed(vault: Vault) -> None:
    svc = NoteService(vault)
    svc.create_handoff(title="Alpha", content="a")
    svc.create_session(title="Kickoff")
    svc.create_phase(phase_id="p-2", title="Beta", status="active", goal="Ship it")
    svc.create_phase(phase_id="p-1", title="Alpha phase")
    svc.create_phase(phase_id="p-3", title="Odd", status="paused")


class TestRegenerate:
    def test_writes_all_indexes(self, vault: Vault) -> None:
        _seed(vault)
        result = IndexService(vault).regenerate()
        assert result.ok, result.error
        assert result.data["catalog"] == "indexes/catalog.md"
        assert result.data["phase_summary"] == "indexes/phase-summary.md"
        assert result.data["latest_handoff"] == "indexes/latest-handoff.md"
        assert result.data["counts"] == {
            "handoffs": 1,
            "sessions": 1,
            "phases": 3,
            "phase_summary": 3,
        }

    def test_regeneration_is_deterministic(self, vault: Vault) -> None:
        _seed(vault)
        svc = IndexService(vault)
        svc.regenerate()
        first_catalog = vault.read_note("indexes/catalog.md")
        first_summary = vault.read_note("indexes/phase-summary.md")
        svc.regenerate()
        second_catalog = vault.read_note("indexes/catalog.md")
        second_summary = vault.read_note("indexes/phase-summary.md")

        assert _without_generated(first_catalog.body) == _without_generated(second_catalog.body)
        assert _without_generated(first_summary.body) == _without_generated(second_summary.body)
        assert second_catalog.id == first_catalog.id
        assert (
            second_catalog.frontmatter["created_at"] == first_catalog.frontmatter["created_at"]
        )

    def test_empty_vault(self, vault: Vault) -> None:
        result = IndexService(vault).regenerate()
        assert result.ok
        assert result.data["latest_handoff"] is None
        assert not vault.exists("indexes/latest-handoff.md")
        body = vault.read_note("indexes/catalog.md").body
        assert "## Handoffs\n\nTotal: 0\n" in body


class TestCatalog:
    def test_sections_sorted_by_mtime(self, vault: Vault) -> None:
        now = time.time()
        for name, age in (("a.md", 300), ("b.md", 100), ("c.md", 200)):
            vault.create_note(f"sessions/{name}", create_frontmatter("session"), "")
            _touch(vault, f"sessions/{name}", now - age)
        IndexService(vault).write_catalog()
        body = vault.read_note("indexes/catalog.md").body
        links = [line for line in body.splitlines() if line.startswith("- [[")]
        assert [line.split("]]")[0][4:] for line in links] == ["b", "c", "a"]

    def test_mtime_ties_broken_by_path(self, vault: Vault) -> None:
        stamp = time.time() - 50
        for name in ("z.md", "m.md"):
            vault.create_note(f"handoffs/{name}", create_frontmatter("handoff"), "")
            _touch(vault, f"handoffs/{name}", stamp)
        IndexService(vault).write_catalog()
        body = vault.read_note("indexes/catalog.md").body
        assert body.index("[[m]]") < body.index("[[z]]")

    def test_display_limit_keeps_true_total(self, vault_root: Path) -> None:
        v = Vault(MemSettings(vault_root=vault_root, index={"display_limit": 2}))
        v.ensure_structure()
        for i in range(5):
            v.create_note(f"sessions/s{i}.md", create_frontmatter("session"), "")
        data = IndexService(v).write_catalog()
        assert data["counts"]["sessions"] == 5
        note = v.read_note("indexes/catalog.md")
        assert "## Sessions\n\nTotal: 5\n" in note.body
        assert "... and 3 more" in note.body
        assert note.frontmatter["total_notes"] == 5

    def test_note_outside_vault_is_skipped(self, vault: Vault) -> None:
        outside = vault.root.parent / "outside.md"
        outside.write_text("outside\n", encoding="utf-8")
        (vault.root / "sessions" / "link.md").symlink_to(outside)
        vault.create_note("sessions/real.md", create_frontmatter("session"), "")

        result = IndexService(vault).regenerate()
        assert result.ok
        assert result.data["counts"]["sessions"] == 1
        body = vault.read_note("indexes/catalog.md").body
        assert "[[real]]" in body
        assert "[[link]]" not in body

    def test_phases_sorted_by_mtime_and_truncated(self, vault_root: Path) -> None:
        v = Vault(MemSettings(vault_root=vault_root, index={"display_limit": 2}))
        v.ensure_structure()
        now = time.time()
        for pid, age in (("p-a", 300), ("p-b", 100), ("p-c", 200)):
            v.create_note(
                f"phases/{pid}/phase.md",
                create_frontmatter("phase", phase_id=pid, title=pid, status="planned"),
                "",
            )
            _touch(v, f"phases/{pid}/phase.md", now - age)

        data = IndexService(v).write_catalog()
        assert data["counts"]["phases"] == 3
        body = v.read_note("indexes/catalog.md").body
        phases = body.split("## Phases")[1]
        assert "Total: 3" in phases
        links = [line.split("]]")[0][4:] for line in phases.splitlines() if line.startswith("- [[")]
        assert links == ["phases/p-b/phase", "phases/p-c/phase"]
        assert "... and 1 more" in phases

    def test_phases_listed_with_status(self, vault: Vault) -> None:
        _seed(vault)
        IndexService(vault).write_catalog()
        body = vault.read_note("indexes/catalog.md").body
        assert "- [[phases/p-2/phase]] - Beta (active)" in body
        assert "- [[phases/p-1/phase]] - Alpha phase (planned)" in body


class TestPhaseSummary:
    def test_buckets_in_fixed_order(self, vault: Vault) -> None:
        _seed(vault)
        data = IndexService(vault).write_phase_summary()
        assert data["total"] == 3
        note = vault.read_note("indexes/phase-summary.md")
        body = note.body
        assert "Total Phases: 3" in body
        assert body.index("## Planned") < body.index("## Active") < body.index("## Other")
        assert "## Completed" not in body
        assert "- **Goal:** Ship it" in body
        assert "- **Path:** [[phases/p-3/phase]]" in body
        assert note.frontmatter["total_phases"] == 3

    def test_phases_sorted_by_id_within_bucket(self, vault: Vault) -> None:
        svc = NoteService(vault)
        svc.create_phase(phase_id="b", title="Second")
        svc.create_phase(phase_id="a", title="First")
        IndexService(vault).write_phase_summary()
        body = vault.read_note("indexes/phase-summary.md").body
        assert body.index("### First") < body.index("### Second")

    def test_unreadable_phase_skipped(self, vault: Vault) -> None:
        (vault.root / "phases" / "broken").mkdir()
        (vault.root / "phases" / "broken" / "phase.md").write_text("no frontmatter")
        assert IndexService(vault).write_phase_summary()["total"] == 0


class TestLatestHandoffRebuild:
    def _write_handoff(self, vault: Vault, rel: str, created_at: str) -> str:
        fm = create_frontmatter("handoff", created_at=created_at)
        vault.create_note(rel, fm, "")
        return str(fm["id"])

    def test_newest_across_top_level_and_phases(self, vault: Vault) -> None:
        self._write_handoff(vault, "handoffs/2024/01/old.md", "2024-01-01T00:00:00.000Z")
        newest = self._write_handoff(
            vault, "phases/p-1/handoffs/new.md", "2024-02-01T00:00:00.000Z"
        )
        self._write_handoff(vault, "handoffs/2024/01/mid.md", "2024-01-15T00:00:00.000Z")

        result = IndexService(vault).rebuild_latest_handoff()
        assert result.ok
        assert result.data["handoff_id"] == newest
        assert result.data["handoff_path"] == "phases/p-1/handoffs/new.md"

    def test_created_at_ties_broken_by_path(self, vault: Vault) -> None:
        stamp = "2024-01-01T00:00:00.000Z"
        self._write_handoff(vault, "handoffs/a.md", stamp)
        later_id = self._write_handoff(vault, "handoffs/b.md", stamp)
        assert IndexService(vault).newest_handoff().id == later_id

    def test_missing_index_rebuilt_by_regenerate(self, vault: Vault) -> None:
        data = NoteService(vault).create_handoff(title="Keep").data
        vault.delete_note("indexes/latest-handoff.md")
        result = IndexService(vault).regenerate()
        assert result.data["latest_handoff"] == "indexes/latest-handoff.md"
        index = vault.read_note("indexes/latest-handoff.md")
        assert index.frontmatter["handoff_path"] == data["path"]

    def test_dangling_index_removed_when_no_handoffs(self, vault: Vault) -> None:
        data = NoteService(vault).create_handoff(title="Gone").data
        vault.delete_note(str(data["path"]))
        result = IndexService(vault).rebuild_latest_handoff()
        assert result.data == {"latest_handoff": None}
        assert not vault.exists("indexes/latest-handoff.md")
