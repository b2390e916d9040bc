"""IndexService: derived summary documents built from the Note Store.

Three index documents live under ``indexes/``, each stored as a note of
type ``index`` so they share the codec:

- ``catalog.md``: handoffs, sessions, and phases, newest first.
- ``phase-summary.md``: phases grouped by status bucket.
- ``latest-handoff.md``: pointer to the newest handoff, maintained
  incrementally by note creation and rebuilt here only when missing.

Catalog and phase summary are rebuilt from a fresh scan every time. Their
bodies are deterministic apart from the ``Generated:`` line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from memctl.domain.errors import NotFoundError, ValidationError, VaultError
from memctl.domain.frontmatter import create_frontmatter
from memctl.domain.timestamps import format_timestamp, now_timestamp
from memctl.domain.types import PHASE_SUMMARY_BUCKETS, NoteType
from memctl.services.base import BaseService, error_result
from memctl.services.result import ServiceResult

if TYPE_CHECKING:
    from pathlib import Path

    from memctl.domain.models import Note

logger = logging.getLogger(__name__)

INDEXES_DIR = "indexes"
CATALOG = "catalog.md"
PHASE_SUMMARY = "phase-summary.md"
LATEST_HANDOFF = "latest-handoff.md"
INDEX_NAMES: tuple[str, ...] = (LATEST_HANDOFF, CATALOG, PHASE_SUMMARY)

PHASE_FILE_PATTERN = r"^phase\.md$"

_READ_ERRORS = (VaultError, OSError, UnicodeDecodeError)


@dataclass(frozen=True)
class PhaseInfo:
    """One phase as seen by the catalog and the phase summary."""

    id: str
    title: str
    status: str
    goal: str
    link: str


class IndexService(BaseService):
    """Builds and reads the index documents."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def regenerate(self) -> ServiceResult:
        """Rebuild catalog and phase summary; rebuild latest-handoff only if missing."""
        op = "index"
        try:
            catalog = self.write_catalog()
            summary = self.write_phase_summary()
            latest_path = self._vault.path(INDEXES_DIR, LATEST_HANDOFF)
            if self._vault.exists(latest_path):
                latest: str | None = self._vault.relative(latest_path)
            else:
                rebuilt = self.rebuild_latest_handoff_index()
                latest = self._vault.relative(rebuilt.path) if rebuilt else None
        except (VaultError, OSError) as exc:
            return error_result(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "catalog": catalog["path"],
                "phase_summary": summary["path"],
                "latest_handoff": latest,
                "counts": {**catalog["counts"], "phase_summary": summary["total"]},
            },
        )

    def rebuild_latest_handoff(self) -> ServiceResult:
        """Point the latest-handoff index at the newest handoff on disk."""
        op = "rebuild_latest_handoff"
        try:
            note = self.rebuild_latest_handoff_index()
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        if note is None:
            return ServiceResult(ok=True, op=op, data={"latest_handoff": None})
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "latest_handoff": self._vault.relative(note.path),
                "handoff_path": note.frontmatter.get("handoff_path"),
                "handoff_id": note.frontmatter.get("handoff_id"),
            },
        )

    # ------------------------------------------------------------------
    # Latest handoff
    # ------------------------------------------------------------------

    def latest_handoff_note(self) -> Note | None:
        """The handoff the latest-handoff index points at, if it still exists."""
        index_path = self._vault.path(INDEXES_DIR, LATEST_HANDOFF)
        if not self._vault.exists(index_path):
            return None
        try:
            index = self._vault.read_note(index_path)
            handoff_path = index.frontmatter.get("handoff_path")
            if not handoff_path or not self._vault.exists(str(handoff_path)):
                return None
            return self._vault.read_note(str(handoff_path))
        except _READ_ERRORS as exc:
            logger.warning("Cannot resolve latest handoff: %s", exc)
            return None

    def update_latest_handoff(self, handoff: Note) -> Note:
        """Rewrite the latest-handoff index to reference *handoff*."""
        index_path = self._vault.path(INDEXES_DIR, LATEST_HANDOFF)
        rel = self._vault.relative(handoff.path)
        frontmatter = self._index_frontmatter(
            index_path,
            tag="latest-handoff",
            title="Latest Handoff",
            handoff_path=rel,
            handoff_id=handoff.id,
        )
        body = self._vault.render(
            "latest_handoff",
            stem=handoff.stem,
            path=rel,
            id=handoff.id,
            updated_at=frontmatter["updated_at"],
        )
        return self._vault.write_note(index_path, frontmatter, body)

    def newest_handoff(self) -> Note | None:
        """Scan every handoff (top-level and phase-scoped) for the newest one.

        Ordered by ``created_at``, then by vault-relative path.
        """
        candidates = [
            *self._vault.list_notes("handoffs", recursive=True, type_filter=NoteType.HANDOFF),
            *self._vault.list_notes("phases", recursive=True, type_filter=NoteType.HANDOFF),
        ]
        best: tuple[str, str] | None = None
        best_note: Note | None = None
        for path in candidates:
            try:
                note = self._vault.read_note(path)
            except _READ_ERRORS as exc:
                logger.debug("Skipping unreadable handoff %s: %s", path, exc)
                continue
            if note.type != NoteType.HANDOFF:
                continue
            key = (str(note.frontmatter.get("created_at") or ""), self._vault.relative(path))
            if best is None or key > best:
                best, best_note = key, note
        return best_note

    def rebuild_latest_handoff_index(self) -> Note | None:
        """Rewrite the latest-handoff index from a full scan.

        With no handoffs left, a dangling index is removed and None returned.
        """
        newest = self.newest_handoff()
        if newest is not None:
            return self.update_latest_handoff(newest)
        index_path = self._vault.path(INDEXES_DIR, LATEST_HANDOFF)
        if self._vault.exists(index_path):
            self._vault.delete_note(index_path)
            logger.info("Removed latest-handoff index: no handoffs remain")
        return None

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def write_catalog(self) -> dict[str, Any]:
        """Regenerate ``indexes/catalog.md``."""
        limit = self._vault.settings.index.display_limit
        handoffs = self._dated_entries("handoffs")
        sessions = self._dated_entries("sessions")
        phases = self.scan_phases()

        sections = [
            _section("Handoffs", handoffs, limit),
            _section("Sessions", sessions, limit),
            _section("Phases", self._phase_entries(phases), limit),
        ]
        index_path = self._vault.path(INDEXES_DIR, CATALOG)
        frontmatter = self._index_frontmatter(
            index_path,
            tag="catalog",
            title="Vault Catalog",
            total_notes=len(handoffs) + len(sessions) + len(phases),
        )
        body = self._vault.render(
            "catalog", generated_at=frontmatter["updated_at"], sections=sections
        )
        self._vault.write_note(index_path, frontmatter, body)
        return {
            "path": self._vault.relative(index_path),
            "counts": {
                "handoffs": len(handoffs),
                "sessions": len(sessions),
                "phases": len(phases),
            },
        }

    def _dated_entries(self, section: str) -> list[dict[str, str]]:
        """Notes of *section*, newest modification first, ties by path."""
        rows: list[tuple[str, str, Path]] = []
        for path in self._vault.list_notes(section, recursive=True):
            if not self._vault.contains(path):
                logger.warning("Skipping note outside the vault: %s", path)
                continue
            stat = self._vault.stat(path)
            if stat is None:
                continue
            rows.append((format_timestamp(stat.mtime), self._vault.relative(path), path))
        rows.sort(key=lambda row: row[1])
        rows.sort(key=lambda row: row[0], reverse=True)
        return [{"link": path.stem, "label": mtime} for mtime, _rel, path in rows]

    def _phase_entries(self, phases: list[PhaseInfo]) -> list[dict[str, str]]:
        """Phases newest modification first, ties by path, labelled with status."""
        rows: list[tuple[str, PhaseInfo]] = []
        for phase in phases:
            stat = self._vault.stat(f"{phase.link}.md")
            rows.append((format_timestamp(stat.mtime) if stat else "", phase))
        rows.sort(key=lambda row: row[1].link)
        rows.sort(key=lambda row: row[0], reverse=True)
        return [
            {"link": phase.link, "label": f"{phase.title} ({phase.status})"}
            for _mtime, phase in rows
        ]

    # ------------------------------------------------------------------
    # Phase summary
    # ------------------------------------------------------------------

    def write_phase_summary(self) -> dict[str, Any]:
        """Regenerate ``indexes/phase-summary.md``."""
        phases = self.scan_phases()
        grouped: dict[str, list[PhaseInfo]] = {name: [] for name in PHASE_SUMMARY_BUCKETS}
        for phase in phases:
            bucket = phase.status if phase.status in grouped else "other"
            grouped[bucket].append(phase)

        buckets = [
            {"name": name, "phases": sorted(items, key=lambda p: p.id)}
            for name, items in grouped.items()
            if items
        ]
        index_path = self._vault.path(INDEXES_DIR, PHASE_SUMMARY)
        frontmatter = self._index_frontmatter(
            index_path,
            tag="phase-summary",
            title="Phase Summary",
            total_phases=len(phases),
        )
        body = self._vault.render(
            "phase_summary",
            generated_at=frontmatter["updated_at"],
            total=len(phases),
            buckets=buckets,
        )
        self._vault.write_note(index_path, frontmatter, body)
        return {"path": self._vault.relative(index_path), "total": len(phases)}

    def scan_phases(self) -> list[PhaseInfo]:
        """Every readable ``phases/<id>/phase.md``, sorted by path.

        Unreadable phases are skipped.
        """
        phases: list[PhaseInfo] = []
        for path in self._vault.list_notes(
            "phases", recursive=True, pattern=PHASE_FILE_PATTERN
        ):
            try:
                note = self._vault.read_note(path)
            except _READ_ERRORS as exc:
                logger.debug("Skipping unreadable phase %s: %s", path, exc)
                continue
            fm = note.frontmatter
            if not fm:
                continue
            rel = self._vault.relative(path)
            phases.append(
                PhaseInfo(
                    id=str(fm.get("phase_id") or path.parent.name),
                    title=str(fm.get("title") or "Untitled"),
                    status=str(fm.get("status") or "other"),
                    goal=str(fm.get("goal") or ""),
                    link=rel.removesuffix(".md"),
                )
            )
        return phases

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def _index_frontmatter(
        self,
        index_path: Path,
        *,
        tag: str,
        title: str,
        **extra: Any,
    ) -> dict[str, Any]:
        """Frontmatter for an index note, keeping the id and created_at it already has."""
        existing: dict[str, Any] = {}
        if self._vault.exists(index_path):
            try:
                existing = self._vault.read_note(index_path).frontmatter
            except (NotFoundError, ValidationError, OSError, UnicodeDecodeError):
                existing = {}
        now = now_timestamp()
        return create_frontmatter(
            NoteType.INDEX,
            id=_str_or_none(existing.get("id")),
            created_at=_str_or_none(existing.get("created_at")) or now,
            updated_at=now,
            status="active",
            tags=["index", tag],
            title=title,
            **extra,
        )


def _section(heading: str, entries: list[dict[str, str]], limit: int) -> dict[str, Any]:
    return {
        "heading": heading,
        "total": len(entries),
        "entries": entries[:limit],
        "hidden": max(0, len(entries) - limit),
    }


def _str_or_none(value: Any) -> str | None:
    return str(value) if value else None
