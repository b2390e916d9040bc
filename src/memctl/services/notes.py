"""NoteService: handoff, session, phase, and research note flows.

Handoffs form a chain: each new handoff (top-level or phase-scoped) links
back to the previous latest handoff, then becomes the latest itself.
Creation is two sequential writes, the note and then the latest-handoff
index, followed by one tracker cycle. A crash between them leaves the
index stale; ``vault doctor --fix`` rebuilds it.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from memctl.domain.errors import NotFoundError, ValidationError, VaultError
from memctl.domain.filenames import generate_filename, parse_filename
from memctl.domain.frontmatter import create_frontmatter
from memctl.domain.timestamps import format_timestamp, utc_now
from memctl.domain.types import PHASE_SUBDIRS, NoteType, PhaseStatus
from memctl.services._helpers import note_summary
from memctl.services.base import BaseService, error_result
from memctl.services.index import IndexService
from memctl.services.result import ServiceResult

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from memctl.domain.models import Note

DEFAULT_HANDOFF_TITLE = "Work Handoff"
RESUME_EXCERPT_CHARS = 500
LIST_SECTIONS: tuple[str, ...] = ("handoffs", "sessions", "phases")

_PHASE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class NoteService(BaseService):
    """Creates and reads the vault's working notes."""

    # ------------------------------------------------------------------
    # Handoffs
    # ------------------------------------------------------------------

    def create_handoff(
        self,
        *,
        title: str | None = None,
        content: str | None = None,
        session_id: str | None = None,
        phase_id: str | None = None,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        """Write a top-level handoff under ``handoffs/YYYY/MM/``."""
        op = "create_handoff"
        warnings: list[str] = []
        title = title or DEFAULT_HANDOFF_TITLE
        try:
            now = utc_now()
            sid = session_id or str(uuid4())
            path = self._vault.dated_path("handoffs", now) / generate_filename(
                NoteType.HANDOFF, session_id or "session", title, now
            )
            note, previous = self._write_handoff(
                path,
                now=now,
                title=title,
                content=content,
                session_id=sid,
                phase_id=phase_id,
                tags=["handoff", *(tags or [])],
            )
        except (VaultError, OSError) as exc:
            return error_result(op, exc)

        changes: dict[str, Any] = {
            "latest_handoff_path": self._vault.relative(note.path),
            "latest_handoff_id": note.id,
            "current_session_id": sid,
        }
        if phase_id:
            changes["active_phase_id"] = phase_id
        self._update_tracker(warnings, **changes)
        return ServiceResult(
            ok=True,
            op=op,
            data=self._handoff_payload(note, previous),
            warnings=warnings,
        )

    def create_phase_handoff(
        self,
        *,
        phase_id: str | None = None,
        title: str | None = None,
        content: str | None = None,
        session_id: str | None = None,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        """Write a handoff under ``phases/<id>/handoffs/``.

        The phase defaults to the tracker's active phase.
        """
        op = "create_phase_handoff"
        warnings: list[str] = []
        title = title or DEFAULT_HANDOFF_TITLE
        try:
            pid = self._require_phase(phase_id)
            now = utc_now()
            path = self._vault.path("phases", pid, "handoffs") / generate_filename(
                NoteType.HANDOFF, "phase", title, now
            )
            note, previous = self._write_handoff(
                path,
                now=now,
                title=title,
                content=content,
                session_id=session_id,
                phase_id=pid,
                tags=["handoff", "phase", *(tags or [])],
            )
        except (VaultError, OSError) as exc:
            return error_result(op, exc)

        changes: dict[str, Any] = {
            "latest_handoff_path": self._vault.relative(note.path),
            "latest_handoff_id": note.id,
            "active_phase_id": pid,
        }
        if session_id:
            changes["current_session_id"] = session_id
        self._update_tracker(warnings, **changes)
        return ServiceResult(
            ok=True,
            op=op,
            data=self._handoff_payload(note, previous),
            warnings=warnings,
        )

    def _write_handoff(
        self,
        path: Path,
        *,
        now: datetime,
        title: str,
        content: str | None,
        session_id: str | None,
        phase_id: str | None,
        tags: list[str],
    ) -> tuple[Note, Note | None]:
        """Chain to the previous latest handoff, write the note, move the index."""
        index = IndexService(self._vault)
        previous = index.latest_handoff_note()

        body = content or self._vault.render("handoff", title=title)
        links: list[str] = []
        previous_id: str | None = None
        if previous is not None:
            links.append(self._vault.relative(previous.path))
            previous_id = previous.id
            body = f"## Previous Context\n\n[[{previous.stem}]]\n\n{body}"

        stamp = format_timestamp(now)
        frontmatter = create_frontmatter(
            NoteType.HANDOFF,
            created_at=stamp,
            session_id=session_id,
            phase_id=phase_id,
            status="active",
            tags=tags,
            links=links,
            title=title,
            previous_handoff=previous_id,
        )
        note = self._vault.create_note(path, frontmatter, body)
        index.update_latest_handoff(note)
        return note, previous

    def _handoff_payload(self, note: Note, previous: Note | None) -> dict[str, Any]:
        return {
            **note_summary(self._vault, note),
            "session_id": note.frontmatter.get("session_id"),
            "phase_id": note.frontmatter.get("phase_id"),
            "previous_handoff": previous.id if previous else None,
        }

    def latest_handoff(self) -> ServiceResult:
        """The handoff the latest-handoff index points at."""
        op = "latest_handoff"
        note = IndexService(self._vault).latest_handoff_note()
        if note is None:
            return error_result(op, NotFoundError("No handoff found"))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **note_summary(self._vault, note),
                "session_id": note.frontmatter.get("session_id"),
                "phase_id": note.frontmatter.get("phase_id"),
                "created_at": note.frontmatter.get("created_at"),
                "body": note.body,
            },
        )

    def resume(self) -> ServiceResult:
        """Open a session note that continues from the latest handoff."""
        op = "resume"
        warnings: list[str] = []
        handoff = IndexService(self._vault).latest_handoff_note()
        if handoff is None:
            return error_result(op, NotFoundError("No handoff found to resume from"))

        fm = handoff.frontmatter
        session_id = str(fm["session_id"]) if fm.get("session_id") else None
        phase_id = str(fm["phase_id"]) if fm.get("phase_id") else None
        handoff_rel = self._vault.relative(handoff.path)
        body = self._vault.render(
            "resume",
            handoff_stem=handoff.stem,
            handoff_path=handoff_rel,
            excerpt=handoff.body[:RESUME_EXCERPT_CHARS],
            truncated=len(handoff.body) > RESUME_EXCERPT_CHARS,
        )
        try:
            session = self._write_session(
                title=f"Resume from {handoff.title or 'handoff'}",
                body=body,
                session_id=session_id,
                tags=["session", "resume"],
                links=[handoff_rel],
            )
        except (VaultError, OSError) as exc:
            return error_result(op, exc)

        changes: dict[str, Any] = {
            "current_session_id": session.frontmatter.get("session_id"),
            "latest_handoff_path": handoff_rel,
            "latest_handoff_id": handoff.id,
        }
        if phase_id:
            changes["active_phase_id"] = phase_id
        self._update_tracker(warnings, **changes)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "handoff": note_summary(self._vault, handoff),
                "session": note_summary(self._vault, session),
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(
        self,
        *,
        title: str,
        content: str | None = None,
        session_id: str | None = None,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        """Write a session note under ``sessions/YYYY/MM/``."""
        op = "create_session"
        try:
            note = self._write_session(
                title=title,
                body=content or self._vault.render("session", title=title),
                session_id=session_id,
                tags=["session", *(tags or [])],
            )
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **note_summary(self._vault, note),
                "session_id": note.frontmatter.get("session_id"),
            },
        )

    def _write_session(
        self,
        *,
        title: str,
        body: str,
        session_id: str | None,
        tags: list[str],
        links: list[str] | None = None,
    ) -> Note:
        now = utc_now()
        path = self._vault.dated_path("sessions", now) / generate_filename(
            NoteType.SESSION, session_id or "session", title, now
        )
        frontmatter = create_frontmatter(
            NoteType.SESSION,
            created_at=format_timestamp(now),
            session_id=session_id or str(uuid4()),
            status="active",
            tags=tags,
            links=links,
            title=title,
        )
        return self._vault.create_note(path, frontmatter, body)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def create_phase(
        self,
        *,
        title: str,
        phase_id: str | None = None,
        goal: str | None = None,
        status: str = PhaseStatus.PLANNED,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        """Create ``phases/<id>/phase.md`` and its subdirectories.

        The new phase becomes the tracker's active phase.
        """
        op = "create_phase"
        warnings: list[str] = []
        pid = phase_id or str(uuid4())
        try:
            if not _PHASE_ID.match(pid):
                raise ValidationError(f"Invalid phase id: {pid!r}")
            phase_dir = self._vault.path("phases", pid)
            frontmatter = create_frontmatter(
                NoteType.PHASE,
                phase_id=pid,
                status=str(status),
                tags=["phase", *(tags or [])],
                title=title,
                goal=goal or "",
            )
            body = self._vault.render("phase", title=title, goal=goal, status=status)
            note = self._vault.create_note(phase_dir / "phase.md", frontmatter, body)
            for subdir in PHASE_SUBDIRS:
                (phase_dir / subdir).mkdir(parents=True, exist_ok=True)
        except (VaultError, OSError) as exc:
            return error_result(op, exc)

        self._update_tracker(warnings, active_phase_id=pid)
        return ServiceResult(
            ok=True,
            op=op,
            data={**note_summary(self._vault, note), "phase_id": pid, "status": str(status)},
            warnings=warnings,
        )

    def create_research(
        self,
        *,
        title: str,
        phase_id: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
    ) -> ServiceResult:
        """Write a research note under ``phases/<id>/research/``."""
        op = "create_research"
        try:
            pid = self._require_phase(phase_id)
            now = utc_now()
            path = self._vault.path("phases", pid, "research") / generate_filename(
                NoteType.RESEARCH, "phase", title, now
            )
            frontmatter = create_frontmatter(
                NoteType.RESEARCH,
                created_at=format_timestamp(now),
                phase_id=pid,
                status="active",
                tags=["research", "phase", *(tags or [])],
                title=title,
            )
            body = content or self._vault.render("research", title=title)
            note = self._vault.create_note(path, frontmatter, body)
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={**note_summary(self._vault, note), "phase_id": pid},
        )

    def _require_phase(self, phase_id: str | None) -> str:
        """Resolve *phase_id* through the tracker and check the phase exists."""
        pid = self._vault.tracker.resolve_phase_id(phase_id)
        if not pid:
            raise ValidationError("No phase given and no active phase recorded")
        if not _PHASE_ID.match(pid) or not self._vault.exists(
            self._vault.path("phases", pid, "phase.md")
        ):
            raise NotFoundError(f"Phase not found: {pid}")
        return pid

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def list_notes(
        self,
        *,
        section: str | None = None,
        note_type: str | None = None,
    ) -> ServiceResult:
        """List notes in one section, or in handoffs, sessions, and phases."""
        op = "list_notes"
        try:
            if section is not None and section not in LIST_SECTIONS:
                msg = f"Unknown section {section!r}; expected one of {', '.join(LIST_SECTIONS)}"
                raise ValidationError(msg)
            sections = (section,) if section else LIST_SECTIONS
            items: list[dict[str, Any]] = []
            for name in sections:
                for path in self._vault.list_notes(name, recursive=True, type_filter=note_type):
                    if not self._vault.contains(path):
                        continue
                    parsed = parse_filename(path.name)
                    items.append(
                        {
                            "path": self._vault.relative(path),
                            "section": name,
                            "type": parsed.type if parsed else None,
                            "created": parsed.timestamp if parsed else None,
                        }
                    )
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    def show(self, path: str) -> ServiceResult:
        """Read one note by vault-relative path."""
        op = "show"
        try:
            note = self._vault.read_note(path)
        except (VaultError, OSError) as exc:
            return error_result(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": self._vault.relative(note.path),
                "frontmatter": note.frontmatter,
                "body": note.body,
            },
        )
