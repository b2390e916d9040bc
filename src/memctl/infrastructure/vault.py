"""Vault: the Note Store and the single dependency handed to every service.

The Vault owns the directory layout, path safety, schema validation, and
backend dispatch. Backends only move bytes; every rule about what may be
written lives here:

- ``create`` validates frontmatter and refuses to overwrite.
- ``update`` validates and requires the note to exist.
- ``write`` validates and creates or replaces (used for index documents).
- every path must stay inside the vault root.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from memctl.domain.errors import NoteExistsError, NotFoundError, ValidationError
from memctl.domain.frontmatter import require_valid
from memctl.domain.types import VAULT_FOLDERS
from memctl.infrastructure.filesystem import FilesystemBackend
from memctl.infrastructure.notesmd import NotesmdBackend
from memctl.infrastructure.templates import build_template_environment, render_note_body
from memctl.infrastructure.tracker import TrackerStore

if TYPE_CHECKING:
    from jinja2 import Environment

    from memctl.config.settings import MemSettings
    from memctl.domain.models import FileStat, Note, SearchHit
    from memctl.infrastructure.backend import NoteBackend

logger = logging.getLogger(__name__)


def build_backend(settings: MemSettings, vault_root: Path) -> NoteBackend:
    """Pick the note backend named by ``[backend]``."""
    fallback = FilesystemBackend(preview_chars=settings.search.preview_chars)
    if not settings.backend.use_notesmd:
        return fallback
    return NotesmdBackend(
        executable=settings.backend.notesmd_path,
        vault_root=vault_root,
        fallback=fallback,
        timeout=settings.backend.timeout_seconds,
    )


class Vault:
    """Note Store over one vault directory."""

    def __init__(self, settings: MemSettings) -> None:
        self._settings = settings
        self._root = settings.resolve_vault_root()
        self._backend = build_backend(settings, self._root)
        self._tracker: TrackerStore | None = None
        self._templates: Environment | None = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def settings(self) -> MemSettings:
        return self._settings

    @property
    def backend(self) -> NoteBackend:
        return self._backend

    @property
    def tracker(self) -> TrackerStore:
        """Tracker State Store for this vault (created lazily)."""
        if self._tracker is None:
            cfg = self._settings.tracker
            self._tracker = TrackerStore(
                self.path("indexes"),
                lock_retries=cfg.lock_retries,
                retry_delay=cfg.lock_retry_delay_ms / 1000,
                stale_after=cfg.stale_lock_seconds,
            )
        return self._tracker

    @property
    def templates(self) -> Environment:
        if self._templates is None:
            self._templates = build_template_environment(vault_root=self._root)
        return self._templates

    def render(self, template: str, **context: Any) -> str:
        """Render the named note body template."""
        return render_note_body(self.templates, template, **context)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def path(self, *segments: str) -> Path:
        """Absolute path of *segments* under the vault root."""
        return self._root.joinpath(*segments)

    def dated_path(self, base: str, when: datetime | None = None) -> Path:
        """``<base>/YYYY/MM`` for *when* (default: now), in UTC."""
        moment = (when or datetime.now(UTC)).astimezone(UTC)
        return self.path(base, f"{moment.year:04d}", f"{moment.month:02d}")

    def ensure_structure(self) -> list[str]:
        """Create any missing top-level folders; return the ones created."""
        created: list[str] = []
        for folder in VAULT_FOLDERS:
            target = self.path(folder)
            if not target.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                created.append(folder)
        if created:
            logger.debug("Created vault folders: %s", ", ".join(created))
        return created

    def resolve(self, path: Path | str) -> Path:
        """Anchor *path* at the vault root and refuse anything outside it."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        resolved = candidate.resolve()
        if not resolved.is_relative_to(self._root):
            raise ValidationError(f"Path escapes vault root: {path}")
        return resolved

    def relative(self, path: Path | str) -> str:
        """Vault-relative POSIX form of *path*, as stored in notes and the tracker."""
        return self.resolve(path).relative_to(self._root).as_posix()

    def contains(self, path: Path | str) -> bool:
        """Whether *path* resolves inside the vault root, symlinks followed."""
        try:
            self.resolve(path)
        except ValidationError:
            return False
        return True

    def display_path(self, path: Path | str) -> str:
        """Vault-relative label for *path* without following symlinks.

        Used when reporting entries that :meth:`relative` refuses.
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        try:
            return candidate.relative_to(self._root).as_posix()
        except ValueError:
            return str(path)

    # ------------------------------------------------------------------
    # Note Store operations
    # ------------------------------------------------------------------

    def create_note(self, path: Path | str, frontmatter: dict[str, Any], body: str) -> Note:
        """Write a new note. Raises if the path is taken or frontmatter is incomplete."""
        target = self.resolve(path)
        require_valid(frontmatter)
        if self._backend.exists(target):
            raise NoteExistsError(f"Note already exists: {self.relative(target)}")
        note = self._backend.create(target, frontmatter, body)
        logger.debug("Created note %s", target)
        return note

    def read_note(self, path: Path | str) -> Note:
        target = self.resolve(path)
        if not self._backend.exists(target):
            raise NotFoundError(f"Note not found: {self.relative(target)}")
        return self._backend.read(target)

    def update_note(self, path: Path | str, frontmatter: dict[str, Any], body: str) -> Note:
        """Replace an existing note's content."""
        target = self.resolve(path)
        if not self._backend.exists(target):
            raise NotFoundError(f"Note not found: {self.relative(target)}")
        require_valid(frontmatter)
        return self._backend.update(target, frontmatter, body)

    def write_note(self, path: Path | str, frontmatter: dict[str, Any], body: str) -> Note:
        """Create or replace a note (used for derived index documents)."""
        target = self.resolve(path)
        require_valid(frontmatter)
        if self._backend.exists(target):
            return self._backend.update(target, frontmatter, body)
        return self._backend.create(target, frontmatter, body)

    def delete_note(self, path: Path | str) -> None:
        """Remove a note file. Raises :class:`OSError` on failure.

        A symlinked note is removed itself, never the file it points at.
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        if candidate.name in ("", ".."):
            raise ValidationError(f"Not a note path: {path}")
        target = self.resolve(candidate.parent) / candidate.name
        target.unlink()
        logger.debug("Deleted note %s", target)

    def list_notes(
        self,
        directory: Path | str,
        *,
        recursive: bool = False,
        type_filter: str | None = None,
        pattern: str | re.Pattern[str] | None = None,
    ) -> list[Path]:
        """Absolute paths of notes under *directory*, in traversal order."""
        target = self.resolve(directory)
        paths = self._backend.list(
            target, recursive=recursive, type_filter=type_filter, pattern=pattern
        )
        return [p if p.is_absolute() else self._root / p for p in paths]

    def search_notes(
        self,
        directory: Path | str,
        query: str,
        *,
        case_sensitive: bool = False,
        recursive: bool = True,
    ) -> list[SearchHit]:
        target = self.resolve(directory)
        hits = self._backend.search(
            target, query, case_sensitive=case_sensitive, recursive=recursive
        )
        return [hit for hit in hits if self.contains(hit.path)]

    def stat(self, path: Path | str) -> FileStat | None:
        return self._backend.stat(self.resolve(path))

    def exists(self, path: Path | str) -> bool:
        return self._backend.exists(self.resolve(path))
