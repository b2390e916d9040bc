"""Direct filesystem backend for note operations.

Pure parsing/rendering lives in :mod:`memctl.domain.frontmatter`; this
module handles the actual file I/O and directory traversal.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from memctl.domain.errors import NotFoundError
from memctl.domain.filenames import parse_filename
from memctl.domain.frontmatter import parse_frontmatter, render_frontmatter
from memctl.domain.models import FileStat, Note, SearchHit
from memctl.domain.search import PREVIEW_CONTEXT, compile_query, scan_text

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def read_note_file(path: Path) -> Note:
    """Read and parse a markdown note. Raises :class:`NotFoundError` if absent."""
    try:
        content = path.read_bytes().decode("utf-8")
    except FileNotFoundError as exc:
        raise NotFoundError(f"Note not found: {path}") from exc
    frontmatter, body = parse_frontmatter(content)
    return Note(path=path, frontmatter=frontmatter, body=body)


def write_note_file(path: Path, frontmatter: dict[str, Any], body: str) -> Note:
    """Render and write a note, creating parent directories as needed."""
    rendered = render_frontmatter(frontmatter, body)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(rendered, encoding="utf-8", newline="")
    return Note(path=path, frontmatter=dict(frontmatter), body=body)


class FilesystemBackend:
    """Notes materialized directly as files under the vault."""

    def __init__(self, *, preview_chars: int = PREVIEW_CONTEXT) -> None:
        self._preview_chars = preview_chars

    def create(self, path: Path, frontmatter: dict[str, Any], body: str) -> Note:
        return write_note_file(path, frontmatter, body)

    def read(self, path: Path) -> Note:
        return read_note_file(path)

    def update(self, path: Path, frontmatter: dict[str, Any], body: str) -> Note:
        return write_note_file(path, frontmatter, body)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def list(
        self,
        directory: Path,
        *,
        recursive: bool = False,
        type_filter: str | None = None,
        pattern: str | re.Pattern[str] | None = None,
    ) -> list[Path]:
        """List ``*.md`` files under *directory* in sorted traversal order.

        *type_filter* matches the type segment of conventional filenames,
        falling back to the frontmatter ``type`` for other names.
        *pattern* is searched against the filename.
        """
        if not directory.is_dir():
            return []
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        results: list[Path] = []
        self._scan(directory, recursive, results)
        return [
            path
            for path in results
            if (regex is None or regex.search(path.name))
            and (type_filter is None or self._has_type(path, type_filter))
        ]

    def _scan(self, directory: Path, recursive: bool, results: list[Path]) -> None:
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                if recursive:
                    self._scan(entry, recursive, results)
            elif entry.is_file() and entry.suffix == NOTE_SUFFIX:
                results.append(entry)

    @staticmethod
    def _has_type(path: Path, note_type: str) -> bool:
        parsed = parse_filename(path.name)
        if parsed is not None:
            return parsed.type == note_type
        try:
            note = read_note_file(path)
        except (OSError, UnicodeDecodeError, NotFoundError):
            return False
        return note.type == note_type

    def search(
        self,
        directory: Path,
        query: str,
        *,
        case_sensitive: bool = False,
        recursive: bool = True,
    ) -> list[SearchHit]:
        """Scan every note body under *directory* for *query* (literal match).

        Unreadable files are skipped rather than reported.
        """
        pattern = compile_query(query, case_sensitive=case_sensitive)
        hits: list[SearchHit] = []
        for path in self.list(directory, recursive=recursive):
            try:
                note = read_note_file(path)
            except (OSError, UnicodeDecodeError, NotFoundError) as exc:
                logger.debug("Skipping unreadable note %s: %s", path, exc)
                continue
            found = scan_text(note.body, pattern, context=self._preview_chars)
            if found is None:
                continue
            count, preview = found
            hits.append(SearchHit(path=path, match_count=count, preview=preview))
        return hits

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def stat(self, path: Path) -> FileStat | None:
        try:
            info = path.stat()
        except FileNotFoundError:
            return None
        return FileStat(mtime=datetime.fromtimestamp(info.st_mtime, UTC), size=info.st_size)

    def exists(self, path: Path) -> bool:
        return path.exists()
