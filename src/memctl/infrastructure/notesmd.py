"""``notesmd-cli`` backend with transparent filesystem fallback.

Availability is probed once per process and executable (memoized). Every
operation then dispatches to the external tool first and falls back to the
filesystem backend on any failure:

- create / read / search: best-effort through ``notesmd-cli``.
- list: only plain non-recursive listings go through ``notesmd-cli``.
- update, recursive or filtered listing, stat, exists: always direct.

A missing binary or a failing command never interrupts vault operations.
"""

from __future__ import annotations

import functools
import logging
import re
import subprocess
from pathlib import Path
from typing import Any

from memctl.domain.frontmatter import parse_frontmatter, render_frontmatter
from memctl.domain.models import FileStat, Note, SearchHit
from memctl.infrastructure.filesystem import FilesystemBackend

logger = logging.getLogger(__name__)

_SEARCH_LINE = re.compile(r"^([^:]+):(\d+):(.*)$")


@functools.cache
def probe_notesmd(executable: str, timeout: float = 5.0) -> bool:
    """Return True if ``<executable> --version`` runs successfully."""
    try:
        subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("notesmd not available (%s), using filesystem fallback", exc)
        return False
    return True


class NotesmdBackend:
    """Dispatch to ``notesmd-cli`` with a :class:`FilesystemBackend` fallback."""

    def __init__(
        self,
        *,
        executable: str,
        vault_root: Path,
        fallback: FilesystemBackend | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._executable = executable
        self._vault_root = vault_root
        self._fallback = fallback or FilesystemBackend()
        self._timeout = timeout

    @property
    def available(self) -> bool:
        return probe_notesmd(self._executable)

    # ------------------------------------------------------------------
    # Best-effort operations
    # ------------------------------------------------------------------

    def create(self, path: Path, frontmatter: dict[str, Any], body: str) -> Note:
        if self.available:
            try:
                self._run("create", str(path), stdin=render_frontmatter(frontmatter, body))
                return Note(path=path, frontmatter=dict(frontmatter), body=body)
            except (OSError, subprocess.SubprocessError) as exc:
                logger.warning("notesmd-cli create failed (%s), using filesystem fallback", exc)
        return self._fallback.create(path, frontmatter, body)

    def read(self, path: Path) -> Note:
        if self.available:
            try:
                result = self._run("print", str(path))
                frontmatter, body = parse_frontmatter(result.stdout)
                return Note(path=path, frontmatter=frontmatter, body=body)
            except (OSError, subprocess.SubprocessError) as exc:
                logger.warning("notesmd-cli print failed (%s), using filesystem fallback", exc)
        return self._fallback.read(path)

    def search(
        self,
        directory: Path,
        query: str,
        *,
        case_sensitive: bool = False,
        recursive: bool = True,
    ) -> list[SearchHit]:
        if self.available:
            args = ["search-content", str(directory), query]
            if case_sensitive:
                args.append("--case-sensitive")
            try:
                return self._parse_search(self._run(*args).stdout)
            except (OSError, subprocess.SubprocessError) as exc:
                logger.warning(
                    "notesmd-cli search-content failed (%s), using filesystem fallback", exc
                )
        return self._fallback.search(
            directory, query, case_sensitive=case_sensitive, recursive=recursive
        )

    def list(
        self,
        directory: Path,
        *,
        recursive: bool = False,
        type_filter: str | None = None,
        pattern: str | re.Pattern[str] | None = None,
    ) -> list[Path]:
        plain = not recursive and type_filter is None and pattern is None
        if plain and self.available:
            try:
                output = self._run("list", str(directory)).stdout
                return [Path(line.strip()) for line in output.splitlines() if line.strip()]
            except (OSError, subprocess.SubprocessError) as exc:
                logger.warning("notesmd-cli list failed (%s), using filesystem fallback", exc)
        elif not plain and self.available:
            logger.debug("notesmd-cli cannot list recursively or by filter, using filesystem")
        return self._fallback.list(
            directory, recursive=recursive, type_filter=type_filter, pattern=pattern
        )

    # ------------------------------------------------------------------
    # Always direct
    # ------------------------------------------------------------------

    def update(self, path: Path, frontmatter: dict[str, Any], body: str) -> Note:
        return self._fallback.update(path, frontmatter, body)

    def stat(self, path: Path) -> FileStat | None:
        return self._fallback.stat(path)

    def exists(self, path: Path) -> bool:
        return self._fallback.exists(path)

    # ------------------------------------------------------------------
    # Subprocess helpers
    # ------------------------------------------------------------------

    def _run(self, *args: str, stdin: str | None = None) -> subprocess.CompletedProcess[str]:
        """Run a notesmd-cli command in the vault root. Raises on failure."""
        return subprocess.run(
            [self._executable, *args],
            cwd=self._vault_root,
            input=stdin,
            capture_output=True,
            text=True,
            check=True,
            timeout=self._timeout,
        )

    @staticmethod
    def _parse_search(output: str) -> list[SearchHit]:
        """Fold ``path:line:content`` lines into one hit per path."""
        counts: dict[str, int] = {}
        previews: dict[str, str] = {}
        for line in output.splitlines():
            match = _SEARCH_LINE.match(line.strip())
            if match is None:
                continue
            path, _line_no, content = match.groups()
            counts[path] = counts.get(path, 0) + 1
            previews.setdefault(path, content.strip())
        return [
            SearchHit(path=Path(path), match_count=count, preview=previews[path])
            for path, count in counts.items()
        ]
