"""Note backend interface.

Both the direct filesystem backend and the ``notesmd-cli`` backend expose
the same operations with identical signatures. The Vault layers path
guarding, schema validation, and overwrite protection on top.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Protocol

from memctl.domain.models import FileStat, Note, SearchHit


class NoteBackend(Protocol):
    """Storage operations over note files addressed by path."""

    def create(self, path: Path, frontmatter: dict[str, Any], body: str) -> Note: ...

    def read(self, path: Path) -> Note: ...

    def update(self, path: Path, frontmatter: dict[str, Any], body: str) -> Note: ...

    def list(
        self,
        directory: Path,
        *,
        recursive: bool = False,
        type_filter: str | None = None,
        pattern: str | re.Pattern[str] | None = None,
    ) -> list[Path]: ...

    def search(
        self,
        directory: Path,
        query: str,
        *,
        case_sensitive: bool = False,
        recursive: bool = True,
    ) -> list[SearchHit]: ...

    def stat(self, path: Path) -> FileStat | None: ...

    def exists(self, path: Path) -> bool: ...
