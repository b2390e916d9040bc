"""Value objects passed between the store, its backends, and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Note:
    """A single note file: metadata header plus free-text body.

    The path is derived from where the file lives; ``id`` in the
    frontmatter is the durable identity.
    """

    path: Path
    frontmatter: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    @property
    def id(self) -> str | None:
        value = self.frontmatter.get("id")
        return str(value) if value is not None else None

    @property
    def type(self) -> str | None:
        value = self.frontmatter.get("type")
        return str(value) if value is not None else None

    @property
    def title(self) -> str | None:
        value = self.frontmatter.get("title")
        return str(value) if value is not None else None

    @property
    def stem(self) -> str:
        """Filename without ``.md``, the wikilink target."""
        return self.path.stem


@dataclass(frozen=True)
class FileStat:
    """Modification time (aware UTC) and size of a note file."""

    mtime: datetime
    size: int


@dataclass(frozen=True)
class SearchHit:
    """One matching note from a content search."""

    path: Path
    match_count: int
    preview: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "matches": self.match_count, "preview": self.preview}
