"""Shared service-layer helper functions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from memctl.domain.models import Note
    from memctl.infrastructure.vault import Vault


def split_csv(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items.

    Examples:
        >>> split_csv("a, b,,c")
        ['a', 'b', 'c']
        >>> split_csv(None)
        []
    """
    if not value:
        return []
    parts = value.split(",") if isinstance(value, str) else list(value)
    return [p.strip() for p in parts if p and p.strip()]


def note_summary(vault: Vault, note: Note) -> dict[str, Any]:
    """The identifying fields of *note* for a result payload."""
    return {
        "path": vault.relative(note.path),
        "id": note.id,
        "type": note.type,
        "title": note.title,
    }
