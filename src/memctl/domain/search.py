"""Literal text matching and preview extraction for content search.

Search is a live linear scan: no index, no ranking. The query is escaped
before compilation so it always matches literally.
"""

from __future__ import annotations

import re

PREVIEW_CONTEXT = 100
ELLIPSIS = "..."


def compile_query(query: str, *, case_sensitive: bool = False) -> re.Pattern[str]:
    """Compile *query* as a literal (escaped) pattern."""
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(re.escape(query), flags)


def extract_preview(text: str, index: int, context: int = PREVIEW_CONTEXT) -> str:
    """Return the window ``text[index - context : index + context]``.

    Ellipsis markers are added on each side where the window was cut short
    of the text boundary.
    """
    start = max(0, index - context)
    end = min(len(text), index + context)
    preview = text[start:end]
    if start > 0:
        preview = ELLIPSIS + preview
    if end < len(text):
        preview = preview + ELLIPSIS
    return preview


def scan_text(
    text: str,
    pattern: re.Pattern[str],
    *,
    context: int = PREVIEW_CONTEXT,
) -> tuple[int, str] | None:
    """Count matches of *pattern* in *text* and preview the first one.

    Returns ``(match_count, preview)`` or None when nothing matches.
    """
    first: re.Match[str] | None = None
    count = 0
    for match in pattern.finditer(text):
        if first is None:
            first = match
        count += 1
    if first is None:
        return None
    return count, extract_preview(text, first.start(), context)
