"""Filename convention for conventional notes.

Format (bit-exact)::

    YYYYMMDD-HHmmssZ--<type>--<scope>--<slug>.md

The timestamp has one-second resolution, so two notes with the same
(type, scope, slug) created within the same second share a filename.
Slugs are not injective either; the frontmatter ``id`` is the identity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime

from memctl.domain.errors import ValidationError

_FILENAME_PATTERN = re.compile(r"^(\d{8}-\d{6}Z)--(.+?)--(.+?)--(.+)\.md$")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%SZ"
UNTITLED_SLUG = "untitled"


@dataclass(frozen=True)
class ParsedFilename:
    """Components recovered from a conventional filename."""

    timestamp: str
    type: str
    scope: str
    slug: str
    date: datetime


def slugify(text: str) -> str:
    """Lower-case *text*, collapse non-alphanumeric runs to ``-``, trim hyphens."""
    return _SLUG_INVALID.sub("-", text.lower()).strip("-")


def format_file_timestamp(moment: datetime) -> str:
    """Render *moment* as ``YYYYMMDD-HHmmssZ`` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def generate_filename(
    note_type: str,
    scope: str,
    slug: str,
    now: datetime | None = None,
) -> str:
    """Build the conventional filename for a note created at *now*.

    Scope and slug are both slugified, so the name never contains a path
    separator or an extra ``--``. An empty slug becomes ``untitled``; an
    empty scope is a :class:`ValidationError`.
    """
    scope_part = slugify(scope)
    if not scope_part:
        raise ValidationError(f"Invalid filename scope: {scope!r}")
    moment = now or datetime.now(UTC)
    slug_part = slugify(slug) or UNTITLED_SLUG
    return f"{format_file_timestamp(moment)}--{note_type}--{scope_part}--{slug_part}.md"


def parse_filename(filename: str) -> ParsedFilename | None:
    """Invert :func:`generate_filename`. Malformed names return None."""
    match = _FILENAME_PATTERN.match(filename)
    if match is None:
        return None
    timestamp, note_type, scope, slug = match.groups()
    try:
        date = datetime.strptime(timestamp, _TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None
    return ParsedFilename(timestamp=timestamp, type=note_type, scope=scope, slug=slug, date=date)
