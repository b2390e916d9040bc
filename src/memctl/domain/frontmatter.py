"""Frontmatter codec and schema.

The on-disk contract is a strict line grammar, not general YAML::

    ---
    key: scalar
    empty_list: []
    list_key:
      - scalar
    ---

    body...

Scalars are ``null``, ``true``/``false``, integers, decimals, JSON-quoted
strings, or bare strings. A string is written quoted whenever its bare form
would decode to something else, so every value round-trips exactly.

Parsing is lenient: a block that breaks the grammar yields an empty mapping
rather than an error, so diagnostics still work on damaged files.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from memctl.domain.errors import ValidationError
from memctl.domain.timestamps import now_timestamp
from memctl.domain.types import NoteType

_FRONTMATTER_DELIMITER = "---"

_KEY_LINE = re.compile(r"^([A-Za-z_][A-Za-z0-9_-]*):(?:[ \t]+(.*))?$")
_ITEM_LINE = re.compile(r"^[ \t]+-[ \t]+(.*)$")
_INT = re.compile(r"^-?(?:0|[1-9][0-9]*)$")
_FLOAT = re.compile(r"^-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:e[+-]?[0-9]+)?$")

REQUIRED_FIELDS: tuple[str, ...] = (
    "id",
    "type",
    "created_at",
    "updated_at",
    "session_id",
    "phase_id",
    "status",
    "tags",
    "links",
)

CANONICAL_KEY_ORDER: list[str] = [
    "id",
    "type",
    "title",
    "created_at",
    "updated_at",
    "session_id",
    "phase_id",
    "status",
    "tags",
    "links",
]


class FrontmatterSyntaxError(ValueError):
    """A frontmatter line does not match the grammar."""


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class NoteFrontmatter(BaseModel):
    """Required frontmatter fields plus an open map of type-specific extras."""

    model_config = {"frozen": True, "extra": "allow"}

    id: str
    type: NoteType
    created_at: str
    updated_at: str
    session_id: str | None
    phase_id: str | None
    status: str
    tags: list[str]
    links: list[str]


@dataclass(frozen=True)
class FrontmatterCheck:
    """Result of validating a frontmatter mapping."""

    valid: bool
    missing: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def check_frontmatter(fm: dict[str, Any]) -> FrontmatterCheck:
    """Report missing required keys and schema violations without raising."""
    missing = [name for name in REQUIRED_FIELDS if name not in fm]
    if missing:
        return FrontmatterCheck(valid=False, missing=missing)
    try:
        NoteFrontmatter.model_validate(fm)
    except PydanticValidationError as exc:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        return FrontmatterCheck(valid=False, errors=errors)
    return FrontmatterCheck(valid=True)


def require_valid(fm: dict[str, Any]) -> None:
    """Raise :class:`ValidationError` unless *fm* satisfies the schema."""
    result = check_frontmatter(fm)
    if result.missing:
        msg = f"Missing required frontmatter fields: {', '.join(result.missing)}"
        raise ValidationError(msg, missing=result.missing)
    if result.errors:
        raise ValidationError(f"Invalid frontmatter: {'; '.join(result.errors)}")


def ordered_unique(values: Any) -> list[str]:
    """Drop duplicates from *values*, keeping the first occurrence."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values or ():
        item = str(value)
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def create_frontmatter(
    note_type: str,
    *,
    id: str | None = None,
    created_at: str | None = None,
    updated_at: str | None = None,
    session_id: str | None = None,
    phase_id: str | None = None,
    status: str = "active",
    tags: Any = None,
    links: Any = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a complete frontmatter mapping with defaults filled in."""
    now = now_timestamp()
    created = created_at or now
    fm: dict[str, Any] = {
        "id": id or str(uuid4()),
        "type": str(note_type),
        "created_at": created,
        "updated_at": updated_at or created,
        "session_id": session_id or None,
        "phase_id": phase_id or None,
        "status": status,
        "tags": ordered_unique(tags),
        "links": ordered_unique(links),
    }
    fm.update(extra)
    return fm


# ---------------------------------------------------------------------------
# Scalar encoding
# ---------------------------------------------------------------------------


def _decode_scalar(raw: str) -> Any:
    text = raw.strip()
    if text == "null":
        return None
    if text == "true":
        return True
    if text == "false":
        return False
    if _INT.match(text):
        return int(text)
    if _FLOAT.match(text):
        return float(text)
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        try:
            value = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FrontmatterSyntaxError(f"Bad quoted string: {text}") from exc
        if not isinstance(value, str):
            raise FrontmatterSyntaxError(f"Bad quoted string: {text}")
        return value
    return text


def _encode_scalar(key: str, value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"Non-finite frontmatter value for {key!r}: {value!r}")
        return repr(value)
    if isinstance(value, str):
        needs_quotes = (
            value == ""
            or value != value.strip()
            or "\n" in value
            or "\r" in value
            or value == "[]"
            or value.startswith('"')
            or _decode_scalar(value) != value
        )
        return json.dumps(value, ensure_ascii=False) if needs_quotes else value
    msg = f"Unsupported frontmatter value for {key!r}: {type(value).__name__}"
    raise ValidationError(msg)


# ---------------------------------------------------------------------------
# Parse / render
# ---------------------------------------------------------------------------


def _parse_block(lines: list[str]) -> dict[str, Any]:
    fm: dict[str, Any] = {}
    current_list: list[Any] | None = None
    for line in lines:
        if not line.strip():
            continue
        item = _ITEM_LINE.match(line)
        if item is not None:
            if current_list is None:
                raise FrontmatterSyntaxError(f"List item outside a list: {line!r}")
            current_list.append(_decode_scalar(item.group(1)))
            continue
        kv = _KEY_LINE.match(line)
        if kv is None:
            raise FrontmatterSyntaxError(f"Unrecognized line: {line!r}")
        key, raw = kv.group(1), kv.group(2)
        if key in fm:
            raise FrontmatterSyntaxError(f"Duplicate key: {key!r}")
        if raw is None or not raw.strip():
            current_list = []
            fm[key] = current_list
        elif raw.strip() == "[]":
            current_list = None
            fm[key] = []
        else:
            current_list = None
            fm[key] = _decode_scalar(raw)
    return fm


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split markdown *content* into ``(frontmatter, body)``.

    Returns ``({}, content)`` when there is no delimited block, and
    ``({}, body)`` when the block exists but breaks the grammar.
    Line endings are only normalized inside the block; the body is sliced
    from the original text and keeps its own line endings.
    """
    lines = content.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return {}, content

    end_idx: int | None = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            end_idx = i
            break

    if end_idx is None:
        return {}, content

    body = "\n".join(lines[end_idx + 1 :])
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]

    try:
        fm = _parse_block([line.rstrip("\r") for line in lines[1:end_idx]])
    except FrontmatterSyntaxError:
        return {}, body
    return fm, body


def order_frontmatter(fm: dict[str, Any]) -> dict[str, Any]:
    """Return *fm* with canonical keys first, then the rest alphabetically."""
    ordered: dict[str, Any] = {}
    for key in CANONICAL_KEY_ORDER:
        if key in fm:
            ordered[key] = fm[key]
    for key in sorted(fm.keys()):
        if key not in ordered:
            ordered[key] = fm[key]
    return ordered


def render_frontmatter(fm: dict[str, Any], body: str) -> str:
    """Serialize *fm* and *body* into a note file."""
    lines = [_FRONTMATTER_DELIMITER]
    for key, value in order_frontmatter(fm).items():
        if not _KEY_LINE.match(f"{key}: x"):
            raise ValidationError(f"Invalid frontmatter key: {key!r}")
        if isinstance(value, (list, tuple)):
            if not value:
                lines.append(f"{key}: []")
                continue
            lines.append(f"{key}:")
            lines.extend(f"  - {_encode_scalar(key, item)}" for item in value)
        else:
            lines.append(f"{key}: {_encode_scalar(key, value)}")
    lines.append(_FRONTMATTER_DELIMITER)
    lines.append("")
    return "\n".join(lines) + "\n" + body
