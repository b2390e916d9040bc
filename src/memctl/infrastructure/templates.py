"""Jinja2 template loading with per-vault override support."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader

TEMPLATE_SUFFIX = ".md.j2"


def build_template_environment(*, vault_root: Path | None = None) -> Environment:
    """Build a Jinja2 environment with vault overrides before packaged defaults.

    Overrides are read from ``<vault>/templates/``, so a vault can replace
    ``handoff.md.j2`` without touching the package.
    """
    loaders: list[BaseLoader] = []
    if vault_root is not None:
        loaders.append(FileSystemLoader(str(vault_root / "templates")))
    loaders.append(PackageLoader("memctl", "templates/notes"))
    return Environment(
        loader=ChoiceLoader(loaders),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_note_body(env: Environment, name: str, **context: Any) -> str:
    """Render the ``<name>.md.j2`` note body template."""
    return env.get_template(f"{name}{TEMPLATE_SUFFIX}").render(**context)
