"""Rich Console factory and theme for memctl output.

Consoles render into a StringIO buffer so renderers keep a
``render -> str`` contract. Outside a terminal (tests, pipes) Rich emits
no color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

MEM_THEME = Theme(
    {
        "mem.ok": "bold green",
        "mem.error": "bold red",
        "mem.warning": "bold yellow",
        "mem.op": "bold cyan",
        "mem.key": "dim",
        "mem.id": "bold blue",
        "mem.path": "dim",
        "mem.title": "bold",
        "mem.type.handoff": "magenta",
        "mem.type.session": "cyan",
        "mem.type.phase": "green",
        "mem.type.research": "blue",
        "mem.type.index": "dim",
        "mem.count": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=MEM_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Rendered text of a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_type(note_type: str | None) -> str:
    """Rich style name for a note type, or ``""``."""
    if not note_type:
        return ""
    style = f"mem.type.{note_type}"
    return style if style in MEM_THEME.styles else ""
