"""Commands: ``handoff``, ``resume``, and ``session`` for session continuity."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memctl.commands._base import MemCommand, tags_option
from memctl.services._helpers import split_csv
from memctl.services.notes import NoteService

if TYPE_CHECKING:
    from memctl.commands._context import AppContext

_HANDOFF_EXAMPLES = """\
  memctl handoff --title "Auth refactor" --content "Token refresh done, tests pending"
  git diff --stat | memctl handoff --title "End of day" --stdin
  memctl --json handoff --session s-42 --title "Context for next run"
  memctl handoff --title "Phase wrap" --phase phase-2 --tags auth,backend"""

_RESUME_EXAMPLES = """\
  memctl resume
  memctl --json resume"""


@click.command("handoff", cls=MemCommand, examples=_HANDOFF_EXAMPLES)
@click.option("--title", default=None, help="Handoff title (default: 'Work Handoff').")
@click.option("--content", default=None, help="Handoff body (default: a template).")
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the body from stdin.")
@click.option("--session", "session_id", default=None, help="Session id to record.")
@click.option("--phase", "phase_id", default=None, help="Phase to associate and mark active.")
@tags_option
@click.pass_obj
def handoff(
    app: AppContext,
    title: str | None,
    content: str | None,
    from_stdin: bool,
    session_id: str | None,
    phase_id: str | None,
    tags: str | None,
) -> None:
    """Write a handoff note and make it the latest handoff."""
    if from_stdin:
        content = click.get_text_stream("stdin").read()
    result = NoteService(app.vault).create_handoff(
        title=title,
        content=content,
        session_id=session_id,
        phase_id=phase_id,
        tags=split_csv(tags),
    )
    app.emit(result)


@click.command("resume", cls=MemCommand, examples=_RESUME_EXAMPLES)
@click.pass_obj
def resume(app: AppContext) -> None:
    """Start a session note from the latest handoff."""
    app.emit(NoteService(app.vault).resume())


@click.command("session", cls=MemCommand)
@click.option("--title", required=True, help="Session title.")
@click.option("--content", default=None, help="Session body (default: a template).")
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the body from stdin.")
@click.option("--session", "session_id", default=None, help="Session id (default: a new UUID).")
@tags_option
@click.pass_obj
def session(
    app: AppContext,
    title: str,
    content: str | None,
    from_stdin: bool,
    session_id: str | None,
    tags: str | None,
) -> None:
    """Write a standalone session note."""
    if from_stdin:
        content = click.get_text_stream("stdin").read()
    result = NoteService(app.vault).create_session(
        title=title, content=content, session_id=session_id, tags=split_csv(tags)
    )
    app.emit(result)
