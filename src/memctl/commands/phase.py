"""Command group: phase management (create, research, handoff)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memctl.commands._base import MemGroup, tags_option
from memctl.domain.types import PhaseStatus
from memctl.services._helpers import split_csv
from memctl.services.notes import NoteService

if TYPE_CHECKING:
    from memctl.commands._context import AppContext

_PHASE_EXAMPLES = """\
  memctl phase create --id phase-1 --title "Storage layer" --goal "Pick and wire a store"
  memctl phase research --title "SQLite vs files" --content "..."
  memctl phase handoff --title "Storage decided"
  memctl phase handoff --phase phase-1 --stdin < notes.md"""


@click.group(cls=MemGroup, examples=_PHASE_EXAMPLES)
def phase() -> None:
    """Phases: named units of work with their own research and handoffs.

    Subcommands that take --phase default to the active phase recorded in
    the tracker.
    """


@phase.command("create")
@click.option("--id", "phase_id", default=None, help="Phase id (default: a new UUID).")
@click.option("--title", required=True, help="Phase title.")
@click.option("--goal", default=None, help="What the phase should achieve.")
@click.option(
    "--status",
    type=click.Choice([s.value for s in PhaseStatus]),
    default=PhaseStatus.PLANNED.value,
    show_default=True,
    help="Initial status.",
)
@tags_option
@click.pass_obj
def create(
    app: AppContext,
    phase_id: str | None,
    title: str,
    goal: str | None,
    status: str,
    tags: str | None,
) -> None:
    """Create a phase and make it the active phase."""
    result = NoteService(app.vault).create_phase(
        phase_id=phase_id,
        title=title,
        goal=goal,
        status=status,
        tags=split_csv(tags),
    )
    app.emit(result)


@phase.command("research")
@click.option("--phase", "phase_id", default=None, help="Phase id (default: active phase).")
@click.option("--title", required=True, help="Research note title.")
@click.option("--content", default=None, help="Note body (default: a template).")
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the body from stdin.")
@tags_option
@click.pass_obj
def research(
    app: AppContext,
    phase_id: str | None,
    title: str,
    content: str | None,
    from_stdin: bool,
    tags: str | None,
) -> None:
    """Add a research note to a phase."""
    if from_stdin:
        content = click.get_text_stream("stdin").read()
    result = NoteService(app.vault).create_research(
        phase_id=phase_id,
        title=title,
        content=content,
        tags=split_csv(tags),
    )
    app.emit(result)


@phase.command("handoff")
@click.option("--phase", "phase_id", default=None, help="Phase id (default: active phase).")
@click.option("--title", default=None, help="Handoff title (default: 'Work Handoff').")
@click.option("--content", default=None, help="Handoff body (default: a template).")
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the body from stdin.")
@click.option("--session", "session_id", default=None, help="Session id to record.")
@tags_option
@click.pass_obj
def phase_handoff(
    app: AppContext,
    phase_id: str | None,
    title: str | None,
    content: str | None,
    from_stdin: bool,
    session_id: str | None,
    tags: str | None,
) -> None:
    """Write a phase-scoped handoff; it also becomes the latest handoff."""
    if from_stdin:
        content = click.get_text_stream("stdin").read()
    result = NoteService(app.vault).create_phase_handoff(
        phase_id=phase_id,
        title=title,
        content=content,
        session_id=session_id,
        tags=split_csv(tags),
    )
    app.emit(result)
