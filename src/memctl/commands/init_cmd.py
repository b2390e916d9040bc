"""Command: vault initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from memctl.commands._base import MemCommand, tags_option
from memctl.services._helpers import split_csv
from memctl.services.onboarding import INIT_MODES, OnboardingService

if TYPE_CHECKING:
    from memctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  memctl init
  memctl init --mode greenfield --idea "CLI for budgeting" --stack "python,sqlite"
  memctl init --mode greenfield --idea "Chat bot" --research "hosting?,auth?"
  memctl init --mode brownfield --path ~/src/legacy-app
  memctl --vault /tmp/vault init"""


@click.command("init", cls=MemCommand, examples=_INIT_EXAMPLES)
@click.option(
    "--mode",
    type=click.Choice(INIT_MODES, case_sensitive=False),
    default=None,
    help="Also write a greenfield (new idea) or brownfield (existing code) note.",
)
@click.option("--idea", default=None, help="Greenfield: project idea or goal.")
@click.option("--stack", default=None, help="Greenfield: comma-separated tech stack.")
@click.option("--constraints", default=None, help="Greenfield: constraints and requirements.")
@click.option("--research", default=None, help="Greenfield: comma-separated research questions.")
@click.option(
    "--path",
    "source_path",
    type=click.Path(file_okay=False),
    default=None,
    help="Brownfield: codebase to analyze (default: current directory).",
)
@click.option("--session", "session_id", default=None, help="Session id for the note.")
@tags_option
@click.pass_obj
def init_cmd(
    app: AppContext,
    mode: str | None,
    idea: str | None,
    stack: str | None,
    constraints: str | None,
    research: str | None,
    source_path: str | None,
    session_id: str | None,
    tags: str | None,
) -> None:
    """Create the vault folders, optionally with an onboarding note."""
    options: dict[str, Any] = {"session_id": session_id, "tags": split_csv(tags)}
    if mode == "greenfield":
        options.update(
            idea=idea,
            stack=split_csv(stack),
            constraints=constraints,
            research=split_csv(research),
        )
    elif mode == "brownfield":
        options["path"] = source_path
    app.emit(OnboardingService(app.vault).init_vault(mode=mode, **options))
