"""Command group: vault maintenance and retrieval.

``memory`` is an alias group sharing the same subcommands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memctl.commands._base import MemGroup
from memctl.services._helpers import split_csv
from memctl.services.doctor import DoctorService
from memctl.services.index import IndexService
from memctl.services.notes import LIST_SECTIONS, NoteService
from memctl.services.prune import PruneService
from memctl.services.search import SearchService
from memctl.services.tracker import TrackerService

if TYPE_CHECKING:
    from memctl.commands._context import AppContext

_VAULT_EXAMPLES = """\
  memctl vault index
  memctl vault search "token refresh"
  memctl vault list --section handoffs
  memctl vault doctor --fix
  memctl vault prune --days 14 --dry-run
  memctl memory tracker --phase phase-2"""


@click.group(cls=MemGroup, examples=_VAULT_EXAMPLES)
def vault() -> None:
    """Indexes, search, listing, pruning, health checks, and the tracker."""


@vault.command(
    examples="""\
  memctl vault index
  memctl --json vault index"""
)
@click.pass_obj
def index(app: AppContext) -> None:
    """Regenerate the catalog and phase summary indexes."""
    app.emit(IndexService(app.vault).regenerate())


@vault.command(
    examples="""\
  memctl vault search "auth"
  memctl vault search "TODO" --dir phases --case-sensitive
  memctl vault search "deploy" --dir handoffs --no-recursive"""
)
@click.argument("query")
@click.option("--dir", "directory", default=None, help="Vault-relative directory to search.")
@click.option("--case-sensitive", is_flag=True, help="Match case exactly.")
@click.option(
    "--recursive/--no-recursive", default=True, show_default=True, help="Descend into subfolders."
)
@click.pass_obj
def search(
    app: AppContext,
    query: str,
    directory: str | None,
    case_sensitive: bool,
    recursive: bool,
) -> None:
    """Literal content search across note bodies."""
    result = SearchService(app.vault).search(
        query, directory=directory, case_sensitive=case_sensitive, recursive=recursive
    )
    app.emit(result)


@vault.command(
    "list",
    examples="""\
  memctl vault list
  memctl vault list --section sessions
  memctl vault list --type research""",
)
@click.option("--section", type=click.Choice(LIST_SECTIONS), default=None, help="One section.")
@click.option("--type", "note_type", default=None, help="Filter by note type.")
@click.pass_obj
def list_cmd(app: AppContext, section: str | None, note_type: str | None) -> None:
    """List handoff, session, and phase notes."""
    app.emit(NoteService(app.vault).list_notes(section=section, note_type=note_type))


@vault.command()
@click.argument("path")
@click.pass_obj
def show(app: AppContext, path: str) -> None:
    """Print one note by vault-relative path."""
    app.emit(NoteService(app.vault).show(path))


@vault.command(
    examples="""\
  memctl vault latest
  memctl --json vault latest"""
)
@click.pass_obj
def latest(app: AppContext) -> None:
    """Show the note the latest-handoff index points at."""
    app.emit(NoteService(app.vault).latest_handoff())


@vault.command(
    examples="""\
  memctl vault doctor
  memctl vault doctor --fix"""
)
@click.option("--fix", is_flag=True, help="Repair what can be rebuilt.")
@click.pass_obj
def doctor(app: AppContext, fix: bool) -> None:
    """Check vault health; with --fix, repair indexes, folders, and the lock."""
    svc = DoctorService(app.vault)
    app.emit(svc.fix() if fix else svc.diagnose())


@vault.command(
    examples="""\
  memctl vault prune --dry-run
  memctl vault prune --days 7 --folders handoffs
  memctl vault prune --research --phase phase-1 --days 60"""
)
@click.option("--days", type=int, default=None, help="Age threshold in days (default: config).")
@click.option("--dry-run", is_flag=True, help="Report candidates without deleting.")
@click.option("--folders", default=None, help="Comma-separated folders (default: config).")
@click.option("--research", is_flag=True, help="Prune phase research notes instead.")
@click.option("--phase", "phase_id", default=None, help="Limit --research to one phase.")
@click.pass_obj
def prune(
    app: AppContext,
    days: int | None,
    dry_run: bool,
    folders: str | None,
    research: bool,
    phase_id: str | None,
) -> None:
    """Delete notes older than a number of days."""
    if phase_id and not research:
        raise click.UsageError("--phase requires --research")
    svc = PruneService(app.vault)
    if research:
        result = svc.prune_research(days=days, dry_run=dry_run, phase_id=phase_id)
    else:
        result = svc.prune(days=days, dry_run=dry_run, folders=split_csv(folders) or None)
    app.emit(result)


@vault.command(
    examples="""\
  memctl vault tracker
  memctl vault tracker --phase phase-2
  memctl vault tracker --clear-phase --session s-42
  memctl vault tracker --resolve"""
)
@click.option("--phase", "phase_id", default=None, help="Set the active phase.")
@click.option("--clear-phase", is_flag=True, help="Clear the active phase.")
@click.option("--session", "session_id", default=None, help="Set the current session.")
@click.option("--resolve", is_flag=True, help="Show which phase commands would default to.")
@click.pass_obj
def tracker(
    app: AppContext,
    phase_id: str | None,
    clear_phase: bool,
    session_id: str | None,
    resolve: bool,
) -> None:
    """Show or update the tracker state."""
    svc = TrackerService(app.vault)
    if resolve:
        result = svc.resolve_phase(phase_id)
    elif phase_id or clear_phase or session_id:
        result = svc.update(phase_id=phase_id, clear_phase=clear_phase, session_id=session_id)
    else:
        result = svc.show()
    app.emit(result)


memory = MemGroup(
    "memory",
    commands=vault.commands,
    help="Alias of 'vault'.",
    examples=_VAULT_EXAMPLES.replace("memctl vault", "memctl memory"),
)
