"""Subcommand modules for memctl.

:func:`register_commands` imports each module lazily so ``memctl --help``
stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    # --- Groups ---
    from memctl.commands.phase import phase
    from memctl.commands.vault import memory, vault

    cli.add_command(phase)
    cli.add_command(vault)
    cli.add_command(memory)

    # --- Standalone commands ---
    from memctl.commands.handoff import handoff, resume, session
    from memctl.commands.init_cmd import init_cmd

    cli.add_command(init_cmd)
    cli.add_command(handoff)
    cli.add_command(resume)
    cli.add_command(session)
