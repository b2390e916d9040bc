"""AppContext: shared Click context for all commands.

Created once by the root group and handed to subcommands via
``@click.pass_obj``. The vault is opened lazily so ``--help`` and
``--version`` never touch the filesystem.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memctl.config.logging import configure_logging
from memctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from memctl.config.settings import MemSettings
    from memctl.infrastructure.vault import Vault
    from memctl.services.result import ServiceResult


class AppContext:
    """Settings, the lazily opened vault, and result emission."""

    def __init__(self, settings: MemSettings) -> None:
        self.settings = settings
        self._vault: Vault | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def vault(self) -> Vault:
        """The vault (opened on first access)."""
        if self._vault is None:
            from memctl.infrastructure.vault import Vault

            self._vault = Vault(self.settings)
        return self._vault

    def emit(self, result: ServiceResult) -> None:
        """Print a ServiceResult with the right stream and exit code.

        * Success: stdout. Warnings go to stderr, except in JSON mode
          where they are already part of the payload.
        * Failure: stderr, then exit with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
