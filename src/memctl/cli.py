"""Root CLI group for memctl with global flags and command registration."""

from __future__ import annotations

import click

from memctl import __version__
from memctl.commands import register_commands
from memctl.commands._base import MemGroup
from memctl.commands._context import AppContext
from memctl.config.settings import MemSettings


@click.group(cls=MemGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="memctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option(
    "--vault",
    "vault_root",
    type=click.Path(file_okay=False),
    default=None,
    help="Vault directory (overrides MEMCTL_VAULT_ROOT and [vault] path).",
)
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    vault_root: str | None,
    config_path: str | None,
) -> None:
    """memctl: a Markdown memory vault for handing work off between sessions."""
    settings = MemSettings.from_cli(
        config_path=config_path,
        vault_root=vault_root,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
