"""CLI for packsmith.

Usage:
    packsmith install --pack ../my-pack          # Install a pack into cwd
    packsmith install --reinstall                # Reinstall, updating the host registration
    packsmith validate                           # Validate the pack source in cwd
    packsmith validate --installed               # Validate installed packs in cwd
    packsmith verify                             # Report files modified since install
    packsmith team-files                         # List team configuration files
    packsmith team-files --copy team.txt         # Copy a team file into cwd
    packsmith agents                             # List agents and slash commands
"""

from __future__ import annotations

import click

from packsmith import __version__
from packsmith.cli_commands.catalog import agents, team_files
from packsmith.cli_commands.pack import install, validate, verify
from packsmith.logging import setup_console_logging


@click.group()
@click.version_option(version=__version__, prog_name="packsmith")
@click.option("--verbose", "-v", is_flag=True, help="Log engine activity to stderr")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """packsmith: install and validate content packs."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        setup_console_logging()


for _command in (install, validate, verify, team_files, agents):
    cli.add_command(_command)


if __name__ == "__main__":
    cli()
