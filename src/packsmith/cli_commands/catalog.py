"""CLI commands for browsing a pack: team-files, agents."""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path

import click

from packsmith.cli_common import get_descriptor, resolve_pack_root
from packsmith.core import TEAMS_DIR_NAME, PackError, read_config
from packsmith.install import copy_team_file, list_team_files

_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


@click.command("team-files")
@click.option("--pack", "pack_path", type=_DIR, default=None, help="Pack source directory (default: config or cwd)")
@click.option("--copy", "copy_name", default=None, help="Team file to copy")
@click.option("--dest", type=click.Path(path_type=Path), default=None, help="Copy destination (default: cwd)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def team_files(pack_path: Path | None, copy_name: str | None, dest: Path | None, as_json: bool) -> None:
    """List (or copy) the pack's team configuration files."""
    cwd = Path.cwd()
    pack_root = resolve_pack_root(pack_path, read_config(cwd), cwd)

    if copy_name is not None:
        try:
            copied = copy_team_file(pack_root, copy_name, dest or cwd)
        except PackError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if as_json:
            click.echo(json_mod.dumps({"copied": str(copied)}))
        else:
            click.echo(f"Copied {copy_name} to {copied}")
        return

    names = list_team_files(pack_root)
    if as_json:
        click.echo(json_mod.dumps(names))
        return
    if not names:
        click.echo(f"No team files found in {pack_root / TEAMS_DIR_NAME}", err=True)
        sys.exit(1)
    click.echo("Available team configuration files:")
    for name in names:
        click.echo(f"  {name}")
    click.echo(f"\nCopy one with: packsmith team-files --copy {names[0]}")


@click.command()
@click.option("--pack", "pack_path", type=_DIR, default=None, help="Pack source directory (default: config or cwd)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def agents(pack_path: Path | None, as_json: bool) -> None:
    """List the pack's agents and slash commands."""
    cwd = Path.cwd()
    descriptor = get_descriptor(resolve_pack_root(pack_path, read_config(cwd), cwd))
    prefix = descriptor.slash_prefix

    if as_json:
        click.echo(
            json_mod.dumps(
                {
                    "agents": [{"name": a.name, "description": a.description} for a in descriptor.agents],
                    "commands": [
                        {"name": f"{prefix} {c.name}".strip(), "description": c.description} for c in descriptor.commands
                    ],
                },
                indent=2,
            )
        )
        return

    click.echo(f"Agents in {descriptor.short_title or descriptor.name}:")
    if not descriptor.agents:
        click.echo("  (none)")
    for agent in descriptor.agents:
        click.echo(f"  *{agent.name}")
        if agent.description:
            click.echo(f"      {agent.description}")
    if descriptor.commands:
        click.echo("\nSlash commands:")
        for cmd in descriptor.commands:
            click.echo(f"  *{f'{prefix} {cmd.name}'.strip()}")
            if cmd.description:
                click.echo(f"      {cmd.description}")
