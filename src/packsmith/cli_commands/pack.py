"""CLI commands for installation: install, validate, verify."""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path

import click

from packsmith.cli_common import build_context, resolve_pack_root
from packsmith.core import PackError, PackIOError, read_config
from packsmith.install import find_installations, install_pack
from packsmith.logging import setup_logging
from packsmith.manifest import read_manifest
from packsmith.validation import ValidationResult, check_drift, validate_installation, validate_pack

_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


def _print_validation(label: str, result: ValidationResult) -> None:
    if result.errors:
        click.echo("Validation errors:")
        for error in result.errors:
            click.echo(f"  !!  {error}")
    if result.warnings:
        click.echo("Validation warnings:")
        for warning in result.warnings:
            click.echo(f"  --  {warning}")
    if result.valid:
        click.echo(f"{label} is valid")
    else:
        click.echo(f"{label} is invalid", err=True)


@click.command()
@click.option("--pack", "pack_path", type=_DIR, default=None, help="Pack source directory (default: config or cwd)")
@click.option("--target", "target", type=_DIR, default=None, help="Project to install into (default: cwd)")
@click.option("--host-config", type=click.Path(path_type=Path), default=None, help="Host configuration document")
@click.option("--ide", "ides", multiple=True, help="IDE target recorded in the manifest (repeatable)")
@click.option("--reinstall/--no-reinstall", default=False, help="Overwrite the host registration when the pack version changed")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def install(
    pack_path: Path | None,
    target: Path | None,
    host_config: Path | None,
    ides: tuple[str, ...],
    reinstall: bool,
    as_json: bool,
) -> None:
    """Install a pack into the target project."""
    target_root = (target or Path.cwd()).resolve()
    config = read_config(target_root)
    if config.get("log", True):
        setup_logging(target_root)
    context = build_context(target_root, config, pack=pack_path, host_config=host_config, ides=ides)

    try:
        result = install_pack(context, reinstall=reinstall)
    except (PackError, OSError) as e:
        if as_json:
            click.echo(json_mod.dumps({"error": str(e)}))
        else:
            click.echo(f"Installation failed: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(
            json_mod.dumps(
                {
                    "pack": result.descriptor.id,
                    "version": result.descriptor.version,
                    "install_root": str(result.install_root),
                    "manifest": result.manifest.to_dict(),
                    "host": {"outcome": result.host.outcome, "message": result.host.message},
                    "warnings": result.warnings,
                },
                indent=2,
            )
        )
        return

    descriptor = result.descriptor
    click.echo(f"Installed {descriptor.id} v{descriptor.version} into {result.install_root}")
    for name, count in result.counts().items():
        if count:
            click.echo(f"  OK  {name}: {count} file{'s' if count != 1 else ''}")
    click.echo(f"  OK  Manifest: {result.manifest_path.name}")
    icon = "--" if result.host.outcome == "skipped" else "OK"
    click.echo(f"  {icon}  Host config: {result.host.message}")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if descriptor.agents:
        click.echo("\nAgents available:")
        for agent in descriptor.agents:
            click.echo(f"  *{agent.name}")
    if descriptor.commands and descriptor.slash_prefix:
        click.echo("\nSlash commands available:")
        for cmd in descriptor.commands:
            click.echo(f"  *{descriptor.slash_prefix} {cmd.name}")


@click.command()
@click.option("--pack", "pack_path", type=_DIR, default=None, help="Pack source directory (default: config or cwd)")
@click.option("--installed", is_flag=True, help="Validate installations in --target instead of a pack source")
@click.option("--target", "target", type=_DIR, default=None, help="Project holding the installation (default: cwd)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def validate(pack_path: Path | None, installed: bool, target: Path | None, as_json: bool) -> None:
    """Validate a pack source tree, or an installed pack with --installed."""
    target_root = (target or Path.cwd()).resolve()
    results: list[tuple[str, ValidationResult]] = []
    try:
        if installed:
            roots = find_installations(target_root)
            if not roots:
                click.echo(f"No installed packs found in {target_root}", err=True)
                sys.exit(1)
            for root in roots:
                results.append((f"Installation {root.name}", validate_installation(root)))
        else:
            pack_root = resolve_pack_root(pack_path, read_config(target_root), target_root)
            results.append((f"Pack {pack_root.name}", validate_pack(pack_root)))
    except PackIOError as e:
        click.echo(f"Validation failed: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json_mod.dumps({label: r.to_dict() for label, r in results}, indent=2))
    else:
        for label, result in results:
            _print_validation(label, result)
    if not all(r.valid for _, r in results):
        sys.exit(1)


@click.command()
@click.option("--target", "target", type=_DIR, default=None, help="Project holding the installation (default: cwd)")
@click.option("--all", "show_all", is_flag=True, help="Show unchanged files too")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def verify(target: Path | None, show_all: bool, as_json: bool) -> None:
    """Report installed files modified since install."""
    target_root = (target or Path.cwd()).resolve()
    roots = find_installations(target_root)
    if not roots:
        click.echo(f"No installed packs found in {target_root}", err=True)
        sys.exit(1)

    report: dict[str, list[dict[str, str | None]]] = {}
    for root in roots:
        try:
            manifest = read_manifest(root)
            drift = check_drift(root)
        except (PackError, OSError) as e:
            click.echo(f"Cannot read manifest in {root}: {e}", err=True)
            sys.exit(1)
        report[manifest.pack_id] = [{"path": d.path, "status": d.status, "hash": d.current} for d in drift]
        if as_json:
            continue
        changed = [d for d in drift if d.drifted]
        click.echo(f"{manifest.pack_id} v{manifest.version}  ──  {len(drift)} files  {len(changed)} changed")
        for d in drift:
            if d.drifted or show_all:
                icon = "OK" if not d.drifted else "!!"
                click.echo(f"  {icon}  {d.path}: {d.status}")

    if as_json:
        click.echo(json_mod.dumps(report, indent=2))
