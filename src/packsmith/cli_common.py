"""Shared CLI helpers used by ``cli.py`` and the ``cli_commands/*.py`` modules.

Resolution order for every path: explicit option > packsmith.json > default.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from packsmith.core import (
    DEFAULT_IDES,
    DESCRIPTOR_FILENAME,
    DescriptorError,
    InstallationContext,
    PackDescriptor,
    ProjectConfig,
    load_descriptor,
    resolve_host_config,
)


def resolve_pack_root(pack: Path | None, config: ProjectConfig, target_root: Path) -> Path:
    """Return the pack source directory: --pack, then config ``pack``, then cwd."""
    if pack is not None:
        return pack.resolve()
    configured = config.get("pack")
    if configured:
        candidate = Path(configured)
        return (candidate if candidate.is_absolute() else target_root / candidate).resolve()
    return Path.cwd().resolve()


def build_context(
    target_root: Path,
    config: ProjectConfig,
    *,
    pack: Path | None,
    host_config: Path | None,
    ides: tuple[str, ...],
) -> InstallationContext:
    """Assemble the InstallationContext for a CLI invocation."""
    return InstallationContext(
        pack_root=resolve_pack_root(pack, config, target_root),
        target_root=target_root,
        host_config_path=resolve_host_config(target_root, host_config or config.get("host_config")),
        ides=ides or tuple(config.get("ides") or DEFAULT_IDES),
    )


def get_descriptor(pack_root: Path) -> PackDescriptor:
    """Load the pack descriptor or exit with an error message."""
    try:
        return load_descriptor(pack_root / DESCRIPTOR_FILENAME)
    except DescriptorError as e:
        click.echo(f"Invalid pack descriptor {e}", err=True)
        sys.exit(1)
    except OSError as e:
        click.echo(f"Cannot read {pack_root / DESCRIPTOR_FILENAME}: {e}", err=True)
        sys.exit(1)
