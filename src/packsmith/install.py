"""Pack installation for packsmith.

Handles:
- Fresh layout of the installation directory and content copy
- Install manifest generation
- Registration in the host configuration document
- Team file listing and copying
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from packsmith.core import (
    CATEGORIES,
    HOST_CORE_DIR_NAME,
    MANIFEST_FILENAME,
    TEAM_FILE_SUFFIX,
    TEAMS_DIR_NAME,
    CategorySpec,
    InstallationContext,
    InstallError,
    PackDescriptor,
    load_descriptor,
)
from packsmith.host_config import MergeResult, merge_host_config
from packsmith.manifest import InstallManifest, build_manifest, write_manifest
from packsmith.sync import copy_file, execute_plan, plan_copies, prepare_install_root

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    descriptor: PackDescriptor
    install_root: Path
    manifest: InstallManifest
    manifest_path: Path
    host: MergeResult
    reinstalled: bool
    warnings: list[str] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Number of installed files per category, in table order."""
        prefix = self.install_root.name
        counts = {c.name: 0 for c in CATEGORIES}
        for record in self.manifest.files:
            parts = record.path.split("/")
            if len(parts) >= 3 and parts[0] == prefix:
                for c in CATEGORIES:
                    if c.dest_dir == parts[1]:
                        counts[c.name] += 1
        return counts


def install_pack(
    context: InstallationContext,
    *,
    reinstall: bool = False,
    categories: Iterable[CategorySpec] = CATEGORIES,
    now: datetime | None = None,
) -> InstallResult:
    """Install the pack at ``context.pack_root`` into ``context.target_root``.

    Any previous installation directory is removed first. A copy failure
    raises InstallError before the manifest is written or the host document
    is touched. *reinstall* allows an existing host registration to be
    overwritten when the pack version changed.
    """
    categories = tuple(categories)
    descriptor = load_descriptor(context.descriptor_path)
    install_root = context.install_root(descriptor)
    warnings: list[str] = []

    if not (context.target_root / HOST_CORE_DIR_NAME).is_dir():
        warnings.append(f"No {HOST_CORE_DIR_NAME} directory found in {context.target_root}; installing standalone")

    plan = plan_copies(context.pack_root, install_root, categories)
    reinstalled = prepare_install_root(install_root, categories)
    if reinstalled:
        warnings.append(f"Replaced existing installation at {install_root}")

    copy_file(context.descriptor_path, install_root / context.descriptor_path.name)
    written = execute_plan(plan)

    manifest = build_manifest(descriptor, context.target_root, written, context.ides, now=now)
    manifest_path = write_manifest(manifest, install_root)

    host = merge_host_config(
        context.host_config_path,
        descriptor,
        install_path=install_root.relative_to(context.target_root).as_posix(),
        reinstall=reinstall,
    )
    if host.outcome == "skipped":
        warnings.append(f"Host registration skipped: {host.message}")

    logger.info(
        "Installed %s v%s (%d files)",
        descriptor.id,
        descriptor.version,
        len(manifest.files),
        extra={"pack": descriptor.id, "path": str(install_root)},
    )
    return InstallResult(descriptor, install_root, manifest, manifest_path, host, reinstalled, warnings)


def find_installations(target_root: Path) -> list[Path]:
    """Return installation directories (hidden dirs holding a manifest) under *target_root*."""
    if not target_root.is_dir():
        return []
    return sorted(
        p for p in target_root.iterdir() if p.name.startswith(".") and p.is_dir() and (p / MANIFEST_FILENAME).is_file()
    )


# ---------------------------------------------------------------------------
# Team files
# ---------------------------------------------------------------------------


def list_team_files(pack_root: Path) -> list[str]:
    """Return the team configuration file names shipped with a pack."""
    teams_dir = pack_root / TEAMS_DIR_NAME
    if not teams_dir.is_dir():
        return []
    return sorted(p.name for p in teams_dir.iterdir() if p.is_file() and p.name.endswith(TEAM_FILE_SUFFIX))


def copy_team_file(pack_root: Path, filename: str, destination: Path) -> Path:
    """Copy one team file to *destination* (a file path or an existing directory)."""
    if Path(filename).name != filename:
        raise InstallError(f"Invalid team file name: {filename}")
    source = pack_root / TEAMS_DIR_NAME / filename
    if not source.is_file():
        raise InstallError(f"Team file not found: {filename}")
    target = destination / filename if destination.is_dir() else destination
    return copy_file(source, target)
