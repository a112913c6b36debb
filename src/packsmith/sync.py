"""Copy planning and execution for pack content categories.

The category table in :mod:`packsmith.core` drives everything here; adding
a category is a data change.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from packsmith.core import CATEGORIES, CategorySpec, InstallError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CopyPlanEntry:
    source: Path
    destination: Path
    category: str


def plan_copies(
    pack_root: Path,
    install_root: Path,
    categories: Iterable[CategorySpec] = CATEGORIES,
) -> list[CopyPlanEntry]:
    """Enumerate every category file in *pack_root* and where it lands.

    Categories whose source directory is absent are skipped. Files are
    listed in name order so plans (and manifests) are deterministic.
    """
    plan: list[CopyPlanEntry] = []
    for category in categories:
        source_dir = pack_root / category.source_dir
        if not source_dir.is_dir():
            logger.debug("Skipping category %s: no %s", category.name, source_dir)
            continue
        try:
            entries = sorted(source_dir.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise InstallError(f"Cannot list {source_dir}: {exc}") from exc
        dest_dir = install_root / category.dest_dir
        for src in entries:
            if src.is_file() and category.matches(src.name):
                plan.append(CopyPlanEntry(src, dest_dir / src.name, category.name))
    return plan


def prepare_install_root(install_root: Path, categories: Iterable[CategorySpec] = CATEGORIES) -> bool:
    """Remove any previous installation at *install_root* and lay out a fresh one.

    Every category directory is created, even for categories the pack omits.
    Returns True when a previous installation was removed.
    """
    existed = install_root.exists()
    try:
        if existed:
            logger.info("Removing previous installation at %s", install_root)
            shutil.rmtree(install_root)
        install_root.mkdir(parents=True)
        for category in categories:
            (install_root / category.dest_dir).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InstallError(f"Cannot prepare {install_root}: {exc}") from exc
    return existed


def copy_file(source: Path, destination: Path) -> Path:
    """Copy one file, creating parent directories on demand."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
    except OSError as exc:
        raise InstallError(f"Failed to copy {source} -> {destination}: {exc}") from exc
    return destination


def execute_plan(plan: Sequence[CopyPlanEntry]) -> list[Path]:
    """Copy every planned file in order. The first failure aborts the run."""
    written: list[Path] = []
    for entry in plan:
        copy_file(entry.source, entry.destination)
        logger.info(
            "Installed %s", entry.destination.name, extra={"category": entry.category, "path": str(entry.destination)}
        )
        written.append(entry.destination)
    return written
