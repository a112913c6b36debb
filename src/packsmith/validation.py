"""Structural validation of pack sources and installed packs.

Every check runs; problems are collected as error or warning strings and
returned together. Only unexpected I/O failures (permission denied and the
like) raise, as :class:`~packsmith.core.PackIOError`.
"""

from __future__ import annotations

import os
import stat
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from packsmith.core import (
    CATEGORIES,
    DESCRIPTOR_FILENAME,
    MANIFEST_FILENAME,
    PRIMARY_DOCS,
    TEAM_FILE_SUFFIX,
    TEAMS_DIR_NAME,
    CategorySpec,
    DescriptorError,
    ManifestError,
    PackIOError,
    read_descriptor_data,
)
from packsmith.manifest import DriftEntry, read_manifest
from packsmith.manifest import check_drift as _check_manifest_drift

_DECLARED_KINDS = ("agents", "tasks", "templates")


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    drift: list[DriftEntry] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "modified": [d.path for d in self.drift if d.status == "modified"],
        }


# ---------------------------------------------------------------------------
# Filesystem probes
# ---------------------------------------------------------------------------


def _stat(path: Path) -> os.stat_result | None:
    try:
        return path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as exc:
        raise PackIOError(path, exc) from exc


def _is_file(path: Path) -> bool:
    st = _stat(path)
    return st is not None and stat.S_ISREG(st.st_mode)


def _is_dir(path: Path) -> bool:
    st = _stat(path)
    return st is not None and stat.S_ISDIR(st.st_mode)


def _list_dir(path: Path) -> list[str]:
    try:
        return sorted(os.listdir(path))
    except OSError as exc:
        raise PackIOError(path, exc) from exc


# ---------------------------------------------------------------------------
# Shared checks
# ---------------------------------------------------------------------------


def _check_required(root: Path, files: tuple[str, ...], dirs: tuple[str, ...], result: ValidationResult) -> None:
    for name in files:
        if not _is_file(root / name):
            result.errors.append(f"Missing required file: {name}")
    for name in dirs:
        if not _is_dir(root / name):
            result.errors.append(f"Missing required directory: {name}")


def _check_descriptor(root: Path, result: ValidationResult) -> dict[str, Any] | None:
    path = root / DESCRIPTOR_FILENAME
    if not _is_file(path):
        return None
    try:
        data = read_descriptor_data(path)
    except DescriptorError as exc:
        result.errors.append(f"Invalid YAML in {DESCRIPTOR_FILENAME}: {exc.reason}")
        return None
    except OSError as exc:
        raise PackIOError(path, exc) from exc
    for kind in _DECLARED_KINDS:
        declared = data.get(kind)
        if not isinstance(declared, list) or not declared:
            result.warnings.append(f"No {kind} defined in {DESCRIPTOR_FILENAME}")
    return data


def _check_agent_files(agents_dir: Path, result: ValidationResult) -> None:
    if _is_dir(agents_dir) and not _list_dir(agents_dir):
        result.warnings.append("No agent files found in agents directory")


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate_pack(pack_root: Path, categories: Iterable[CategorySpec] = CATEGORIES) -> ValidationResult:
    """Validate a pack source tree before it is published or installed.

    Source directories are required only for categories marked ``required``.
    """
    result = ValidationResult()
    required_dirs = (*(c.source_dir for c in categories if c.required), TEAMS_DIR_NAME)
    _check_required(pack_root, (DESCRIPTOR_FILENAME, *PRIMARY_DOCS), required_dirs, result)
    _check_descriptor(pack_root, result)
    _check_agent_files(pack_root / "agents", result)

    teams_dir = pack_root / TEAMS_DIR_NAME
    if _is_dir(teams_dir):
        team_files = [f for f in _list_dir(teams_dir) if f.endswith(TEAM_FILE_SUFFIX)]
        if not team_files:
            result.errors.append(f"No team configuration files ({TEAM_FILE_SUFFIX}) found in {TEAMS_DIR_NAME} directory")
    return result


def validate_installation(install_root: Path) -> ValidationResult:
    """Validate an installed pack and re-check its files against the manifest.

    Modified files are warnings; recorded files that no longer exist are errors.
    """
    result = ValidationResult()
    if not _is_dir(install_root):
        result.errors.append(f"Installation directory not found: {install_root}")
        return result

    _check_required(install_root, (DESCRIPTOR_FILENAME, MANIFEST_FILENAME), tuple(c.dest_dir for c in CATEGORIES), result)
    descriptor = _check_descriptor(install_root, result)
    _check_agent_files(install_root / "agents", result)

    if not _is_file(install_root / MANIFEST_FILENAME):
        return result
    try:
        manifest = read_manifest(install_root)
    except ManifestError as exc:
        result.errors.append(f"Invalid {MANIFEST_FILENAME}: {exc}")
        return result
    except OSError as exc:
        raise PackIOError(install_root / MANIFEST_FILENAME, exc) from exc

    if descriptor is not None and descriptor.get("name") not in (None, manifest.pack_id):
        result.errors.append(
            f"Manifest pack id '{manifest.pack_id}' does not match {DESCRIPTOR_FILENAME} name '{descriptor.get('name')}'"
        )

    try:
        result.drift = _check_manifest_drift(manifest, install_root.parent)
    except OSError as exc:
        raise PackIOError(install_root, exc) from exc
    for entry in result.drift:
        if entry.status == "missing":
            result.errors.append(f"Installed file missing: {entry.path}")
        elif entry.status == "modified":
            result.warnings.append(f"Modified since install: {entry.path}")
    return result


def check_drift(install_root: Path) -> list[DriftEntry]:
    """Compare an installation's files against its manifest.

    Raises FileNotFoundError if there is no manifest, ManifestError if it is
    malformed, and PackIOError for any other I/O failure.
    """
    manifest = read_manifest(install_root)
    try:
        return _check_manifest_drift(manifest, install_root.parent)
    except OSError as exc:
        raise PackIOError(install_root, exc) from exc
