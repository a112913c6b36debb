"""Install manifest: what was installed, its fingerprints, and drift checks.

The manifest lives at ``<install root>/install-manifest.yaml`` and is
replaced wholesale on every install. Record paths are POSIX paths relative
to the target (project) root, e.g. ``.my-pack/agents/analyst.md``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import yaml

from packsmith.core import INSTALL_TYPE, MANIFEST_FILENAME, ManifestError, PackDescriptor, write_atomic
from packsmith.hashing import fingerprint_file

logger = logging.getLogger(__name__)

DriftStatus = Literal["unchanged", "modified", "missing"]


@dataclass(frozen=True)
class FileRecord:
    path: str
    hash: str
    modified: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "hash": self.hash, "modified": self.modified}

    @classmethod
    def from_dict(cls, data: Any) -> FileRecord:
        if not isinstance(data, dict):
            raise ManifestError(f"file entry must be a mapping, got {type(data).__name__}")
        path = data.get("path")
        digest = data.get("hash")
        if not isinstance(path, str) or not path:
            raise ManifestError("file entry is missing 'path'")
        if not isinstance(digest, str) or not digest:
            raise ManifestError(f"file entry {path!r} is missing 'hash'")
        return cls(path=path, hash=digest, modified=bool(data.get("modified", False)))


@dataclass(frozen=True)
class InstallManifest:
    version: str
    installed_at: str
    install_type: str
    pack_id: str
    pack_name: str
    ides: tuple[str, ...]
    files: tuple[FileRecord, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for record in self.files:
            if record.path in seen:
                raise ManifestError(f"duplicate file entry: {record.path}")
            seen.add(record.path)

    @property
    def paths(self) -> list[str]:
        return [r.path for r in self.files]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "installed_at": self.installed_at,
            "install_type": self.install_type,
            "expansion_pack_id": self.pack_id,
            "expansion_pack_name": self.pack_name,
            "ides_setup": list(self.ides),
            "files": [r.to_dict() for r in self.files],
        }

    @classmethod
    def from_dict(cls, data: Any) -> InstallManifest:
        if not isinstance(data, dict):
            raise ManifestError("manifest must be a mapping")
        for key in ("version", "expansion_pack_id"):
            if data.get(key) is None:
                raise ManifestError(f"manifest is missing '{key}'")
        files = data.get("files") or []
        if not isinstance(files, list):
            raise ManifestError("'files' must be a list")
        ides = data.get("ides_setup") or []
        if not isinstance(ides, list):
            raise ManifestError("'ides_setup' must be a list")
        return cls(
            version=str(data["version"]),
            installed_at=str(data.get("installed_at", "")),
            install_type=str(data.get("install_type", INSTALL_TYPE)),
            pack_id=str(data["expansion_pack_id"]),
            pack_name=str(data.get("expansion_pack_name") or data["expansion_pack_id"]),
            ides=tuple(str(i) for i in ides),
            files=tuple(FileRecord.from_dict(f) for f in files),
        )


def _relative(path: Path, target_root: Path) -> str:
    try:
        return path.relative_to(target_root).as_posix()
    except ValueError as exc:
        raise ManifestError(f"{path} is outside {target_root}") from exc


def build_manifest(
    descriptor: PackDescriptor,
    target_root: Path,
    written: Sequence[Path],
    ides: Iterable[str],
    *,
    now: datetime | None = None,
) -> InstallManifest:
    """Fingerprint every written file as it now sits on disk and build the manifest."""
    records: list[FileRecord] = []
    for path in written:
        if not path.is_file():
            raise ManifestError(f"installed file vanished before it could be recorded: {path}")
        records.append(FileRecord(_relative(path, target_root), fingerprint_file(path)))
    timestamp = (now or datetime.now(UTC)).isoformat()
    return InstallManifest(
        version=descriptor.version,
        installed_at=timestamp,
        install_type=INSTALL_TYPE,
        pack_id=descriptor.id,
        pack_name=descriptor.name,
        ides=tuple(dict.fromkeys(ides)),
        files=tuple(records),
    )


def write_manifest(manifest: InstallManifest, install_root: Path) -> Path:
    """Serialize *manifest* into *install_root*, replacing any previous one."""
    path = install_root / MANIFEST_FILENAME
    text = yaml.safe_dump(manifest.to_dict(), sort_keys=False, default_flow_style=False, allow_unicode=True)
    write_atomic(path, text)
    logger.info("Wrote manifest with %d files", len(manifest.files), extra={"path": str(path)})
    return path


def read_manifest(install_root: Path) -> InstallManifest:
    """Load the manifest from *install_root*.

    Raises FileNotFoundError if it is absent and ManifestError if it is malformed.
    """
    path = install_root / MANIFEST_FILENAME
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise ManifestError(f"{MANIFEST_FILENAME} is not valid UTF-8: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ManifestError(f"invalid YAML in {MANIFEST_FILENAME}: {exc}") from exc
    return InstallManifest.from_dict(data)


# ---------------------------------------------------------------------------
# Drift
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DriftEntry:
    path: str
    recorded: str
    current: str | None
    status: DriftStatus

    @property
    def drifted(self) -> bool:
        return self.status != "unchanged"

    def as_record(self) -> FileRecord:
        """Return the file record with ``modified`` reflecting the disk state."""
        return FileRecord(self.path, self.recorded, modified=self.drifted)


def check_drift(manifest: InstallManifest, target_root: Path) -> list[DriftEntry]:
    """Re-fingerprint every recorded file and compare. Read-only."""
    entries: list[DriftEntry] = []
    for record in manifest.files:
        path = target_root / record.path
        try:
            current = fingerprint_file(path)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            entries.append(DriftEntry(record.path, record.hash, None, "missing"))
            continue
        status: DriftStatus = "unchanged" if current == record.hash else "modified"
        entries.append(DriftEntry(record.path, record.hash, current, status))
    return entries
