"""Tests for manifest.py: building, serializing, and drift checks."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest
import yaml

from packsmith.core import MANIFEST_FILENAME, ManifestError, PackDescriptor
from packsmith.hashing import fingerprint_file
from packsmith.manifest import (
    FileRecord,
    InstallManifest,
    build_manifest,
    check_drift,
    read_manifest,
    write_manifest,
)

DESCRIPTOR = PackDescriptor(name="odoo-dev", version="1.2.0")
NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


@pytest.fixture
def installed(tmp_path: Path) -> tuple[Path, list[Path]]:
    """A target root with two installed files under .odoo-dev/."""
    root = tmp_path / ".odoo-dev"
    (root / "agents").mkdir(parents=True)
    (root / "tasks").mkdir()
    a = root / "agents" / "analyst.md"
    b = root / "tasks" / "create-addon.md"
    a.write_text("# analyst\n")
    b.write_text("# create addon\n")
    return tmp_path, [a, b]


class TestBuildManifest:
    def test_one_record_per_file(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, ["claude-code"], now=NOW)
        assert manifest.paths == [".odoo-dev/agents/analyst.md", ".odoo-dev/tasks/create-addon.md"]
        assert all(not r.modified for r in manifest.files)
        assert manifest.files[0].hash == fingerprint_file(files[0])

    def test_identity_fields(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, ["claude-code", "cursor", "claude-code"], now=NOW)
        assert manifest.version == "1.2.0"
        assert manifest.pack_id == "odoo-dev"
        assert manifest.install_type == "expansion-pack"
        assert manifest.installed_at == "2026-01-02T03:04:05+00:00"
        assert manifest.ides == ("claude-code", "cursor")

    def test_missing_file_rejected(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        files[1].unlink()
        with pytest.raises(ManifestError, match="vanished"):
            build_manifest(DESCRIPTOR, target, files, [], now=NOW)

    def test_duplicate_paths_rejected(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        with pytest.raises(ManifestError, match="duplicate"):
            build_manifest(DESCRIPTOR, target, [files[0], files[0]], [], now=NOW)

    def test_file_outside_target_rejected(self, installed: tuple[Path, list[Path]], tmp_path_factory: pytest.TempPathFactory) -> None:
        target, _files = installed
        outside = tmp_path_factory.mktemp("elsewhere") / "x.md"
        outside.write_text("x")
        with pytest.raises(ManifestError, match="outside"):
            build_manifest(DESCRIPTOR, target, [outside], [], now=NOW)


class TestSerialization:
    def test_document_layout(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, ["claude-code"], now=NOW)
        path = write_manifest(manifest, target / ".odoo-dev")
        assert path.name == MANIFEST_FILENAME
        data = yaml.safe_load(path.read_text())
        assert list(data) == [
            "version",
            "installed_at",
            "install_type",
            "expansion_pack_id",
            "expansion_pack_name",
            "ides_setup",
            "files",
        ]
        assert data["files"][0] == {"path": ".odoo-dev/agents/analyst.md", "hash": manifest.files[0].hash, "modified": False}

    def test_read_back(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, ["claude-code"], now=NOW)
        write_manifest(manifest, target / ".odoo-dev")
        assert read_manifest(target / ".odoo-dev") == manifest

    def test_rewrite_replaces_wholesale(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        write_manifest(build_manifest(DESCRIPTOR, target, files, [], now=NOW), target / ".odoo-dev")
        write_manifest(build_manifest(DESCRIPTOR, target, files[:1], [], now=NOW), target / ".odoo-dev")
        assert read_manifest(target / ".odoo-dev").paths == [".odoo-dev/agents/analyst.md"]

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_manifest(tmp_path)

    @pytest.mark.parametrize(
        "content",
        [
            "just a string\n",
            "version: 1\n",
            "version: 1\nexpansion_pack_id: p\nfiles: oops\n",
            "version: 1\nexpansion_pack_id: p\nfiles:\n  - path: a\n",
            "version: [1\n",
        ],
    )
    def test_malformed_manifest(self, tmp_path: Path, content: str) -> None:
        (tmp_path / MANIFEST_FILENAME).write_text(content)
        with pytest.raises(ManifestError):
            read_manifest(tmp_path)

    def test_not_utf8(self, tmp_path: Path) -> None:
        (tmp_path / MANIFEST_FILENAME).write_bytes(b"version: 1\nexpansion_pack_id: caf\xe9\n")
        with pytest.raises(ManifestError, match="not valid UTF-8"):
            read_manifest(tmp_path)

    def test_duplicate_entries_in_document(self, tmp_path: Path) -> None:
        (tmp_path / MANIFEST_FILENAME).write_text(
            "version: '1'\nexpansion_pack_id: p\nfiles:\n"
            "  - {path: a.md, hash: abc, modified: false}\n"
            "  - {path: a.md, hash: def, modified: false}\n"
        )
        with pytest.raises(ManifestError, match="duplicate"):
            read_manifest(tmp_path)


class TestDrift:
    def test_clean_install_has_no_drift(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, [], now=NOW)
        assert [d.status for d in check_drift(manifest, target)] == ["unchanged", "unchanged"]

    def test_modified_file_flagged_alone(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, [], now=NOW)
        files[0].write_text("# analyst, edited by the user\n")
        drift = check_drift(manifest, target)
        assert [(d.path, d.status) for d in drift] == [
            (".odoo-dev/agents/analyst.md", "modified"),
            (".odoo-dev/tasks/create-addon.md", "unchanged"),
        ]
        assert drift[0].current == fingerprint_file(files[0])
        assert drift[0].as_record() == FileRecord(drift[0].path, manifest.files[0].hash, modified=True)

    def test_missing_file(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, [], now=NOW)
        files[1].unlink()
        drift = check_drift(manifest, target)
        assert drift[1].status == "missing"
        assert drift[1].current is None
        assert drift[1].drifted

    def test_drift_check_is_read_only(self, installed: tuple[Path, list[Path]]) -> None:
        target, files = installed
        manifest = build_manifest(DESCRIPTOR, target, files, [], now=NOW)
        write_manifest(manifest, target / ".odoo-dev")
        files[0].write_text("changed")
        before = (target / ".odoo-dev" / MANIFEST_FILENAME).read_text()
        check_drift(manifest, target)
        assert (target / ".odoo-dev" / MANIFEST_FILENAME).read_text() == before
        assert files[0].read_text() == "changed"


class TestInstallManifestModel:
    def test_unique_paths_enforced(self) -> None:
        with pytest.raises(ManifestError):
            InstallManifest("1", "", "expansion-pack", "p", "p", (), (FileRecord("a", "h"), FileRecord("a", "h")))
