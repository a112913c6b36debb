"""Tests for core.py: descriptors, context, project config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from packsmith.core import (
    CATEGORIES,
    DESCRIPTOR_FILENAME,
    PROJECT_CONFIG_FILENAME,
    DescriptorError,
    InstallationContext,
    PackItem,
    load_descriptor,
    read_config,
    resolve_host_config,
)
from tests._pack_factory import default_descriptor, write_pack, write_project_config


class TestLoadDescriptor:
    def test_fields(self, pack_root: Path) -> None:
        d = load_descriptor(pack_root / DESCRIPTOR_FILENAME)
        assert d.id == "odoo-dev"
        assert d.version == "1.2.0"
        assert d.slash_prefix == "OdooDev"
        assert d.short_title == "Odoo ERP Development Pack"
        assert d.domain == "erp"
        assert d.install_dir_name == ".odoo-dev"
        assert d.agents == (PackItem("odoo-analyst", "Business process analysis"), PackItem("odoo-developer"))
        assert d.agent_names == ("odoo-analyst", "odoo-developer")
        assert d.commands[0].description == "Generate new Odoo addon"

    def test_numeric_version_coerced(self, tmp_path: Path) -> None:
        path = tmp_path / DESCRIPTOR_FILENAME
        path.write_text("name: p\nversion: 2\n")
        assert load_descriptor(path).version == "2"

    def test_optional_lists_default_empty(self, tmp_path: Path) -> None:
        path = tmp_path / DESCRIPTOR_FILENAME
        path.write_text("name: p\nversion: '1.0'\n")
        d = load_descriptor(path)
        assert d.agents == () and d.tasks == () and d.templates == ()

    def test_immutable(self, pack_root: Path) -> None:
        d = load_descriptor(pack_root / DESCRIPTOR_FILENAME)
        with pytest.raises(AttributeError):
            d.version = "9"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("content", "reason"),
        [
            ("version: 1\n", "'name' is required"),
            ("name: p\n", "'version' is required"),
            ("name: ../escape\nversion: 1\n", "not a valid directory name"),
            ("name: p\nversion: 1\nagents: odoo\n", "must be a list"),
            ("name: p\nversion: 1\nagents: [{description: x}]\n", "entries must be"),
            ("- a\n", "mapping"),
            ("name: [\n", "invalid YAML"),
        ],
    )
    def test_invalid(self, tmp_path: Path, content: str, reason: str) -> None:
        path = tmp_path / DESCRIPTOR_FILENAME
        path.write_text(content)
        with pytest.raises(DescriptorError, match=reason):
            load_descriptor(path)

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(DescriptorError, match="not found"):
            load_descriptor(tmp_path / DESCRIPTOR_FILENAME)

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / DESCRIPTOR_FILENAME
        path.write_bytes(b"name: caf\xe9\nversion: 1\n")
        with pytest.raises(DescriptorError, match="not valid UTF-8"):
            load_descriptor(path)


class TestCategories:
    def test_table(self) -> None:
        assert [c.name for c in CATEGORIES] == ["agents", "tasks", "templates", "checklists", "data"]

    def test_template_extensions(self) -> None:
        templates = next(c for c in CATEGORIES if c.name == "templates")
        assert templates.matches("a.yaml")
        assert templates.matches("a.yml")
        assert not templates.matches("a.md")

    def test_all_required_by_default(self) -> None:
        assert all(c.required for c in CATEGORIES)


class TestContext:
    def test_install_root(self, tmp_path: Path) -> None:
        pack = write_pack(tmp_path / "pack", descriptor=default_descriptor(name="crm-pack"))
        ctx = InstallationContext(pack, tmp_path / "proj")
        assert ctx.install_root(load_descriptor(ctx.descriptor_path)) == tmp_path / "proj" / ".crm-pack"
        assert ctx.ides == ("claude-code",)


class TestProjectConfig:
    def test_defaults_when_missing(self, tmp_path: Path) -> None:
        config = read_config(tmp_path)
        assert config["ides"] == ["claude-code"]
        assert config["log"] is True

    def test_round_trip_merges_defaults(self, tmp_path: Path) -> None:
        write_project_config(tmp_path, {"host_config": "cfg.yaml"})
        config = read_config(tmp_path)
        assert config["host_config"] == "cfg.yaml"
        assert config["ides"] == ["claude-code"]

    def test_corrupt_config_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_FILENAME).write_text("{oops")
        assert read_config(tmp_path)["log"] is True

    def test_non_object_config_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_FILENAME).write_text(json.dumps([1]))
        assert read_config(tmp_path)["ides"] == ["claude-code"]


class TestResolveHostConfig:
    def test_none_found(self, tmp_path: Path) -> None:
        assert resolve_host_config(tmp_path) is None

    def test_prefers_core_config(self, tmp_path: Path) -> None:
        (tmp_path / ".bmad-core").mkdir()
        (tmp_path / ".bmad-core" / "core-config.yaml").write_text("a: 1\n")
        (tmp_path / "bmad-config.json").write_text("{}")
        assert resolve_host_config(tmp_path) == tmp_path / ".bmad-core" / "core-config.yaml"

    def test_falls_back_to_json(self, tmp_path: Path) -> None:
        (tmp_path / "bmad-config.json").write_text("{}")
        assert resolve_host_config(tmp_path) == tmp_path / "bmad-config.json"

    def test_explicit_relative_path(self, tmp_path: Path) -> None:
        assert resolve_host_config(tmp_path, "conf/host.yaml") == tmp_path / "conf" / "host.yaml"

    def test_explicit_absolute_path(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere.yaml"
        assert resolve_host_config(tmp_path / "proj", target) == target
