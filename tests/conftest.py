"""Shared pytest fixtures for packsmith tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from packsmith.core import InstallationContext
from tests._pack_factory import write_pack


@pytest.fixture
def pack_root(tmp_path: Path) -> Path:
    """A complete pack source tree."""
    return write_pack(tmp_path / "pack")


@pytest.fixture
def target_root(tmp_path: Path) -> Path:
    """An empty host project directory."""
    target = tmp_path / "project"
    target.mkdir()
    return target


@pytest.fixture
def host_yaml(target_root: Path) -> Path:
    """A host core-config.yaml with unrelated content and comments."""
    core = target_root / ".bmad-core"
    core.mkdir()
    path = core / "core-config.yaml"
    path.write_text(
        "# Core configuration\n"
        "markdownExploder: true\n"
        "prd:\n"
        "  prdFile: docs/prd.md  # keep me\n"
        "  prdVersion: v4\n"
    )
    return path


@pytest.fixture
def context(pack_root: Path, target_root: Path) -> InstallationContext:
    """Context for installing the default pack into the project, no host config."""
    return InstallationContext(pack_root=pack_root, target_root=target_root)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
