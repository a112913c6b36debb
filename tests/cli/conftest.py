"""Fixtures for CLI interface tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from packsmith.cli import cli


@pytest.fixture
def cli_in_project(
    target_root: Path, pack_root: Path, cli_runner: CliRunner
) -> Generator[tuple[CliRunner, Path, Path], None, None]:
    """Run from inside the project; returns (runner, project_root, pack_root)."""
    original_cwd = os.getcwd()
    os.chdir(str(target_root))
    yield cli_runner, target_root, pack_root
    os.chdir(original_cwd)


@pytest.fixture
def installed_project(cli_in_project: tuple[CliRunner, Path, Path]) -> tuple[CliRunner, Path, Path]:
    """Project with the default pack already installed via the CLI."""
    runner, project, pack = cli_in_project
    result = runner.invoke(cli, ["install", "--pack", str(pack)])
    assert result.exit_code == 0, result.output
    return runner, project, pack
