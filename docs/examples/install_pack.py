#!/usr/bin/env python3
"""Installing a pack into a project with the packsmith library API.

This example builds a small pack source tree, installs it twice into a
project that has a YAML host configuration, then edits an installed file
and shows how drift is reported:

  - validate_pack() on the source tree
  - install_pack() with an explicit InstallationContext
  - The host document gains an ``expansionPacks`` entry; comments survive
  - check_drift() / validate_installation() after a local edit

How to run:
    python docs/examples/install_pack.py
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import yaml

from packsmith.core import InstallationContext
from packsmith.install import install_pack
from packsmith.manifest import check_drift
from packsmith.validation import validate_installation, validate_pack

DESCRIPTOR = {
    "name": "demo-pack",
    "version": "0.1.0",
    "slashPrefix": "Demo",
    "agents": ["demo-agent"],
    "tasks": ["demo-task"],
}


def build_pack(root: Path) -> None:
    """Lay out a minimal but valid pack source tree."""
    root.mkdir()
    (root / "config.yaml").write_text(yaml.safe_dump(DESCRIPTOR, sort_keys=False))
    (root / "README.md").write_text("# Demo pack\n")
    (root / "CLAUDE.md").write_text("# Demo instructions\n")
    for dirname in ("agents", "tasks", "templates", "checklists", "data", "teams"):
        (root / dirname).mkdir()
    (root / "agents" / "demo-agent.md").write_text("# Demo agent\n")
    (root / "tasks" / "demo-task.md").write_text("# Demo task\n")
    (root / "teams" / "team-demo.txt").write_text("demo-agent\n")


def main() -> None:
    with tempfile.TemporaryDirectory(prefix="packsmith_demo_") as tmpdir:
        pack_root = Path(tmpdir) / "demo-pack"
        project = Path(tmpdir) / "project"
        build_pack(pack_root)
        (project / ".bmad-core").mkdir(parents=True)
        host = project / ".bmad-core" / "core-config.yaml"
        host.write_text("# Core settings\nmarkdownExploder: true\n")

        print("=== Validate source ===")
        report = validate_pack(pack_root)
        print(f"  valid={report.valid}  warnings={report.warnings}")

        context = InstallationContext(pack_root=pack_root, target_root=project, host_config_path=host)

        print("\n=== Install ===")
        result = install_pack(context)
        for name, count in result.counts().items():
            print(f"  {name:<11} {count}")
        print(f"  host: {result.host.outcome} ({result.host.message})")
        print("\n--- host document ---")
        print(host.read_text())

        print("=== Install again (host entry left alone) ===")
        result = install_pack(context)
        print(f"  host: {result.host.outcome}")

        print("\n=== Edit an installed agent ===")
        (result.install_root / "agents" / "demo-agent.md").write_text("# Edited locally\n")
        for entry in check_drift(result.manifest, project):
            print(f"  {entry.status:<10} {entry.path}")

        installed = validate_installation(result.install_root)
        print(f"\n  valid={installed.valid}")
        for warning in installed.warnings:
            print(f"  warning: {warning}")


if __name__ == "__main__":
    main()
