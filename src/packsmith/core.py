"""Core model for packsmith: descriptors, categories, context, config, errors.

Every other module receives an :class:`InstallationContext` explicitly; nothing
in the engine reads the process working directory.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypedDict

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# File and directory names
# ---------------------------------------------------------------------------

DESCRIPTOR_FILENAME = "config.yaml"
MANIFEST_FILENAME = "install-manifest.yaml"
PROJECT_CONFIG_FILENAME = "packsmith.json"
PRIMARY_DOCS = ("README.md", "CLAUDE.md")
TEAMS_DIR_NAME = "teams"
TEAM_FILE_SUFFIX = ".txt"
INSTALL_TYPE = "expansion-pack"
DEFAULT_IDES: tuple[str, ...] = ("claude-code",)

# Host documents probed (in order) when no explicit path is configured.
HOST_CORE_DIR_NAME = ".bmad-core"
DEFAULT_HOST_CONFIGS: tuple[Path, ...] = (
    Path(HOST_CORE_DIR_NAME) / "core-config.yaml",
    Path("bmad-config.json"),
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class PackError(Exception):
    """Base class for every error raised by the packsmith engine."""


class InstallError(PackError):
    """Fatal installation failure. No manifest is written and the host is untouched."""


class DescriptorError(PackError, ValueError):
    """The pack descriptor is missing or malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ManifestError(PackError, ValueError):
    """The install manifest is malformed or internally inconsistent."""


class HostConfigError(PackError, ValueError):
    """The host configuration document can't be merged safely."""


class PackIOError(PackError, OSError):
    """Unexpected I/O failure (e.g. permission denied) during validation."""

    def __init__(self, path: Path, exc: OSError) -> None:
        self.path = path
        super().__init__(f"Cannot access {path}: {exc.strerror or exc}")


# ---------------------------------------------------------------------------
# Category table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategorySpec:
    """One row of the content category table."""

    name: str
    source_dir: str
    dest_dir: str
    extensions: tuple[str, ...]
    required: bool = True

    def matches(self, filename: str) -> bool:
        return filename.endswith(self.extensions)


CATEGORIES: tuple[CategorySpec, ...] = (
    CategorySpec("agents", "agents", "agents", (".md",)),
    CategorySpec("tasks", "tasks", "tasks", (".md",)),
    CategorySpec("templates", "templates", "templates", (".yaml", ".yml")),
    CategorySpec("checklists", "checklists", "checklists", (".md",)),
    CategorySpec("data", "data", "data", (".md",)),
)


# ---------------------------------------------------------------------------
# Pack descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackItem:
    """A named entry (agent or slash command) declared by a pack."""

    name: str
    description: str = ""


def _coerce_items(raw: Any, key: str, path: Path) -> tuple[PackItem, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise DescriptorError(path, f"'{key}' must be a list")
    items: list[PackItem] = []
    for entry in raw:
        if isinstance(entry, str):
            items.append(PackItem(entry))
        elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
            items.append(PackItem(entry["name"], str(entry.get("description") or "")))
        else:
            raise DescriptorError(path, f"'{key}' entries must be strings or mappings with a 'name'")
    return tuple(items)


@dataclass(frozen=True)
class PackDescriptor:
    """Identity and declared contents of a pack, loaded from its ``config.yaml``."""

    name: str
    version: str
    slash_prefix: str = ""
    short_title: str = ""
    description: str = ""
    author: str = ""
    domain: str = ""
    agents: tuple[PackItem, ...] = ()
    tasks: tuple[PackItem, ...] = ()
    templates: tuple[PackItem, ...] = ()
    commands: tuple[PackItem, ...] = ()

    @property
    def id(self) -> str:
        return self.name

    @property
    def install_dir_name(self) -> str:
        return f".{self.name}"

    @property
    def agent_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.agents)

    @classmethod
    def from_mapping(cls, data: dict[str, Any], path: Path) -> PackDescriptor:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise DescriptorError(path, "'name' is required")
        if "/" in name or "\\" in name or name.startswith("."):
            raise DescriptorError(path, f"'name' is not a valid directory name: {name!r}")
        version = data.get("version")
        if version is None or isinstance(version, (dict, list)):
            raise DescriptorError(path, "'version' is required")
        return cls(
            name=name.strip(),
            version=str(version),
            slash_prefix=str(data.get("slashPrefix") or ""),
            short_title=str(data.get("short-title") or ""),
            description=str(data.get("description") or "").strip(),
            author=str(data.get("author") or ""),
            domain=str(data.get("domain") or ""),
            agents=_coerce_items(data.get("agents"), "agents", path),
            tasks=_coerce_items(data.get("tasks"), "tasks", path),
            templates=_coerce_items(data.get("templates"), "templates", path),
            commands=_coerce_items(data.get("commands"), "commands", path),
        )


def read_descriptor_data(path: Path) -> dict[str, Any]:
    """Parse a descriptor document into a mapping without checking its fields.

    Raises FileNotFoundError if *path* is missing, DescriptorError if it is
    not UTF-8 YAML holding a mapping. Other OSErrors propagate.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise DescriptorError(path, f"not valid UTF-8: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DescriptorError(path, f"invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DescriptorError(path, "must be a YAML mapping")
    return data


def load_descriptor(path: Path) -> PackDescriptor:
    """Load and validate a pack descriptor."""
    try:
        data = read_descriptor_data(path)
    except FileNotFoundError as exc:
        raise DescriptorError(path, "not found") from exc
    return PackDescriptor.from_mapping(data, path)


# ---------------------------------------------------------------------------
# Installation context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InstallationContext:
    """Where a pack comes from, where it goes, and which host document it joins."""

    pack_root: Path
    target_root: Path
    host_config_path: Path | None = None
    ides: tuple[str, ...] = field(default=DEFAULT_IDES)

    @property
    def descriptor_path(self) -> Path:
        return self.pack_root / DESCRIPTOR_FILENAME

    def install_root(self, descriptor: PackDescriptor) -> Path:
        return self.target_root / descriptor.install_dir_name


# ---------------------------------------------------------------------------
# Project config (packsmith.json in the target root)
# ---------------------------------------------------------------------------


class ProjectConfig(TypedDict, total=False):
    """Shape of packsmith.json."""

    pack: str
    ides: list[str]
    host_config: str
    log: bool


def read_config(target_root: Path) -> ProjectConfig:
    """Read packsmith.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(ides=list(DEFAULT_IDES), log=True)
    config_path = target_root / PROJECT_CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        raw = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(raw, dict):
        logger.warning("%s is not a JSON object, using defaults", config_path)
        return defaults
    result: ProjectConfig = {**defaults, **raw}  # type: ignore[typeddict-item]
    return result


def resolve_host_config(target_root: Path, configured: str | Path | None = None) -> Path | None:
    """Return the host document to merge into, or None when there is none.

    An explicitly configured path is returned as-is (relative paths are taken
    from *target_root*) even if it does not exist, so the merge step can
    report the skip. Otherwise the first existing default candidate wins.
    """
    if configured:
        candidate = Path(configured)
        return candidate if candidate.is_absolute() else target_root / candidate
    for rel in DEFAULT_HOST_CONFIGS:
        candidate = target_root / rel
        if candidate.is_file():
            return candidate
    return None


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
