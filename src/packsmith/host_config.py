"""Register a pack in the host project's configuration document.

The host document (YAML, or JSON when the file ends in ``.json``) carries an
``expansionPacks`` registry. Registration is idempotent: an entry for the
pack id is created once, and only overwritten when reinstalling a different
version. The registry may be a mapping keyed by pack id, or a list of
entries carrying ``name`` (older ``bmad-config.json`` files).

For YAML, only the text span of the registry node is rewritten; everything
outside it (comments, other keys, formatting) is kept byte-for-byte.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import yaml

from packsmith.core import HostConfigError, PackDescriptor, write_atomic

logger = logging.getLogger(__name__)

REGISTRY_KEY = "expansionPacks"

MergeOutcome = Literal["created", "updated", "unchanged", "skipped"]


@dataclass(frozen=True)
class HostConfigEntry:
    enabled: bool
    version: str
    slash_prefix: str
    agents: tuple[str, ...]
    domain: str
    path: str

    @classmethod
    def from_descriptor(cls, descriptor: PackDescriptor, install_path: str) -> HostConfigEntry:
        return cls(
            enabled=True,
            version=descriptor.version,
            slash_prefix=descriptor.slash_prefix,
            agents=tuple(dict.fromkeys(descriptor.agent_names)),
            domain=descriptor.domain,
            path=install_path,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "version": self.version,
            "slashPrefix": self.slash_prefix,
            "agents": list(self.agents),
            "domain": self.domain,
            "path": self.path,
        }


@dataclass(frozen=True)
class MergeResult:
    outcome: MergeOutcome
    path: Path | None
    message: str

    @property
    def changed(self) -> bool:
        return self.outcome in ("created", "updated")


# ---------------------------------------------------------------------------
# Registry upsert (format independent)
# ---------------------------------------------------------------------------


def _upsert(registry: dict[str, Any] | list[Any], pack_id: str, entry: dict[str, Any], *, reinstall: bool) -> MergeOutcome:
    """Insert or update *pack_id* in *registry* in place."""
    existing: dict[str, Any] | None = None
    if isinstance(registry, dict):
        if pack_id not in registry or registry[pack_id] is None:
            registry[pack_id] = dict(entry)
            return "created"
        existing = registry[pack_id]
        if not isinstance(existing, dict):
            raise HostConfigError(f"{REGISTRY_KEY}.{pack_id} must be a mapping")
    else:
        for item in registry:
            if isinstance(item, dict) and item.get("name") == pack_id:
                existing = item
                break
        if existing is None:
            registry.append({"name": pack_id, **entry})
            return "created"

    if reinstall and str(existing.get("version")) != entry["version"]:
        existing.update(entry)
        return "updated"
    return "unchanged"


def _registry_of(document: dict[str, Any]) -> dict[str, Any] | list[Any]:
    registry = document.get(REGISTRY_KEY)
    if registry is None:
        return {}
    if not isinstance(registry, (dict, list)):
        raise HostConfigError(f"'{REGISTRY_KEY}' must be a mapping or a list, got {type(registry).__name__}")
    return registry


# ---------------------------------------------------------------------------
# JSON host documents
# ---------------------------------------------------------------------------


def _merge_json(host_path: Path, pack_id: str, entry: dict[str, Any], *, reinstall: bool) -> MergeOutcome:
    try:
        document = json.loads(host_path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise HostConfigError(f"{host_path} is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise HostConfigError(f"Invalid JSON in {host_path}: {exc}") from exc
    if not isinstance(document, dict):
        raise HostConfigError(f"{host_path} must contain a JSON object")

    registry = _registry_of(document)
    outcome = _upsert(registry, pack_id, entry, reinstall=reinstall)
    if outcome == "unchanged":
        return outcome
    document[REGISTRY_KEY] = registry
    write_atomic(host_path, json.dumps(document, indent=2) + "\n")
    return outcome


# ---------------------------------------------------------------------------
# YAML host documents
# ---------------------------------------------------------------------------


def _dump_registry(registry: dict[str, Any] | list[Any]) -> str:
    return yaml.safe_dump({REGISTRY_KEY: registry}, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _registry_span(text: str) -> tuple[int, int] | None:
    """Return the [start, end) character span of the top-level registry node.

    None when the document can't be spliced in place (flow-style root,
    indented root keys).
    """
    root = yaml.compose(text, Loader=yaml.SafeLoader)
    if not isinstance(root, yaml.MappingNode) or root.flow_style:
        return None
    for key_node, value_node in root.value:
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == REGISTRY_KEY:
            if key_node.start_mark.column != 0:
                return None
            return key_node.start_mark.index, value_node.end_mark.index
    return None


def _appendable(text: str) -> bool:
    """True when a block-style registry can be appended to *text* as-is.

    Requires a block mapping root with column-0 keys (or no root at all)
    and no explicit ``...`` document end marker.
    """
    for event in yaml.parse(text, Loader=yaml.SafeLoader):
        if isinstance(event, yaml.DocumentEndEvent) and event.explicit:
            return False
    root = yaml.compose(text, Loader=yaml.SafeLoader)
    if root is None:
        return True
    if not isinstance(root, yaml.MappingNode) or root.flow_style:
        return False
    return all(key_node.start_mark.column == 0 for key_node, _ in root.value)


def _split_trailing_trivia(region: str) -> tuple[str, str]:
    """Split blank and comment lines off the end of *region*."""
    lines = region.splitlines(keepends=True)
    keep = len(lines)
    while keep > 1 and (not lines[keep - 1].strip() or lines[keep - 1].lstrip().startswith("#")):
        keep -= 1
    return "".join(lines[:keep]), "".join(lines[keep:])


def _merge_yaml(host_path: Path, pack_id: str, entry: dict[str, Any], *, reinstall: bool) -> MergeOutcome:
    try:
        text = host_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise HostConfigError(f"{host_path} is not valid UTF-8: {exc}") from exc
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise HostConfigError(f"Invalid YAML in {host_path}: {exc}") from exc
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise HostConfigError(f"{host_path} must contain a YAML mapping")

    registry = _registry_of(document)
    outcome = _upsert(registry, pack_id, entry, reinstall=reinstall)
    if outcome == "unchanged":
        return outcome

    block = _dump_registry(registry)
    span = _registry_span(text) if REGISTRY_KEY in document else None
    if REGISTRY_KEY not in document and _appendable(text):
        if text and not text.endswith("\n"):
            text += "\n"
        new_text = f"{text}\n{block}" if text.strip() else block
    elif span is not None:
        start, end = span
        body, trivia = _split_trailing_trivia(text[start:end])
        if not body.endswith("\n"):
            block = block.rstrip("\n")
        new_text = text[:start] + block + trivia + text[end:]
    else:
        logger.warning("Rewriting %s in full: registry can't be edited in place", host_path)
        new_text = yaml.safe_dump(
            {**document, REGISTRY_KEY: registry}, sort_keys=False, default_flow_style=False, allow_unicode=True
        )

    _check_rendered(host_path, new_text, {**document, REGISTRY_KEY: registry})
    write_atomic(host_path, new_text)
    return outcome


def _check_rendered(host_path: Path, new_text: str, expected: dict[str, Any]) -> None:
    """Refuse to write a host document that doesn't load back as *expected*."""
    try:
        reloaded = yaml.safe_load(new_text)
    except yaml.YAMLError as exc:
        raise HostConfigError(f"Refusing to write {host_path}: merged document does not parse: {exc}") from exc
    if reloaded != expected:
        raise HostConfigError(f"Refusing to write {host_path}: merged document does not match the registry update")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def merge_host_config(
    host_path: Path | None,
    descriptor: PackDescriptor,
    *,
    install_path: str,
    reinstall: bool = False,
) -> MergeResult:
    """Register *descriptor* in the host document at *host_path*.

    A missing host document (or directory) is not an error: the pack is
    then installed standalone and the result outcome is ``skipped``.
    """
    if host_path is None:
        logger.warning("No host configuration found; installing %s standalone", descriptor.id)
        return MergeResult("skipped", None, "No host configuration found")
    if not host_path.parent.is_dir():
        logger.warning("Host config directory %s does not exist; skipping registration", host_path.parent)
        return MergeResult("skipped", host_path, f"Directory not found: {host_path.parent}")
    if not host_path.is_file():
        logger.warning("Host config %s does not exist; skipping registration", host_path)
        return MergeResult("skipped", host_path, f"Not found: {host_path}")

    entry = HostConfigEntry.from_descriptor(descriptor, install_path).to_dict()
    if host_path.suffix == ".json":
        outcome = _merge_json(host_path, descriptor.id, entry, reinstall=reinstall)
    else:
        outcome = _merge_yaml(host_path, descriptor.id, entry, reinstall=reinstall)

    messages = {
        "created": f"Registered {descriptor.id} in {host_path}",
        "updated": f"Updated {descriptor.id} to v{descriptor.version} in {host_path}",
        "unchanged": f"{descriptor.id} already registered in {host_path}",
    }
    logger.info(messages[outcome], extra={"pack": descriptor.id, "path": str(host_path)})
    return MergeResult(outcome, host_path, messages[outcome])
