"""Plugin descriptor resolution.

Layout of the plugin root::

    plugins/
        music/              # directory plugin
            plugin.yml      # name (required), enabled, version
            __init__.py     # default index module
        admin/
            plugin.yml      # name: Admin
            admin.py        # module named after the plugin
        hello.py            # single-file plugin, no sidecar, always enabled

Errors are logged as warnings and the entry is skipped: a broken plugin
directory must not prevent the rest of the scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from plughost.errors import DiscoveryError

SIDECAR_FILENAME = "plugin.yml"
INDEX_MODULE = "__init__.py"
MODULE_SUFFIX = ".py"

logger = logging.getLogger(__name__)


class PluginConfig(BaseModel):
    """Contents of a ``plugin.yml`` sidecar."""

    model_config = {"frozen": True, "extra": "allow"}

    name: str
    enabled: bool = True
    version: str | None = None

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value.strip():
            msg = "name must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("version", mode="before")
    @classmethod
    def _stringify_version(cls, value: Any) -> Any:
        # YAML reads ``version: 1.0`` as a float
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


@dataclass(frozen=True)
class PluginDescriptor:
    """A discovered plugin whose entry module has been resolved."""

    directory: Path
    name: str
    entry: Path
    enabled: bool = True
    version: str | None = None
    single_file: bool = False


@dataclass
class DiscoveryReport:
    """Outcome of scanning the plugin root."""

    descriptors: list[PluginDescriptor] = field(default_factory=list)
    skipped: list[DiscoveryError] = field(default_factory=list)


def read_plugin_config(directory: Path) -> PluginConfig:
    """Read and validate ``plugin.yml`` from *directory*.

    Raises:
        DiscoveryError: The file is missing, not YAML, or fails validation.
    """
    path = directory / SIDECAR_FILENAME
    try:
        data = YAML(typ="safe").load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise DiscoveryError(directory, f"no {SIDECAR_FILENAME} found") from exc
    except (OSError, UnicodeError, YAMLError) as exc:
        raise DiscoveryError(directory, f"unreadable {SIDECAR_FILENAME}: {exc}") from exc

    if not isinstance(data, dict):
        raise DiscoveryError(directory, f"{SIDECAR_FILENAME} is not a mapping")
    try:
        return PluginConfig.model_validate(data)
    except ValidationError as exc:
        raise DiscoveryError(directory, f"invalid {SIDECAR_FILENAME}: {exc}") from exc


def is_plugin_file(path: Path) -> bool:
    """Whether *path* names a loadable single-file plugin module."""
    return path.suffix == MODULE_SUFFIX and not path.name.startswith(("_", "."))


def find_index_module(directory: Path) -> Path | None:
    """Return the directory's default index module, if present."""
    candidate = directory / INDEX_MODULE
    return candidate if candidate.is_file() else None


def find_named_module(directory: Path, name: str) -> Path | None:
    """Return the module whose file name matches *name* case-insensitively."""
    wanted = f"{name}{MODULE_SUFFIX}".lower()
    for candidate in sorted(directory.iterdir()):
        if candidate.is_file() and candidate.name.lower() == wanted:
            return candidate
    return None


def resolve_descriptor(directory: Path) -> PluginDescriptor:
    """Build a descriptor for a plugin directory.

    Entry-module resolution order: the default index module, then a module
    named after the declared plugin name.

    Raises:
        DiscoveryError: No usable sidecar or no entry module.
    """
    config = read_plugin_config(directory)
    entry = find_index_module(directory) or find_named_module(directory, config.name)
    if entry is None:
        raise DiscoveryError(directory, f"no plugin file found for {config.name}")
    return PluginDescriptor(
        directory=directory,
        name=config.name,
        entry=entry,
        enabled=config.enabled,
        version=config.version,
    )


def _single_file_descriptor(path: Path) -> PluginDescriptor:
    return PluginDescriptor(
        directory=path.parent,
        name=path.stem,
        entry=path,
        single_file=True,
    )


def _is_hidden(path: Path) -> bool:
    return path.name.startswith(("_", "."))


def discover_plugins(root: Path) -> DiscoveryReport:
    """Scan *root* for directory plugins and single-file plugins.

    Never raises for individual entries; skipped entries are collected
    in the report and logged as warnings.
    """
    report = DiscoveryReport()
    if not root.is_dir():
        logger.warning("Plugin directory does not exist: %s", root)
        return report

    for entry in sorted(root.iterdir()):
        if _is_hidden(entry):
            continue
        if entry.is_dir():
            try:
                report.descriptors.append(resolve_descriptor(entry))
            except DiscoveryError as exc:
                logger.warning("Skipping plugin directory %s: %s", entry.name, exc.reason)
                report.skipped.append(exc)
        elif is_plugin_file(entry):
            report.descriptors.append(_single_file_descriptor(entry))

    return report


def find_plugin_path(root: Path, name: str) -> Path | None:
    """Rescan *root* for the entry module of the plugin called *name*.

    Matches a directory whose sidecar declares *name*, or a single-file
    plugin whose file name starts with *name*.
    """
    if not root.is_dir():
        return None

    for entry in sorted(root.iterdir()):
        if _is_hidden(entry):
            continue
        if entry.is_dir():
            try:
                descriptor = resolve_descriptor(entry)
            except DiscoveryError:
                continue
            if descriptor.name == name:
                return descriptor.entry
        elif is_plugin_file(entry) and entry.name.startswith(name):
            return entry
    return None
