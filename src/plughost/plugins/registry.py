"""In-memory plugin table and the reload path cache.

Both are mutated synchronously between suspension points of the event
loop, so no lock is needed: a mutation is always fully applied before
another task runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from plughost.plugins.base import Plugin

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Name-keyed store of loaded plugins, in insertion order."""

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    def add(self, plugin: Plugin) -> None:
        """Insert *plugin*, replacing any plugin with the same name."""
        if not plugin.name:
            raise ValueError("Plugin must have a name")
        if plugin.name in self._plugins:
            # Last load wins.
            logger.warning("Plugin '%s' already registered, replacing", plugin.name)
        self._plugins[plugin.name] = plugin

    def get(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def remove(self, name: str) -> Plugin | None:
        """Remove and return the plugin called *name*, if any."""
        return self._plugins.pop(name, None)

    def all(self) -> list[Plugin]:
        return list(self._plugins.values())

    def names(self) -> list[str]:
        return list(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[Plugin]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)

    def __repr__(self) -> str:
        return f"<PluginRegistry [{len(self._plugins)} plugins]>"


class PathCache:
    """Plugin name -> last known entry module path.

    Lets a reload skip the directory rescan. A stale path falls back to
    the rescan; an entry is forgotten when the rescan finds nothing.
    """

    def __init__(self) -> None:
        self._paths: dict[str, Path] = {}

    def record(self, name: str, path: Path) -> None:
        self._paths[name] = path

    def get(self, name: str) -> Path | None:
        return self._paths.get(name)

    def forget(self, name: str) -> None:
        self._paths.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._paths

    def __len__(self) -> int:
        return len(self._paths)
