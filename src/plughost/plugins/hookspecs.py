"""Pluggy hook specifications for plugin lifecycle observers.

Observers (audit logging, admin dashboards, metrics adapters) register
with :meth:`PluginManager.add_observer` and are notified after each
lifecycle transition completes. Observers are not plugins: they cannot
declare commands and are never routed interactions.

INVARIANT: Observer failures are warnings, never errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from plughost.plugins.base import Plugin

PROJECT_NAME = "plughost"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class PlughostHookSpec:
    """Hook specifications for the plughost lifecycle."""

    @hookspec
    def plugin_loaded(self, plugin: Plugin) -> None:
        """Called after a plugin is initialized and inserted into the registry."""

    @hookspec
    def plugin_enabled(self, plugin: Plugin) -> None:
        """Called after a plugin is enabled and its commands are registered."""

    @hookspec
    def plugin_disabled(self, plugin: Plugin) -> None:
        """Called after a plugin is disabled and its commands are removed."""

    @hookspec
    def plugin_reloaded(self, plugin: Plugin) -> None:
        """Called with the fresh instance after a reload completes."""
