"""Error taxonomy for the plugin host.

Discovery errors are skip-and-warn, load and registration errors are
retried before they surface, lookup errors surface immediately.
Routing errors never leave the interaction router.
"""

from __future__ import annotations

from pathlib import Path


class PlughostError(Exception):
    """Base class for every error raised by plughost."""


class ConfigurationError(PlughostError):
    """Raised when required settings (e.g. the registry token) are missing."""


class DiscoveryError(PlughostError):
    """A plugin directory could not be turned into a descriptor.

    Reasons:
    - ``plugin.yml`` missing or unparsable
    - no resolvable entry module
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class LoadError(PlughostError):
    """A plugin module could not be imported, instantiated, or initialized."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load plugin {path}: {reason}")


class PluginNotFoundError(PlughostError, LookupError):
    """No plugin with the given name is loaded."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Plugin {name} not found")


class RegistrationError(PlughostError):
    """A call against the remote command registry failed."""

    def __init__(self, reason: str, *, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        if status_code is not None:
            super().__init__(f"Command registry error ({status_code}): {reason}")
        else:
            super().__init__(f"Command registry error: {reason}")


class RoutingError(PlughostError):
    """A plugin's command handler raised while handling an interaction."""

    def __init__(self, plugin_name: str, command_name: str) -> None:
        self.plugin_name = plugin_name
        self.command_name = command_name
        super().__init__(f"Plugin {plugin_name} failed to execute command {command_name}")
