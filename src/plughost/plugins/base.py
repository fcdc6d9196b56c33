"""Plugin capability interface.

Every plugin module exposes ``PLUGIN_CLASS = YourPlugin`` where
``YourPlugin`` subclasses :class:`Plugin`. The loader instantiates it,
the manager owns its ``enabled`` flag and its ``commands`` list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from plughost.domain.commands import command_name

if TYPE_CHECKING:
    from plughost.host import HostClientProtocol, InteractionProtocol

ENTRY_POINT = "PLUGIN_CLASS"


class Plugin(ABC):
    """Abstract base class for all plugins.

    Subclasses set the metadata attributes and implement :meth:`init` and
    :meth:`execute_slash_command`. Commands are declared by overriding
    :meth:`get_slash_commands`.

    Example::

        class MusicPlugin(Plugin):
            name = "Music"
            description = "Plays music"

            async def init(self, client):
                self.client = client

            def get_slash_commands(self):
                return [{"name": "play", "description": "Play a track"}]

            async def execute_slash_command(self, interaction):
                await interaction.reply("Playing!")

        PLUGIN_CLASS = MusicPlugin
    """

    # Required metadata; subclasses must set name
    name: str = ""
    description: str = ""
    version: str = "0.1.0"
    author: str = ""

    def __init__(self) -> None:
        # Owned by the plugin manager, not the plugin.
        self.enabled: bool = False
        self.commands: list[dict[str, Any]] = []

    @abstractmethod
    async def init(self, client: HostClientProtocol) -> None:
        """Called once after instantiation, before the plugin is registered."""

    async def on_enable(self) -> None:
        """Optional hook for custom startup logic.

        Advisory only: the manager never calls it. Plugins that need it
        call it from their own code.
        """

    async def on_disable(self) -> None:
        """Optional hook for custom shutdown logic. Advisory, like on_enable."""

    def get_slash_commands(self) -> list[Any]:
        """Return the command definitions this plugin wants registered.

        An empty list means the plugin registers nothing remotely.
        """
        return []

    @abstractmethod
    async def execute_slash_command(self, interaction: InteractionProtocol) -> None:
        """Handle an interaction for one of this plugin's commands."""

    def command_names(self) -> set[str]:
        """Lower-cased names of the commands currently live for this plugin."""
        return {command_name(cmd) for cmd in self.commands}

    def get_info(self) -> dict[str, Any]:
        """Return plugin metadata as a dict."""
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "enabled": self.enabled,
            "commands": sorted(self.command_names()),
        }

    def __repr__(self) -> str:
        state = "enabled" if self.enabled else "disabled"
        return f"<Plugin {self.name} v{self.version} ({state})>"
