"""Dispatches inbound interactions to the plugin that owns the command."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plughost.config.models import DEFAULT_FAILURE_MESSAGE
from plughost.errors import RoutingError
from plughost.host import INTERACTION_EVENT

if TYPE_CHECKING:
    from plughost.host import HostClientProtocol, InteractionProtocol
    from plughost.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)


class InteractionRouter:
    """Routes command interactions to enabled plugins.

    Plugins are scanned in registry order and the first enabled plugin
    whose live command names contain the invoked name handles the event.
    A failing handler never escapes :meth:`dispatch`.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        *,
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
    ) -> None:
        self._registry = registry
        self._failure_message = failure_message

    def is_installed(self, client: HostClientProtocol) -> bool:
        return any(listener == self.dispatch for listener in client.listeners(INTERACTION_EVENT))

    def install(self, client: HostClientProtocol) -> bool:
        """Attach :meth:`dispatch` to *client* unless already attached.

        Returns True if the listener was attached by this call.
        """
        if self.is_installed(client):
            return False
        client.on(INTERACTION_EVENT, self.dispatch)
        logger.debug("Interaction router installed")
        return True

    async def dispatch(self, interaction: InteractionProtocol) -> bool:
        """Hand *interaction* to the owning plugin.

        Returns True when a plugin handled it (successfully or not).
        """
        if not interaction.is_chat_input_command():
            return False

        invoked = interaction.command_name.lower()
        for plugin in self._registry:
            if not plugin.enabled or not plugin.commands:
                continue
            if invoked not in plugin.command_names():
                continue

            try:
                await plugin.execute_slash_command(interaction)
            except Exception as exc:
                error = RoutingError(plugin.name, invoked)
                logger.error("%s", error, exc_info=exc)
                await self._reply_failure(interaction)
            return True

        logger.debug("No enabled plugin handles command %s", invoked)
        return False

    async def _reply_failure(self, interaction: InteractionProtocol) -> None:
        try:
            await interaction.reply(self._failure_message, ephemeral=True)
        except Exception:
            logger.debug("Could not send failure reply", exc_info=True)
