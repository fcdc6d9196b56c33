"""Reconciles a plugin's declared commands with the remote command table.

The remote table is shared by every plugin and can only be replaced as a
whole, so both directions read the full table, edit it, and write it back:

- register:   fetch -> merge plugin commands by name -> replace all
- unregister: fetch -> drop the plugin's own names  -> replace all

INVARIANT: entries owned by other plugins are never removed or rewritten.
Read-merge-write spans several awaits, so each attempt holds a lock to
keep concurrent enable/disable calls from overwriting one another.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from plughost.domain.commands import merge_commands, normalize_command, remove_commands
from plughost.errors import RegistrationError
from plughost.retry import RetryPolicy, SleepFn, retry_async

if TYPE_CHECKING:
    from plughost.host import HostClientProtocol
    from plughost.plugins.base import Plugin
    from plughost.remote.client import CommandRegistryProtocol

logger = logging.getLogger(__name__)


class CommandReconciler:
    """Pushes and removes plugin commands against the remote registry.

    Parameters:
        registry: Remote command registry (full-table get / replace).
        client: Host client providing readiness and the application id.
        policy: Retry policy applied to each full read-merge-write.
        sleep: Delay function used between retries.
    """

    def __init__(
        self,
        registry: CommandRegistryProtocol,
        client: HostClientProtocol,
        *,
        policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._client = client
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._lock = asyncio.Lock()

    def _application_id(self) -> str:
        application_id = self._client.application_id
        if not self._client.is_ready() or not application_id:
            raise RegistrationError("client is not ready or application id not found")
        return application_id

    @staticmethod
    def declared_commands(plugin: Plugin) -> list[dict[str, Any]]:
        """The plugin's declared commands in wire shape."""
        declared = plugin.get_slash_commands() or []
        try:
            return [normalize_command(definition).to_wire() for definition in declared]
        except (TypeError, ValueError) as exc:
            raise RegistrationError(
                f"invalid command definition from plugin {plugin.name}: {exc}"
            ) from exc

    async def register(self, plugin: Plugin) -> bool:
        """Merge the plugin's commands into the remote table.

        Returns False without touching the registry when the plugin
        declares no commands. On success ``plugin.commands`` holds the
        entries now live remotely.
        """
        entries = self.declared_commands(plugin)
        if not entries:
            return False

        async def attempt() -> None:
            application_id = self._application_id()
            logger.info("Registering %d commands for %s", len(entries), plugin.name)
            async with self._lock:
                existing = await self._registry.fetch_commands(application_id)
                merged = merge_commands(existing, entries)
                await self._registry.replace_commands(application_id, merged)

        await retry_async(
            attempt,
            policy=self._policy,
            sleep=self._sleep,
            label=f"command registration for {plugin.name}",
        )
        plugin.commands = entries
        logger.info("Registered commands for %s", plugin.name)
        return True

    async def unregister(self, plugin: Plugin) -> bool:
        """Remove the plugin's live commands from the remote table.

        Only names the plugin actually registered are removed. Returns
        False without touching the registry when it has none.
        """
        owned = plugin.command_names()
        if not owned:
            return False

        async def attempt() -> None:
            application_id = self._application_id()
            logger.info("Unregistering commands for %s", plugin.name)
            async with self._lock:
                existing = await self._registry.fetch_commands(application_id)
                remaining = remove_commands(existing, owned)
                if len(remaining) == len(existing):
                    logger.debug("No live commands left to remove for %s", plugin.name)
                    return
                await self._registry.replace_commands(application_id, remaining)

        await retry_async(
            attempt,
            policy=self._policy,
            sleep=self._sleep,
            label=f"command unregistration for {plugin.name}",
        )
        plugin.commands = []
        logger.info("Unregistered commands for %s", plugin.name)
        return True
