"""Plugin lifecycle orchestration.

Discovery: directory plugins (``plugin.yml`` + entry module) and
single-file plugins under the plugin root.
Lifecycle: load -> (auto-)enable -> disable -> reload, with command
registration kept in sync with the remote registry at every step.
Observers: pluggy hooks fired after each transition.
Startup: ``start`` loads everything once the host client reports ready.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pluggy

from plughost.config.settings import PlughostSettings
from plughost.errors import DiscoveryError, LoadError, PluginNotFoundError
from plughost.host import READY_EVENT
from plughost.plugins.discovery import (
    SIDECAR_FILENAME,
    discover_plugins,
    find_plugin_path,
    read_plugin_config,
)
from plughost.plugins.hookspecs import PROJECT_NAME, PlughostHookSpec
from plughost.plugins.loader import instantiate_plugin
from plughost.plugins.reconciler import CommandReconciler
from plughost.plugins.registry import PathCache, PluginRegistry
from plughost.plugins.router import InteractionRouter
from plughost.remote.client import CommandRegistryClient
from plughost.retry import SleepFn, retry_async
from plughost.runtime import install_exception_handlers

if TYPE_CHECKING:
    from plughost.host import HostClientProtocol
    from plughost.plugins.base import Plugin
    from plughost.remote.client import CommandRegistryProtocol

logger = logging.getLogger(__name__)


class PluginManager:
    """Loads plugins and drives their enable/disable/reload lifecycle.

    Parameters:
        client: Host client handed to every plugin's ``init`` and used for
            readiness checks and interaction routing.
        settings: Host settings. Discovered from ``plughost.toml`` / env
            when omitted.
        registry: Remote command registry. Built from ``settings.registry``
            when omitted, which requires a registry token.
        sleep: Delay function used between retries.
    """

    def __init__(
        self,
        client: HostClientProtocol,
        settings: PlughostSettings | None = None,
        *,
        registry: CommandRegistryProtocol | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._settings = settings or PlughostSettings.from_cli()
        self._policy = self._settings.retry_policy
        self._sleep = sleep

        self._owned_remote: CommandRegistryClient | None = None
        if registry is None:
            self._owned_remote = CommandRegistryClient(self._settings.registry)
            registry = self._owned_remote

        self._plugins = PluginRegistry()
        self._paths = PathCache()
        self._reconciler = CommandReconciler(
            registry,
            client,
            policy=self._policy,
            sleep=sleep,
        )
        self._router = InteractionRouter(
            self._plugins,
            failure_message=self._settings.router.failure_message,
        )
        self._hooks = pluggy.PluginManager(PROJECT_NAME)
        self._hooks.add_hookspecs(PlughostHookSpec)
        self._started = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def plugin_dir(self) -> Path:
        """Root directory scanned for plugins."""
        return self._settings.plugin_root

    @property
    def registry(self) -> PluginRegistry:
        return self._plugins

    @property
    def path_cache(self) -> PathCache:
        return self._paths

    @property
    def router(self) -> InteractionRouter:
        return self._router

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Install the process handlers and load plugins once the client is ready.

        Loads right away when the client already reports ready, otherwise
        on its first ``ready`` event. Plugins are loaded at most once.
        """
        install_exception_handlers()
        if self._client.is_ready():
            await self._load_on_startup()
        else:
            self._client.on(READY_EVENT, self._on_ready)
            logger.debug("Waiting for client ready event")

    async def _on_ready(self, *args: object) -> None:
        await self._load_on_startup()

    async def _load_on_startup(self) -> None:
        if self._started:
            return
        self._started = True
        await self.load_plugins()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_plugins(self) -> list[str]:
        """Discover and load every plugin under the plugin root.

        Modules load concurrently. A failing module is logged and skipped;
        it never aborts its siblings.

        Returns the names of the plugins that loaded successfully.
        """
        report = discover_plugins(self.plugin_dir)
        for descriptor in report.descriptors:
            if not descriptor.single_file:
                self._paths.record(descriptor.name, descriptor.entry)

        results = await asyncio.gather(
            *(self._load_isolated(descriptor.entry) for descriptor in report.descriptors)
        )
        loaded = [name for name in results if name is not None]
        logger.info("Loaded %d plugins", len(self._plugins))
        return loaded

    async def _load_isolated(self, path: Path) -> str | None:
        try:
            plugin = await self.load_plugin(path)
        except Exception:
            logger.error("Error loading plugin %s", path, exc_info=True)
            return None
        return plugin.name

    def _load_options(self, path: Path) -> tuple[bool, str | None]:
        """Return ``(enabled, version_override)`` for the module at *path*.

        Single-file plugins in the plugin root have no sidecar and are
        always enabled.
        """
        directory = path.parent
        if directory.resolve() == self.plugin_dir.resolve():
            return True, None
        if not (directory / SIDECAR_FILENAME).is_file():
            logger.info("No config found for %s, defaulting to enabled", path)
            return True, None
        try:
            config = read_plugin_config(directory)
        except DiscoveryError as exc:
            logger.warning("Ignoring config for %s: %s", path, exc.reason)
            return True, None
        return config.enabled, config.version

    async def load_plugin(self, path: Path | str) -> Plugin:
        """Import, initialize, and register the plugin at *path*.

        Import, instantiation, name validation, and ``init`` form the
        retried unit. The plugin is auto-enabled afterwards when its
        config allows it and plugins are enabled globally.

        Raises:
            LoadError: The module could not be loaded after all retries.
            RegistrationError: Auto-enable failed. The plugin stays loaded
                and marked enabled.
        """
        path = Path(path)
        enabled, version = self._load_options(path)

        async def attempt() -> Plugin:
            plugin = instantiate_plugin(path)
            if version:
                plugin.version = version
            try:
                await plugin.init(self._client)
            except Exception as exc:
                raise LoadError(path, f"init failed for {plugin.name}: {exc}") from exc
            return plugin

        plugin = await retry_async(
            attempt,
            policy=self._policy,
            sleep=self._sleep,
            label=f"loading plugin {path}",
        )

        self._plugins.add(plugin)
        self._paths.record(plugin.name, path)
        logger.info("Loaded plugin: %s", plugin.name)
        self._notify("plugin_loaded", plugin)

        if enabled and self._settings.plugins.enabled:
            await self.enable_plugin(plugin.name)
        return plugin

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def _require(self, name: str) -> Plugin:
        plugin = self._plugins.get(name)
        if plugin is None:
            raise PluginNotFoundError(name)
        return plugin

    async def enable_plugin(self, name: str) -> Plugin:
        """Mark *name* enabled and register its commands remotely.

        The flag flips before registration, so a registration failure
        leaves the plugin enabled locally; enabling again reconciles.
        """
        plugin = self._require(name)
        plugin.enabled = True
        if await self._reconciler.register(plugin):
            self.install_router()
        logger.info("Enabled plugin: %s", name)
        self._notify("plugin_enabled", plugin)
        return plugin

    async def disable_plugin(self, name: str) -> Plugin:
        """Mark *name* disabled and remove its commands remotely."""
        plugin = self._require(name)
        plugin.enabled = False
        await self._reconciler.unregister(plugin)
        logger.info("Disabled plugin: %s", name)
        self._notify("plugin_disabled", plugin)
        return plugin

    async def reload_plugin(self, name: str) -> Plugin:
        """Disable, drop, and load *name* again from its source file.

        Uses the cached entry path when it still exists, otherwise rescans
        the plugin root. Returns the fresh plugin instance.
        """
        self._require(name)
        await self.disable_plugin(name)
        self._plugins.remove(name)

        path = self._paths.get(name)
        if path is None or not path.is_file():
            path = find_plugin_path(self.plugin_dir, name)
        if path is None:
            self._paths.forget(name)
            raise LoadError(name, f"could not find plugin file for {name}")

        plugin = await self.load_plugin(path)
        logger.info("Reloaded plugin: %s", name)
        self._notify("plugin_reloaded", plugin)
        return plugin

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_plugin(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def get_all_plugins(self) -> list[Plugin]:
        return self._plugins.all()

    # ------------------------------------------------------------------
    # Routing, observers, shutdown
    # ------------------------------------------------------------------

    def install_router(self) -> bool:
        """Attach the interaction router to the host client (idempotent)."""
        return self._router.install(self._client)

    def add_observer(self, observer: object, name: str | None = None) -> None:
        """Register a pluggy observer implementing :class:`PlughostHookSpec` hooks."""
        self._hooks.register(observer, name=name)

    def remove_observer(self, observer: object) -> None:
        self._hooks.unregister(observer)

    def _notify(self, hook_name: str, plugin: Plugin) -> None:
        hook = getattr(self._hooks.hook, hook_name)
        try:
            hook(plugin=plugin)
        except Exception:
            logger.warning(
                "Observer hook %s failed for plugin %s",
                hook_name,
                plugin.name,
                exc_info=True,
            )

    async def aclose(self) -> None:
        """Close the registry client if this manager created it."""
        if self._owned_remote is not None:
            await self._owned_remote.aclose()
