"""InspectService — offline and remote views of the plugin setup.

Nothing here initializes plugins or writes to the remote registry:
``discover`` only reads the plugin root, ``preview`` imports plugin
modules to read their declared commands, ``remote`` only fetches.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from plughost.domain.commands import merge_commands
from plughost.errors import ConfigurationError, PlughostError, RegistrationError
from plughost.plugins.discovery import discover_plugins
from plughost.plugins.loader import instantiate_plugin
from plughost.plugins.reconciler import CommandReconciler
from plughost.remote.client import CommandRegistryClient
from plughost.services.result import ServiceResult

if TYPE_CHECKING:
    from plughost.config.settings import PlughostSettings
    from plughost.plugins.discovery import DiscoveryReport, PluginDescriptor
    from plughost.remote.client import CommandRegistryProtocol

logger = logging.getLogger(__name__)


def _skipped_warnings(report: DiscoveryReport) -> list[str]:
    return [f"Skipped {exc.path.name}: {exc.reason}" for exc in report.skipped]


def _descriptor_row(descriptor: PluginDescriptor) -> dict[str, Any]:
    return {
        "name": descriptor.name,
        "kind": "file" if descriptor.single_file else "directory",
        "enabled": descriptor.enabled,
        "version": descriptor.version,
        "entry": str(descriptor.entry),
    }


class InspectService:
    """Read-only inspection of plugins and the remote command table."""

    def __init__(self, settings: PlughostSettings) -> None:
        self._settings = settings

    def _scan(self, op: str) -> DiscoveryReport | ServiceResult:
        root = self._settings.plugin_root
        if not root.is_dir():
            return ServiceResult.failure(
                op,
                "PLUGIN_DIR_NOT_FOUND",
                f"Plugin directory does not exist: {root}",
                root=str(root),
            )
        return discover_plugins(root)

    def discover(self) -> ServiceResult:
        """List every plugin the host would try to load."""
        report = self._scan("discover")
        if isinstance(report, ServiceResult):
            return report

        return ServiceResult.success(
            "discover",
            {
                "root": str(self._settings.plugin_root),
                "count": len(report.descriptors),
                "items": [_descriptor_row(d) for d in report.descriptors],
            },
            _skipped_warnings(report),
        )

    def preview(self) -> ServiceResult:
        """Show the command table the plugins would merge into the registry.

        Plugin modules are imported and instantiated but ``init`` is never
        called. Plugins disabled in their sidecar are listed but contribute
        no commands.
        """
        report = self._scan("preview")
        if isinstance(report, ServiceResult):
            return report

        warnings = _skipped_warnings(report)
        owners: dict[str, str] = {}
        table: list[dict[str, Any]] = []
        items: list[dict[str, Any]] = []

        for descriptor in report.descriptors:
            try:
                plugin = instantiate_plugin(descriptor.entry)
                entries = CommandReconciler.declared_commands(plugin)
            except PlughostError as exc:
                warnings.append(str(exc))
                continue

            names = [entry["name"] for entry in entries]
            items.append(
                {
                    "name": plugin.name,
                    "enabled": descriptor.enabled,
                    "commands": names,
                }
            )
            if not descriptor.enabled:
                continue
            for name in names:
                previous = owners.setdefault(name, plugin.name)
                if previous != plugin.name:
                    warnings.append(
                        f"Command '{name}' declared by both {previous} and {plugin.name}"
                    )
            table = merge_commands(table, entries)

        return ServiceResult.success(
            "preview",
            {"count": len(table), "items": items, "commands": table},
            warnings,
        )

    async def remote(self, registry: CommandRegistryProtocol | None = None) -> ServiceResult:
        """Fetch the live remote command table."""
        application_id = self._settings.registry.application_id
        if not application_id:
            return ServiceResult.failure(
                "remote",
                "NO_APPLICATION_ID",
                "Set [registry] application_id or PLUGHOST_REGISTRY__APPLICATION_ID",
            )

        owned: CommandRegistryClient | None = None
        if registry is None:
            try:
                owned = CommandRegistryClient(self._settings.registry)
            except ConfigurationError as exc:
                return ServiceResult.failure("remote", "NO_TOKEN", str(exc))
            registry = owned

        try:
            table = await registry.fetch_commands(application_id)
        except RegistrationError as exc:
            logger.debug("Remote fetch failed", exc_info=True)
            return ServiceResult.failure(
                "remote", "REGISTRY_ERROR", str(exc), status_code=exc.status_code
            )
        finally:
            if owned is not None:
                await owned.aclose()

        return ServiceResult.success(
            "remote",
            {
                "application_id": application_id,
                "count": len(table),
                "items": [
                    {"name": entry.get("name"), "description": entry.get("description", "")}
                    for entry in table
                ],
            },
        )
