"""Remote command registry access.

This layer depends on stdlib, httpx, and plughost.config / plughost.errors.
It must never import from plugins, services, or commands.
"""

from plughost.remote.client import CommandRegistryClient, CommandRegistryProtocol

__all__ = ["CommandRegistryClient", "CommandRegistryProtocol"]
