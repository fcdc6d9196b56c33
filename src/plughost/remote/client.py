"""HTTP client for the remote command registry.

The registry exposes the application's whole command table as one
resource: ``GET`` returns it, ``PUT`` replaces it in a single request.
There is no partial-update primitive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from plughost.config.models import RegistryConfig
from plughost.errors import ConfigurationError, RegistrationError

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandRegistryProtocol(Protocol):
    """What the reconciler needs from the remote registry."""

    async def fetch_commands(self, application_id: str) -> list[dict[str, Any]]:
        """Return the full command table."""
        ...

    async def replace_commands(
        self,
        application_id: str,
        commands: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Replace the full command table in one request."""
        ...


def commands_path(application_id: str) -> str:
    """Registry path of the application's command table."""
    return f"/applications/{application_id}/commands"


class CommandRegistryClient:
    """Async client for the command registry API.

    Example:
        async with CommandRegistryClient(RegistryConfig(token="...")) as registry:
            table = await registry.fetch_commands("1234")
            await registry.replace_commands("1234", table)
    """

    def __init__(
        self,
        config: RegistryConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.token:
            raise ConfigurationError(
                "Registry token is not set (PLUGHOST_REGISTRY__TOKEN or [registry] token)"
            )
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout),
                    headers={"Authorization": f"Bot {self.config.token}"},
                    transport=self._transport,
                )
            return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise RegistrationError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise RegistrationError(
                f"{method} {path} rejected: {response.text[:200]}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RegistrationError(f"{method} {path} returned invalid JSON") from exc

    async def fetch_commands(self, application_id: str) -> list[dict[str, Any]]:
        """Return the full command table of *application_id*."""
        body = await self._request("GET", commands_path(application_id))
        if not isinstance(body, list):
            raise RegistrationError("command table response is not a list")
        logger.debug("Fetched %d remote commands", len(body))
        return body

    async def replace_commands(
        self,
        application_id: str,
        commands: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Replace the full command table of *application_id* with *commands*."""
        body = await self._request("PUT", commands_path(application_id), json=commands)
        logger.debug("Replaced remote command table with %d commands", len(commands))
        return body if isinstance(body, list) else []

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self) -> CommandRegistryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
