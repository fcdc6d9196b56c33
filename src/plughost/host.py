"""Host client capability consumed by the plugin core.

The chat connection itself lives outside plughost. The core only needs
a readiness flag, the application identity used to address the remote
command registry, and a subscription point for interaction events.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

INTERACTION_EVENT = "interaction_create"
READY_EVENT = "ready"

Listener = Callable[..., Awaitable[Any]]


@runtime_checkable
class InteractionProtocol(Protocol):
    """An inbound interaction event.

    Example:
        class SlashInteraction:
            command_name = "play"

            def is_chat_input_command(self) -> bool:
                return True

            async def reply(self, content: str, *, ephemeral: bool = False) -> None:
                ...
    """

    @property
    def command_name(self) -> str:
        """Name of the invoked command."""
        ...

    def is_chat_input_command(self) -> bool:
        """True when the event invokes a registered command."""
        ...

    async def reply(self, content: str, *, ephemeral: bool = False) -> None:
        """Send a reply to the invoker."""
        ...


@runtime_checkable
class HostClientProtocol(Protocol):
    """What the plugin core needs from the connected chat client."""

    @property
    def application_id(self) -> str | None:
        """Application identity used to address the remote registry."""
        ...

    def is_ready(self) -> bool:
        """Whether the connection finished its startup handshake."""
        ...

    def on(self, event: str, listener: Listener) -> None:
        """Subscribe *listener* to *event*."""
        ...

    def listeners(self, event: str) -> list[Listener]:
        """Return the listeners currently attached to *event*."""
        ...


class HostClient:
    """Minimal event-emitting host client.

    Adapters for a real chat library subclass this (or implement
    :class:`HostClientProtocol` directly) and call :meth:`emit` from the
    library's own event callbacks.
    """

    def __init__(self, *, application_id: str | None = None, ready: bool = False) -> None:
        self.application_id = application_id
        self.ready = ready
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def is_ready(self) -> bool:
        return self.ready

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, ()))

    async def mark_ready(self) -> None:
        """Flip the readiness flag and notify ``ready`` listeners."""
        self.ready = True
        logger.debug("Host client ready: app=%s", self.application_id)
        await self.emit(READY_EVENT, self)

    async def emit(self, event: str, *args: Any) -> None:
        """Await every listener of *event* in subscription order."""
        for listener in self.listeners(event):
            await listener(*args)

    def __repr__(self) -> str:
        return f"<HostClient app={self.application_id} ready={self.ready}>"
