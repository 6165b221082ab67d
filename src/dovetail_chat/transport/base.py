"""Base class for the duplex channel to the remote agent."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)

AgentTextHandler = Callable[[str], None]
StatusHandler = Callable[[bool, str], None]


class TransportChannel(ABC):
    """A single long-lived connection to one remote endpoint.

    Subclasses implement ``connect``, ``disconnect`` and ``send_user_text``
    and call ``_dispatch_agent_text`` / ``_dispatch_status`` as inbound
    events arrive. Listener bookkeeping lives here so every channel
    deregisters the same way.
    """

    def __init__(self):
        self._agent_handlers: list[AgentTextHandler] = []
        self._status_handlers: list[StatusHandler] = []

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether outbound sends can currently be emitted."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection."""
        ...

    @abstractmethod
    async def send_user_text(self, text: str) -> None:
        """Emit one user message. No acknowledgement is awaited.

        Raises:
            ChannelDisconnected: If the channel is not open.
        """
        ...

    def on_agent_text(self, handler: AgentTextHandler) -> Callable[[], None]:
        """Register a listener for inbound agent messages.

        Returns:
            A callable that deregisters the listener.
        """
        self._agent_handlers.append(handler)
        return lambda: self._remove(self._agent_handlers, handler)

    def on_status(self, handler: StatusHandler) -> Callable[[], None]:
        """Register a listener for connect/disconnect transitions.

        Handlers receive ``(connected, reason)``.
        """
        self._status_handlers.append(handler)
        return lambda: self._remove(self._status_handlers, handler)

    def clear_listeners(self) -> None:
        """Deregister every listener."""
        self._agent_handlers.clear()
        self._status_handlers.clear()

    def _dispatch_agent_text(self, text: str) -> None:
        for handler in list(self._agent_handlers):
            handler(text)

    def _dispatch_status(self, connected: bool, reason: str = "") -> None:
        for handler in list(self._status_handlers):
            handler(connected, reason)

    @staticmethod
    def _remove(handlers: list, handler) -> None:
        try:
            handlers.remove(handler)
        except ValueError:
            logger.debug("Listener already removed")
