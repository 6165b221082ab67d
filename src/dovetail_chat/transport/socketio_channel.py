"""Socket.IO transport channel built on python-socketio's AsyncClient."""

from __future__ import annotations

import logging
from typing import Any

import socketio
from socketio.exceptions import BadNamespaceError
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from dovetail_chat.errors import ChannelDisconnected

from .base import TransportChannel

logger = logging.getLogger(__name__)


class SocketIOChannel(TransportChannel):
    """Duplex Socket.IO connection to the agent server.

    Outbound user text is emitted as ``user_event``; every ``agent_event``
    received is dispatched to the registered agent-text listeners in
    arrival order. Reconnection is left to the Socket.IO client; each
    transition is reported to status listeners.

    Usage:
        channel = SocketIOChannel("https://agent.example.com/")
        unsubscribe = channel.on_agent_text(print)
        await channel.connect()
        await channel.send_user_text("Hi")
    """

    def __init__(
        self,
        url: str,
        user_event: str = "userMessage",
        agent_event: str = "botMessage",
        namespace: str = "/",
        connect_timeout: float = 10.0,
        reconnection: bool = True,
        reconnection_attempts: int = 0,
        reconnection_delay: float = 1.0,
        client: socketio.AsyncClient | None = None,
    ):
        super().__init__()
        self.url = url
        self.user_event = user_event
        self.agent_event = agent_event
        self.namespace = namespace
        self.connect_timeout = connect_timeout

        self._client = client or socketio.AsyncClient(
            reconnection=reconnection,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            logger=False,
        )
        self._client.on("connect", self._on_connect, namespace=namespace)
        self._client.on("disconnect", self._on_disconnect, namespace=namespace)
        self._client.on("connect_error", self._on_connect_error, namespace=namespace)
        self._client.on(agent_event, self._on_agent_event, namespace=namespace)

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    async def connect(self) -> None:
        """Connect to the server.

        Raises:
            ChannelDisconnected: If the initial connection cannot be made.
        """
        logger.info(f"Connecting to {self.url}")
        try:
            await self._client.connect(
                self.url,
                namespaces=[self.namespace],
                wait_timeout=self.connect_timeout,
            )
        except SocketIOConnectionError as e:
            logger.warning(f"Connection to {self.url} failed: {e}")
            self._dispatch_status(False, str(e))
            raise ChannelDisconnected(f"Could not connect to {self.url}") from e

    async def disconnect(self) -> None:
        if self._client.connected:
            await self._client.disconnect()
        logger.info(f"Disconnected from {self.url}")

    async def send_user_text(self, text: str) -> None:
        if not self._client.connected:
            raise ChannelDisconnected()
        try:
            await self._client.emit(self.user_event, text, namespace=self.namespace)
        except BadNamespaceError as e:
            raise ChannelDisconnected(str(e)) from e

    async def _on_connect(self) -> None:
        logger.info(f"Connected to {self.url}")
        self._dispatch_status(True, "")

    async def _on_disconnect(self, *args: Any) -> None:
        reason = str(args[0]) if args else "server disconnected"
        self._dispatch_status(False, reason)

    async def _on_connect_error(self, data: Any = None) -> None:
        reason = data.get("message", str(data)) if isinstance(data, dict) else str(data)
        logger.warning(f"Connection error: {reason}")
        self._dispatch_status(False, reason)

    async def _on_agent_event(self, data: Any) -> None:
        if isinstance(data, dict):
            text = data.get("text") or data.get("message") or str(data)
        else:
            text = "" if data is None else str(data)
        self._dispatch_agent_text(text)
