"""Transport channels to the remote agent."""

from .base import AgentTextHandler, StatusHandler, TransportChannel
from .socketio_channel import SocketIOChannel

__all__ = [
    "AgentTextHandler",
    "StatusHandler",
    "TransportChannel",
    "SocketIOChannel",
]
