"""Dovetail chat - a chat client for a remote conversational agent."""

__version__ = "0.1.0"

from .config import Settings, get_settings
from .errors import (
    ChannelDisconnected,
    ChatError,
    DictationError,
    InvariantViolation,
    NoPendingEntry,
    UnsupportedPlatform,
)
from .chat import ChatEntry, MessageLog, SessionController, SessionView
from .runtime import ChatRuntime

__all__ = [
    "Settings",
    "get_settings",
    "ChatError",
    "ChannelDisconnected",
    "DictationError",
    "InvariantViolation",
    "NoPendingEntry",
    "UnsupportedPlatform",
    "ChatEntry",
    "MessageLog",
    "SessionController",
    "SessionView",
    "ChatRuntime",
]
