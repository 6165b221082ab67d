"""Exception taxonomy for the chat client."""

from __future__ import annotations


class ChatError(Exception):
    """Base exception for chat session errors."""

    pass


class UnsupportedPlatform(ChatError):
    """No dictation capability exists on this platform."""

    def __init__(self, message: str = "Speech recognition is not supported here."):
        super().__init__(message)


class DictationError(ChatError):
    """The dictation engine reported a failure."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Dictation failed: {reason}")


class NoPendingEntry(ChatError):
    """A pending entry was expected in the message log but none exists."""

    pass


class InvariantViolation(ChatError):
    """A message log invariant would be broken by the requested mutation."""

    pass


class ChannelDisconnected(ChatError):
    """The transport channel is not open."""

    def __init__(self, message: str = "Not connected"):
        super().__init__(message)
