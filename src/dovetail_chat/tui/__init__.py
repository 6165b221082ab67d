"""Terminal user interface for the Dovetail chat client."""

from .app import DovetailChatApp

__all__ = ["DovetailChatApp"]
