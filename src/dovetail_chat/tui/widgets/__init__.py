"""Widgets for the chat screen."""

from .chat_display import ChatDisplay, entry_renderables
from .status_bar import StatusBar, status_line

__all__ = ["ChatDisplay", "entry_renderables", "StatusBar", "status_line"]
