"""Primary chat screen composing all widgets."""

from __future__ import annotations

import logging

from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Header, Input

from dovetail_chat.tui.widgets.chat_display import ChatDisplay
from dovetail_chat.tui.widgets.status_bar import StatusBar

logger = logging.getLogger(__name__)

INPUT_PLACEHOLDER = "Type a message..."
LISTENING_PLACEHOLDER = "Listening..."


class ChatScreen(Screen):
    """Chat display, input bar and status bar."""

    def __init__(self, assistant_name: str = "Assistant", **kwargs):
        super().__init__(**kwargs)
        self.assistant_name = assistant_name

    def compose(self):
        yield Header()
        with Vertical(id="main-content"):
            yield ChatDisplay(id="chat-display", assistant_name=self.assistant_name)
            yield Input(placeholder=INPUT_PLACEHOLDER, id="input-bar")
        yield StatusBar(id="status-bar")

    def on_mount(self) -> None:
        self.input_bar.focus()

    @property
    def chat_display(self) -> ChatDisplay:
        return self.query_one("#chat-display", ChatDisplay)

    @property
    def input_bar(self) -> Input:
        return self.query_one("#input-bar", Input)

    @property
    def status_bar(self) -> StatusBar:
        return self.query_one("#status-bar", StatusBar)
