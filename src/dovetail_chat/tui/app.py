"""Main Textual App for the Dovetail chat client."""

from __future__ import annotations

import logging

from textual.app import App
from textual.binding import Binding
from textual.widgets import Input

from dovetail_chat.chat.models import SessionView
from dovetail_chat.runtime import ChatRuntime
from dovetail_chat.tui.chat_screen import (
    INPUT_PLACEHOLDER,
    LISTENING_PLACEHOLDER,
    ChatScreen,
)

logger = logging.getLogger(__name__)


class DovetailChatApp(App):
    """Terminal chat window for the Dovetail agent.

    The app is a thin presentation layer: it renders each ``SessionView``
    the runtime publishes and reports three intents back (send, toggle
    dictation, input edited). It never mutates session state itself.
    """

    TITLE = "Dovetail"

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True, priority=True),
        Binding("ctrl+r", "toggle_dictation", "Voice", show=True),
    ]

    def __init__(self, runtime: ChatRuntime, assistant_name: str = "Assistant", **kwargs):
        super().__init__(**kwargs)
        self.runtime = runtime
        self.assistant_name = assistant_name
        self.title = assistant_name
        self._buffer_revision = 0
        self._unsubscribe = None

    def on_mount(self) -> None:
        self.push_screen(ChatScreen(assistant_name=self.assistant_name, name="chat"))
        self._unsubscribe = self.runtime.subscribe(self.render_view)
        self.run_worker(self._run_session(), name="session", exclusive=True)

    async def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.runtime.stop()

    async def _run_session(self) -> None:
        await self.runtime.start()
        self.render_view(self.runtime.view())
        await self.runtime.run()

    def render_view(self, view: SessionView) -> None:
        """Bring every widget in line with the session view."""
        screen = self.screen
        if not isinstance(screen, ChatScreen):
            return

        screen.chat_display.show_entries(view.entries)
        screen.status_bar.show_view(view)

        input_bar = screen.input_bar
        input_bar.disabled = view.is_listening
        input_bar.placeholder = (
            LISTENING_PLACEHOLDER if view.is_listening else INPUT_PLACEHOLDER
        )
        # Keystroke edits are already on screen; only apply buffer changes
        # the controller made itself.
        if view.buffer_revision != self._buffer_revision:
            self._buffer_revision = view.buffer_revision
            if input_bar.value != view.input_buffer:
                input_bar.value = view.input_buffer
        if not view.is_listening and not input_bar.has_focus:
            input_bar.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.runtime.send(event.value)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.value != self.runtime.view().input_buffer:
            self.runtime.edit_input(event.value, revision=self._buffer_revision)

    def action_toggle_dictation(self) -> None:
        """Start or stop voice input."""
        self.runtime.toggle_dictation()
