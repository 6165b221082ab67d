"""Scrollable message display with markdown rendering."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import RenderableType
from rich.markdown import Markdown
from rich.text import Text
from textual.widgets import RichLog

from dovetail_chat.chat.models import ChatEntry, Sender

TYPING_INDICATOR = "..."


def entry_renderables(entry: ChatEntry, assistant_name: str) -> list[RenderableType]:
    """Label and body renderables for one log entry."""
    if entry.sender == Sender.USER:
        return [Text("\n> You", style="bold cyan"), Text(entry.text)]

    label = Text(f"\n< {assistant_name}", style="bold green")
    if entry.is_pending:
        return [label, Text(TYPING_INDICATOR, style="dim italic")]
    if entry.failed:
        return [label, Text(f"[error] {entry.text}", style="bold red")]
    try:
        return [label, Markdown(entry.text)]
    except Exception:
        return [label, Text(entry.text)]


class ChatDisplay(RichLog):
    """Scrollable chat message display.

    RichLog is append-only, so the display re-renders the whole snapshot
    whenever the entries change. Pending placeholders are drawn as a typing
    indicator and replaced in place once resolved.
    """

    DEFAULT_CSS = """
    ChatDisplay {
        height: 1fr;
        border: solid $surface-lighten-2;
        padding: 0 1;
        scrollbar-size: 1 1;
    }
    """

    def __init__(self, *args, assistant_name: str = "Assistant", **kwargs):
        super().__init__(*args, wrap=True, markup=False, **kwargs)
        self.assistant_name = assistant_name
        self._shown: tuple[ChatEntry, ...] = ()

    def show_entries(self, entries: Sequence[ChatEntry]) -> bool:
        """Render the given snapshot. Returns False when nothing changed."""
        entries = tuple(entries)
        if entries == self._shown:
            return False
        self.clear()
        for entry in entries:
            for renderable in entry_renderables(entry, self.assistant_name):
                self.write(renderable)
        self._shown = entries
        return True
