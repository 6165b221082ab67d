"""One-line status: connection, dictation and the latest notice."""

from __future__ import annotations

from textual.widgets import Static

from dovetail_chat.chat.models import SessionState, SessionView


def status_line(view: SessionView) -> str:
    parts = ["connected" if view.connected else "not connected"]
    if not view.dictation_available:
        parts.append("voice: unavailable")
    elif view.is_listening:
        parts.append("voice: listening")
    else:
        parts.append("voice: off (ctrl+r)")
    if view.state == SessionState.AWAITING_AGENT:
        parts.append("waiting for reply")
    if view.notice:
        parts.append(view.notice)
    return " | ".join(parts)


class StatusBar(Static):
    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        dock: bottom;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def show_view(self, view: SessionView) -> None:
        self.update(status_line(view))
