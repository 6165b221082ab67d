"""Chat session core.

Provides the ordered message log, the typed events and effects exchanged
with the runtime, and the session controller that owns session state.
"""

from .models import ChatEntry, EntryKind, Sender, SessionState, SessionView
from .message_log import MessageLog
from .controller import SessionController

__all__ = [
    "ChatEntry",
    "EntryKind",
    "Sender",
    "SessionState",
    "SessionView",
    "MessageLog",
    "SessionController",
]
