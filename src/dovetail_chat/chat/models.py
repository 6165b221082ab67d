"""Chat data models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from dovetail_chat.speech.controller import DictationState


class Sender(str, Enum):
    """Message author."""

    USER = "user"
    AGENT = "agent"


class EntryKind(str, Enum):
    """Whether an entry carries final text or is an agent-composing placeholder."""

    FINAL = "final"
    PENDING = "pending"


class SessionState(str, Enum):
    """Session controller state."""

    IDLE = "idle"  # No outstanding request
    AWAITING_AGENT = "awaiting_agent"  # At least one pending entry


class ChatEntry(BaseModel):
    """A single entry in the message log.

    Entries are immutable; resolving a pending placeholder produces a new
    entry that takes the placeholder's position in the log.
    """

    model_config = ConfigDict(frozen=True)

    sender: Sender
    kind: EntryKind = EntryKind.FINAL
    text: str = ""
    id: int = Field(default=0, description="Assigned by the message log on append")
    request_id: int | None = None
    failed: bool = False

    @property
    def is_pending(self) -> bool:
        return self.kind == EntryKind.PENDING

    @classmethod
    def user(cls, text: str, request_id: int | None = None) -> ChatEntry:
        """Create a finalized user entry."""
        return cls(sender=Sender.USER, text=text, request_id=request_id)

    @classmethod
    def agent(cls, text: str) -> ChatEntry:
        """Create a finalized agent entry that answers no tracked request."""
        return cls(sender=Sender.AGENT, text=text)

    @classmethod
    def placeholder(cls, request_id: int) -> ChatEntry:
        """Create the agent-composing placeholder for a request."""
        return cls(sender=Sender.AGENT, kind=EntryKind.PENDING, request_id=request_id)


class SessionView(BaseModel):
    """Read-only view of the session for the presentation layer."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[ChatEntry, ...] = ()
    input_buffer: str = ""
    buffer_revision: int = Field(
        default=0,
        description="Changes whenever the buffer is set by anything but typing",
    )
    dictation_state: DictationState = DictationState.IDLE
    dictation_available: bool = True
    connected: bool = False
    state: SessionState = SessionState.IDLE
    notice: str | None = Field(
        default=None,
        description="Latest user-visible, non-fatal notice",
    )

    @property
    def is_listening(self) -> bool:
        return self.dictation_state == DictationState.LISTENING
