"""Session controller: the reducer that owns all chat session state."""

from __future__ import annotations

import itertools
import logging

from dovetail_chat.errors import ChatError, NoPendingEntry, UnsupportedPlatform
from dovetail_chat.speech.controller import SpeechInputController

from .events import (
    AgentTextReceived,
    ConnectionChanged,
    DictationEnded,
    DictationFailed,
    DictationResult,
    DictationToggled,
    Effect,
    EmitUserText,
    Event,
    InputEdited,
    SendFailed,
    SendRequested,
    StartCapture,
    StopCapture,
)
from .message_log import MessageLog
from .models import ChatEntry, SessionState, SessionView

logger = logging.getLogger(__name__)

NOT_CONNECTED_NOTICE = "Not connected. Your message was kept so you can retry."
UNDELIVERED_TEXT = "Message could not be delivered."


class SessionController:
    """Turns intents, channel events and dictation events into state changes.

    The controller performs no I/O. ``handle()`` applies one event and
    returns the effects (outbound emits, capture start/stop) the runtime
    must carry out, so every sequence of events can be replayed
    deterministically in tests.

    Because the transport does not correlate replies with requests, each
    send creates its own placeholder and inbound agent text resolves the
    oldest one. Display order therefore matches send/receive order even
    under rapid consecutive sends.

    Usage:
        controller = SessionController(speech=SpeechInputController(engine))
        effects = controller.handle(ConnectionChanged(connected=True))
        effects = controller.request_send("Hi")
    """

    def __init__(
        self,
        speech: SpeechInputController | None = None,
        log: MessageLog | None = None,
        connected: bool = False,
    ):
        self.speech = speech or SpeechInputController(_NoDictation())
        self.log = log or MessageLog()
        self._request_ids = itertools.count(1)
        self._input_buffer = ""
        # Bumped on every change not made by a keystroke edit
        self._buffer_revision = 0
        self._connected = connected
        self._dictation_available = True
        self._notice: str | None = None

    # -- read surface --

    @property
    def input_buffer(self) -> str:
        return self._input_buffer

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def notice(self) -> str | None:
        return self._notice

    @property
    def state(self) -> SessionState:
        if self.log.has_pending():
            return SessionState.AWAITING_AGENT
        return SessionState.IDLE

    def snapshot(self) -> tuple[ChatEntry, ...]:
        return self.log.snapshot()

    def view(self) -> SessionView:
        """Build the read-only view the presentation layer renders."""
        return SessionView(
            entries=self.log.snapshot(),
            input_buffer=self._input_buffer,
            buffer_revision=self._buffer_revision,
            dictation_state=self.speech.state,
            dictation_available=self._dictation_available,
            connected=self._connected,
            state=self.state,
            notice=self._notice,
        )

    # -- reducer --

    def handle(self, event: Event) -> list[Effect]:
        """Apply one event and return the effects it requires."""
        if isinstance(event, SendRequested):
            return self.request_send(event.text)
        if isinstance(event, DictationToggled):
            return self.toggle_dictation()
        if isinstance(event, InputEdited):
            self.edit_input(event.text, revision=event.revision)
            return []
        if isinstance(event, AgentTextReceived):
            self.on_agent_text(event.text)
            return []
        if isinstance(event, ConnectionChanged):
            self._on_connection_changed(event)
            return []
        if isinstance(event, SendFailed):
            self._on_send_failed(event)
            return []
        if isinstance(event, DictationResult):
            ready = self.speech.final_result(event.generation, event.text)
            if ready is not None:
                self.on_transcript_ready(ready.text)
            return []
        if isinstance(event, DictationFailed):
            error = self.speech.fail(event.generation, event.reason)
            if error is not None:
                logger.warning("%s", error)
                self._notice = str(error)
            return []
        if isinstance(event, DictationEnded):
            self.speech.engine_ended(event.generation)
            return []

        logger.error(f"Unhandled session event: {event!r}")
        return []

    # -- operations --

    def request_send(self, text: str) -> list[Effect]:
        """Accept a user send.

        Blank text is ignored. While disconnected the send is rejected and
        the input buffer is kept for a retry.
        """
        if not text or not text.strip():
            return []

        if not self._connected:
            self._notice = NOT_CONNECTED_NOTICE
            self._set_buffer(text)
            logger.info("Send rejected: channel not connected")
            return []

        request_id = next(self._request_ids)
        self.log.append(ChatEntry.user(text, request_id=request_id))
        self.log.append(ChatEntry.placeholder(request_id))
        self._set_buffer("")
        self._notice = None
        logger.debug(
            f"Accepted request {request_id} ({len(text)} chars)",
            extra={"request_id": request_id},
        )
        return [EmitUserText(request_id=request_id, text=text)]

    def on_agent_text(self, text: str) -> ChatEntry:
        """Resolve the oldest pending entry with inbound agent text.

        With nothing pending the text is appended as a proactive agent
        message rather than dropped.
        """
        try:
            return self.log.resolve_pending(text)
        except NoPendingEntry:
            logger.info("Agent message with no pending request; appending it")
            self.log.append(ChatEntry.agent(text))
            return self.log.snapshot()[-1]

    def on_transcript_ready(self, text: str) -> None:
        """Replace the input buffer with a finalized transcript. Never sends."""
        self._set_buffer(text)

    def toggle_dictation(self) -> list[Effect]:
        """Start dictation when idle, stop it when listening."""
        if self.speech.is_listening:
            generation = self.speech.stop()
            return [StopCapture(generation=generation)]

        try:
            generation = self.speech.start()
        except UnsupportedPlatform as e:
            self._dictation_available = False
            self._notice = str(e)
            logger.info("Dictation unavailable: %s", e)
            return []

        self._notice = None
        return [StartCapture(generation=generation)]

    def edit_input(self, text: str, revision: int | None = None) -> bool:
        """Apply a keystroke edit.

        Rejected while dictation owns the buffer, and when ``revision`` shows
        the edit was made before the controller last set the buffer.
        """
        if self.speech.is_listening:
            return False
        if revision is not None and revision != self._buffer_revision:
            logger.debug(
                f"Dropping stale edit (revision {revision}, current {self._buffer_revision})"
            )
            return False
        self._input_buffer = text
        return True

    def _set_buffer(self, text: str) -> None:
        self._input_buffer = text
        self._buffer_revision += 1

    def _on_connection_changed(self, event: ConnectionChanged) -> None:
        self._connected = event.connected
        if event.connected:
            if self._notice == NOT_CONNECTED_NOTICE:
                self._notice = None
            logger.info("Channel connected")
        else:
            logger.warning(f"Channel disconnected: {event.reason or 'unknown reason'}")

    def _on_send_failed(self, event: SendFailed) -> None:
        try:
            self.log.fail_pending(event.request_id, UNDELIVERED_TEXT)
        except ChatError as e:
            logger.error(
                f"Send failure for unknown request {event.request_id}: {e}",
                extra={"request_id": event.request_id},
            )
        if not self._input_buffer:
            self._set_buffer(event.text)
        self._notice = NOT_CONNECTED_NOTICE


class _NoDictation:
    """Capability used when no dictation engine is wired in."""

    has_dictation = False
