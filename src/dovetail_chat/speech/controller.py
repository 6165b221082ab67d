"""Dictation state machine (idle -> listening -> idle)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from dovetail_chat.errors import DictationError, UnsupportedPlatform

logger = logging.getLogger(__name__)


class DictationState(str, Enum):
    """Speech input state."""

    IDLE = "idle"
    LISTENING = "listening"


class DictationCapability(Protocol):
    """Anything that can report whether dictation is possible."""

    @property
    def has_dictation(self) -> bool: ...


@dataclass(frozen=True)
class TranscriptReady:
    """A finalized transcript from the current listening session."""

    text: str


class SpeechInputController:
    """Tracks the listening session and filters engine events.

    Each ``start()`` opens a new generation. Engine events carry the
    generation they were produced for; anything not matching the current
    listening session is dropped, so a late result or end event from a
    superseded session can never clobber a newer one.

    Usage:
        speech = SpeechInputController(engine)
        generation = speech.start()
        ...
        ready = speech.final_result(generation, "hello")
    """

    def __init__(self, capability: DictationCapability):
        self._capability = capability
        self._state = DictationState.IDLE
        self._generation = 0

    @property
    def state(self) -> DictationState:
        return self._state

    @property
    def generation(self) -> int:
        """Generation of the most recent listening session."""
        return self._generation

    @property
    def is_listening(self) -> bool:
        return self._state == DictationState.LISTENING

    @property
    def available(self) -> bool:
        return bool(self._capability.has_dictation)

    def start(self) -> int:
        """Begin a listening session.

        Starting while already listening is a no-op.

        Returns:
            Generation of the active listening session.

        Raises:
            UnsupportedPlatform: If no dictation capability exists.
        """
        if not self.available:
            raise UnsupportedPlatform()
        if self.is_listening:
            logger.debug("Dictation already listening (generation %d)", self._generation)
            return self._generation

        self._generation += 1
        self._state = DictationState.LISTENING
        logger.debug(
            "Dictation started (generation %d)",
            self._generation,
            extra={"generation": self._generation},
        )
        return self._generation

    def stop(self) -> int | None:
        """Cancel the current listening session.

        Returns:
            The generation that was stopped, or None if idle.
        """
        if not self.is_listening:
            return None
        self._state = DictationState.IDLE
        logger.debug(
            "Dictation stopped (generation %d)",
            self._generation,
            extra={"generation": self._generation},
        )
        return self._generation

    def final_result(self, generation: int, text: str) -> TranscriptReady | None:
        """Accept the finalized transcript for a listening session."""
        if not self._is_current(generation):
            logger.debug("Ignoring stale transcript from generation %d", generation)
            return None
        self._state = DictationState.IDLE
        return TranscriptReady(text=text)

    def fail(self, generation: int, reason: str) -> DictationError | None:
        """Accept an engine error for a listening session."""
        if not self._is_current(generation):
            logger.debug("Ignoring stale dictation error from generation %d", generation)
            return None
        self._state = DictationState.IDLE
        return DictationError(reason)

    def engine_ended(self, generation: int) -> bool:
        """Accept the engine's own end event.

        Returns:
            True if this ended the current listening session.
        """
        if not self._is_current(generation):
            return False
        self._state = DictationState.IDLE
        return True

    def _is_current(self, generation: int) -> bool:
        return self.is_listening and generation == self._generation
