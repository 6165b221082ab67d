"""Typed events consumed by the session controller and effects it produces.

Events arrive from three independent sources: the presentation layer
(intents), the transport channel and the dictation engine. The runtime
serializes them onto one queue. Effects are the controller's requests for
outbound I/O, executed by the runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


# Presentation intents


@dataclass(frozen=True)
class SendRequested:
    """User asked to send the given input text."""

    text: str


@dataclass(frozen=True)
class DictationToggled:
    """User pressed the microphone control."""


@dataclass(frozen=True)
class InputEdited:
    """User typed into the input field.

    ``revision`` is the buffer revision the input was showing. An edit made
    against an older revision is stale and dropped.
    """

    text: str
    revision: int | None = None


# Transport events


@dataclass(frozen=True)
class AgentTextReceived:
    """One inbound agent message."""

    text: str


@dataclass(frozen=True)
class ConnectionChanged:
    """The channel opened or closed."""

    connected: bool
    reason: str = ""


@dataclass(frozen=True)
class SendFailed:
    """An accepted send could not be emitted on the channel."""

    request_id: int
    text: str
    reason: str = ""


# Dictation engine events, tagged with the listening session they belong to


@dataclass(frozen=True)
class DictationResult:
    """Finalized transcript for one listening session."""

    generation: int
    text: str


@dataclass(frozen=True)
class DictationFailed:
    """The engine reported an error."""

    generation: int
    reason: str


@dataclass(frozen=True)
class DictationEnded:
    """The engine stopped capturing, with or without a result."""

    generation: int


Event = Union[
    SendRequested,
    DictationToggled,
    InputEdited,
    AgentTextReceived,
    ConnectionChanged,
    SendFailed,
    DictationResult,
    DictationFailed,
    DictationEnded,
]


# Effects


@dataclass(frozen=True)
class EmitUserText:
    """Emit a user message on the channel."""

    request_id: int
    text: str


@dataclass(frozen=True)
class StartCapture:
    """Ask the dictation engine to begin a listening session."""

    generation: int


@dataclass(frozen=True)
class StopCapture:
    """Ask the dictation engine to stop a listening session."""

    generation: int


Effect = Union[EmitUserText, StartCapture, StopCapture]
