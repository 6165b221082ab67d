"""Dictation engines.

An engine captures one utterance per listening session and reports back
through a sink callback. Engines may call the sink from any thread; the
runtime hands them a thread-safe sink that queues the event on the session
loop.

Every report carries the generation passed to ``start()``. An engine always
reports ``DictationEnded`` for a generation, after any result or error.
"""

from __future__ import annotations

import importlib.util
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

from dovetail_chat.chat.events import (
    DictationEnded,
    DictationFailed,
    DictationResult,
    Event,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[Event], None]


class DictationEngine(ABC):
    """Abstract speech-to-text engine."""

    @property
    @abstractmethod
    def has_dictation(self) -> bool:
        """Whether this engine can capture speech on this platform."""
        ...

    @abstractmethod
    def start(self, generation: int, sink: EventSink) -> None:
        """Begin capturing. Must return without blocking."""
        ...

    @abstractmethod
    def stop(self, generation: int) -> None:
        """Request that capture for ``generation`` end. Must not block."""
        ...


class NullDictationEngine(DictationEngine):
    """Engine for platforms or sessions with voice input disabled."""

    @property
    def has_dictation(self) -> bool:
        return False

    def start(self, generation: int, sink: EventSink) -> None:
        sink(DictationFailed(generation=generation, reason="not-supported"))
        sink(DictationEnded(generation=generation))

    def stop(self, generation: int) -> None:
        pass


class SpeechRecognitionEngine(DictationEngine):
    """Single-utterance microphone dictation via the SpeechRecognition library.

    Capture runs on a daemon thread: calibrate for ambient noise, listen for
    one phrase, then transcribe with the Google Web Speech API. Only the
    finalized transcript is reported; there are no interim results.

    ``stop()`` cannot interrupt a blocking ``listen()``; it marks the
    generation as cancelled so its eventual transcript is discarded.

    Args:
        language: BCP-47 language tag for recognition.
        timeout: Seconds to wait for speech to begin.
        phrase_time_limit: Maximum seconds of a single utterance.
        ambient_noise_duration: Seconds spent calibrating the energy threshold.
    """

    def __init__(
        self,
        language: str = "en-US",
        timeout: float | None = 8.0,
        phrase_time_limit: float | None = 15.0,
        ambient_noise_duration: float = 0.5,
    ):
        self.language = language
        self.timeout = timeout
        self.phrase_time_limit = phrase_time_limit
        self.ambient_noise_duration = ambient_noise_duration
        self._cancelled: dict[int, threading.Event] = {}
        self._lock = threading.Lock()

    @property
    def has_dictation(self) -> bool:
        return (
            importlib.util.find_spec("speech_recognition") is not None
            and importlib.util.find_spec("pyaudio") is not None
        )

    def start(self, generation: int, sink: EventSink) -> None:
        cancelled = threading.Event()
        with self._lock:
            self._cancelled[generation] = cancelled

        thread = threading.Thread(
            target=self._capture,
            args=(generation, sink, cancelled),
            name=f"dictation-{generation}",
            daemon=True,
        )
        thread.start()

    def stop(self, generation: int) -> None:
        with self._lock:
            cancelled = self._cancelled.get(generation)
        if cancelled is not None:
            cancelled.set()

    def _capture(
        self, generation: int, sink: EventSink, cancelled: threading.Event
    ) -> None:
        import speech_recognition as sr

        recognizer = sr.Recognizer()
        try:
            with sr.Microphone() as source:
                recognizer.adjust_for_ambient_noise(
                    source, duration=self.ambient_noise_duration
                )
                audio = recognizer.listen(
                    source,
                    timeout=self.timeout,
                    phrase_time_limit=self.phrase_time_limit,
                )
            if cancelled.is_set():
                return
            text = recognizer.recognize_google(audio, language=self.language)
            if not cancelled.is_set():
                sink(DictationResult(generation=generation, text=text))
        except sr.WaitTimeoutError:
            sink(DictationFailed(generation=generation, reason="no-speech"))
        except sr.UnknownValueError:
            sink(DictationFailed(generation=generation, reason="no-match"))
        except sr.RequestError as e:
            sink(DictationFailed(generation=generation, reason=f"network: {e}"))
        except OSError as e:
            logger.warning(f"Microphone unavailable: {e}")
            sink(DictationFailed(generation=generation, reason="audio-capture"))
        finally:
            with self._lock:
                self._cancelled.pop(generation, None)
            sink(DictationEnded(generation=generation))


def create_dictation_engine(
    enabled: bool = True,
    language: str = "en-US",
    timeout: float | None = 8.0,
    phrase_time_limit: float | None = 15.0,
    ambient_noise_duration: float = 0.5,
) -> DictationEngine:
    """Build the engine for this platform."""
    if not enabled:
        return NullDictationEngine()
    return SpeechRecognitionEngine(
        language=language,
        timeout=timeout,
        phrase_time_limit=phrase_time_limit,
        ambient_noise_duration=ambient_noise_duration,
    )
