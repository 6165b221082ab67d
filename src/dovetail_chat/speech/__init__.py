"""Speech input: dictation state machine and engines."""

from .controller import (
    DictationCapability,
    DictationState,
    SpeechInputController,
    TranscriptReady,
)
from .engines import (
    DictationEngine,
    NullDictationEngine,
    SpeechRecognitionEngine,
    create_dictation_engine,
)

__all__ = [
    "DictationCapability",
    "DictationState",
    "SpeechInputController",
    "TranscriptReady",
    "DictationEngine",
    "NullDictationEngine",
    "SpeechRecognitionEngine",
    "create_dictation_engine",
]
