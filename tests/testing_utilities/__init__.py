"""
Testing utilities for Grimoire.
"""

from .stubs import (
    CLASSIFICATION_MARKER,
    PRIDE_PERSONA_JSON,
    StubGenerationProvider,
    StubSpeechProvider,
    StubTranscriptionProvider,
    StubVisionProvider,
)

__all__ = [
    "CLASSIFICATION_MARKER",
    "PRIDE_PERSONA_JSON",
    "StubGenerationProvider",
    "StubSpeechProvider",
    "StubTranscriptionProvider",
    "StubVisionProvider",
]
