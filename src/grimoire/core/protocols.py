"""
Protocols and interfaces for Grimoire.

Defines the contracts the upstream AI providers implement so the services
and the turn pipeline stay independent of any particular vendor SDK.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

MIME_TYPES_BY_FORMAT = {
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "mp4": "audio/mp4",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "opus": "audio/opus",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "webm": "audio/webm",
}


@dataclass
class AudioData:
    """Audio data container."""

    data: bytes
    format: str = "m4a"
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.metadata is None:
            self.metadata = {}

    @property
    def mime_type(self) -> str:
        return MIME_TYPES_BY_FORMAT.get(self.format, "application/octet-stream")

    @property
    def filename(self) -> str:
        return f"turn.{self.format}"

    @classmethod
    def format_for_mime_type(cls, mime_type: Optional[str]) -> Optional[str]:
        """Map a MIME type back to a container format name."""
        if not mime_type:
            return None
        for fmt, known in MIME_TYPES_BY_FORMAT.items():
            if known == mime_type.lower():
                return fmt
        return None


class GenerationProvider(Protocol):
    """Protocol for text generation backends."""

    async def generate(self, prompt: str, **kwargs: Any) -> str:
        """Generate a completion for ``prompt``."""
        ...


class VisionProvider(Protocol):
    """Protocol for image understanding backends."""

    async def describe_image(self, image: bytes, instruction: str, **kwargs: Any) -> str:
        """Answer ``instruction`` about a JPEG image."""
        ...


class TranscriptionProvider(Protocol):
    """Protocol for speech-to-text backends."""

    async def transcribe(self, audio: AudioData, **kwargs: Any) -> str:
        """Transcribe recorded audio to text."""
        ...


class SpeechProvider(Protocol):
    """Protocol for text-to-speech backends."""

    async def synthesize(self, text: str, voice: str, **kwargs: Any) -> bytes:
        """Render ``text`` with ``voice``; returns encoded audio bytes."""
        ...
