"""
Runtime configuration sections for Grimoire.

Contains service, provider, cache, storage and client configuration classes.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .base import DEFAULT_BACKEND_URL


@dataclass
class MonitoringConfig:
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    json_logs: bool = True
    metrics_enabled: bool = True


@dataclass
class APIConfig:
    """HTTP service configuration."""

    host: str = "127.0.0.1"
    port: int = 4000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    max_history_turns: int = 200
    max_audio_bytes: int = 25 * 1024 * 1024


@dataclass
class LLMConfig:
    """Text generation provider configuration.

    The same provider answers persona classification and reply generation;
    classification runs with its own (lower) temperature.
    """

    provider: str = "openai"  # openai | ollama
    model: str = "gpt-4o-mini"
    classification_model: Optional[str] = None
    temperature: float = 0.7
    classification_temperature: float = 0.0
    max_tokens: int = 400
    timeout_s: float = 30.0
    api_key: str = field(default_factory=lambda: os.environ.get("OPENAI_API_KEY", ""))
    base_url: Optional[str] = None

    @property
    def effective_classification_model(self) -> str:
        return self.classification_model or self.model


@dataclass
class TranscriptionConfig:
    """Speech-to-text configuration."""

    model: str = "whisper-1"
    language: Optional[str] = None
    timeout_s: float = 30.0


@dataclass
class SpeechConfig:
    """Text-to-speech configuration."""

    enabled: bool = True
    model: str = "tts-1"
    voices: Dict[str, str] = field(
        default_factory=lambda: {"male": "onyx", "female": "nova", "unknown": "alloy"}
    )
    response_format: str = "mp3"
    timeout_s: float = 30.0

    def voice_for(self, gender: str) -> str:
        return self.voices.get(gender) or self.voices.get("unknown", "alloy")


@dataclass
class IdentificationConfig:
    """Cover identification (vision model) configuration."""

    model: str = "gpt-4o-mini"
    timeout_s: float = 20.0


@dataclass
class PersonaCacheConfig:
    """Persona store configuration.

    ``max_entries`` of 0 disables eviction.
    """

    max_entries: int = 1024
    cache_defaults: bool = True
    single_flight: bool = True


@dataclass
class ConversationConfig:
    """Conversation log storage configuration."""

    store_path: Path = field(
        default_factory=lambda: Path.cwd() / "data" / "conversations.json"
    )


@dataclass
class ClientConfig:
    """Configuration for clients of the Grimoire service."""

    backend_url: str = field(
        default_factory=lambda: os.environ.get(
            "GRIMOIRE_BACKEND_URL", DEFAULT_BACKEND_URL
        )
    )
    timeout_s: float = 60.0
