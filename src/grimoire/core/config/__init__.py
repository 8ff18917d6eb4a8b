"""
Configuration management for Grimoire.

Provides a clean public API for all configuration components.
"""

from .base import DEFAULT_BACKEND_URL, Environment
from .main import Config
from .runtime import (
    APIConfig,
    ClientConfig,
    ConversationConfig,
    IdentificationConfig,
    LLMConfig,
    MonitoringConfig,
    PersonaCacheConfig,
    SpeechConfig,
    TranscriptionConfig,
)
from .yaml_loader import YAMLConfigLoader

__all__ = [
    "Config",
    "Environment",
    "DEFAULT_BACKEND_URL",
    "APIConfig",
    "ClientConfig",
    "ConversationConfig",
    "IdentificationConfig",
    "LLMConfig",
    "MonitoringConfig",
    "PersonaCacheConfig",
    "SpeechConfig",
    "TranscriptionConfig",
    "YAMLConfigLoader",
]
