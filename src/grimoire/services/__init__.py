"""
Service layer for Grimoire.

Wraps the upstream providers in per-stage services and orchestrates them
into conversational turns.
"""

from .base_service import BaseService
from .error_messages import GENERATION_APOLOGY, NO_SPEECH_APOLOGY, ServiceErrorMessages
from .llm_service import GenerationService
from .pipeline_orchestrator import (
    FailureKind,
    TurnKind,
    TurnPipeline,
    TurnResult,
    TurnState,
)
from .runtime import ServiceRuntime, build_runtime
from .stt_service import TranscriptionService
from .tts_service import SynthesisService

__all__ = [
    "BaseService",
    "ServiceErrorMessages",
    "NO_SPEECH_APOLOGY",
    "GENERATION_APOLOGY",
    "TranscriptionService",
    "SynthesisService",
    "GenerationService",
    "TurnPipeline",
    "TurnResult",
    "TurnState",
    "TurnKind",
    "FailureKind",
    "ServiceRuntime",
    "build_runtime",
]
