"""
Service runtime assembly.

Wires providers, the persona store and the services into one object the web
application owns for its lifetime. Any provider can be injected; the rest
come from the configured provider factory.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..books.identification import BookIdentifier
from ..conversation.prompt_composer import PromptComposer
from ..core.config import Config
from ..core.llm import LLMFactory, ProviderSet
from ..core.metrics import MetricsCollector
from ..core.protocols import (
    GenerationProvider,
    SpeechProvider,
    TranscriptionProvider,
    VisionProvider,
)
from ..personas.resolver import PersonaResolver
from ..personas.store import PersonaStore
from .base_service import BaseService
from .llm_service import GenerationService
from .pipeline_orchestrator import TurnPipeline
from .stt_service import TranscriptionService
from .tts_service import SynthesisService

logger = logging.getLogger(__name__)


@dataclass
class ServiceRuntime:
    """Everything a running Grimoire service needs."""

    config: Config
    pipeline: TurnPipeline
    identifier: BookIdentifier
    persona_store: PersonaStore
    metrics: MetricsCollector
    providers: Optional[ProviderSet] = None
    started_at: float = field(default_factory=time.time)

    @property
    def services(self) -> List[BaseService]:
        return [
            self.pipeline.transcription,
            self.pipeline.generation,
            self.pipeline.synthesis,
        ]

    async def open(self) -> None:
        await self.persona_store.open()
        for service in self.services:
            await service.initialize()
        logger.info("Service runtime opened")

    async def close(self) -> None:
        for service in self.services:
            await service.shutdown()
        await self.persona_store.close()
        if self.providers is not None:
            await self.providers.aclose()
        logger.info("Service runtime closed")

    @property
    def uptime_s(self) -> float:
        return time.time() - self.started_at

    async def service_health(self) -> Dict[str, bool]:
        return {
            service.stage: await service.health_check() for service in self.services
        }

    def status(self) -> Dict[str, Any]:
        return {
            "uptime_s": round(self.uptime_s, 3),
            "llm_provider": self.config.llm.provider,
            "speech_enabled": self.config.speech.enabled,
            "persona_cache": self.persona_store.get_stats(),
        }


def build_runtime(
    config: Config,
    *,
    generation: Optional[GenerationProvider] = None,
    vision: Optional[VisionProvider] = None,
    transcription: Optional[TranscriptionProvider] = None,
    speech: Optional[SpeechProvider] = None,
    metrics: Optional[MetricsCollector] = None,
) -> ServiceRuntime:
    """Build a runtime, creating configured providers for any not injected."""
    providers: Optional[ProviderSet] = None
    if None in (generation, vision, transcription, speech):
        providers = LLMFactory(config).create()
        generation = generation or providers.generation
        vision = vision or providers.openai
        transcription = transcription or providers.openai
        speech = speech or providers.openai

    metrics = metrics or MetricsCollector()
    store = PersonaStore(max_entries=config.persona_cache.max_entries)
    resolver = PersonaResolver(
        generation,
        store,
        cache_config=config.persona_cache,
        llm_config=config.llm,
        metrics=metrics,
    )
    pipeline = TurnPipeline(
        resolver=resolver,
        transcription=TranscriptionService(transcription, config.transcription),
        generation=GenerationService(generation, PromptComposer(), config.llm),
        synthesis=SynthesisService(speech, config.speech),
        metrics=metrics,
    )

    return ServiceRuntime(
        config=config,
        pipeline=pipeline,
        identifier=BookIdentifier(vision, config.identification),
        persona_store=store,
        metrics=metrics,
        providers=providers,
    )
