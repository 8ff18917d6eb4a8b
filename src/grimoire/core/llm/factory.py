"""
Provider factory.

Builds the upstream provider instances named by configuration. The OpenAI
provider is shared by every stage that needs it so one HTTP client pool is
used per process.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Type

from ..config import Config
from ..exceptions import ConfigurationError
from .providers import LLMInterface, LLMProvider, OllamaProvider, OpenAIProvider

logger = logging.getLogger(__name__)


@dataclass
class ProviderSet:
    """Providers for each pipeline capability."""

    generation: LLMInterface
    openai: OpenAIProvider

    async def aclose(self) -> None:
        closed: List[int] = []
        for provider in (self.generation, self.openai):
            if id(provider) not in closed:
                await provider.aclose()
                closed.append(id(provider))


class LLMFactory:
    """Factory for creating provider instances from a Config."""

    _provider_classes: Dict[LLMProvider, Type[LLMInterface]] = {
        LLMProvider.OPENAI: OpenAIProvider,
        LLMProvider.OLLAMA: OllamaProvider,
    }

    def __init__(self, config: Config):
        self.config = config

    def _map_config_provider(self, name: str) -> LLMProvider:
        try:
            return LLMProvider(name.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown LLM provider: {name}", component="LLMFactory"
            ) from e

    def create(self) -> ProviderSet:
        """Create the provider set for the configured backends."""
        llm = self.config.llm
        openai_provider = OpenAIProvider(
            {
                "api_key": llm.api_key,
                "model": llm.model,
                "temperature": llm.temperature,
                "max_tokens": llm.max_tokens,
                "base_url": llm.base_url if llm.provider == "openai" else None,
            }
        )

        provider = self._map_config_provider(llm.provider)
        if provider == LLMProvider.OPENAI:
            generation: LLMInterface = openai_provider
        else:
            generation = self._provider_classes[provider](
                {
                    "model": llm.model,
                    "temperature": llm.temperature,
                    "max_tokens": llm.max_tokens,
                    "base_url": llm.base_url,
                }
            )

        if not llm.api_key:
            logger.warning(
                "OPENAI_API_KEY is not set; OpenAI-backed stages will fail every turn"
            )

        logger.info(f"Using {provider.value} for generation with model {llm.model}")
        return ProviderSet(generation=generation, openai=openai_provider)
