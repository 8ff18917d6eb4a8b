"""
Upstream AI providers and their factory.
"""

from .factory import LLMFactory, ProviderSet
from .providers import LLMInterface, LLMProvider, OllamaProvider, OpenAIProvider

__all__ = [
    "LLMInterface",
    "LLMProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "LLMFactory",
    "ProviderSet",
]
