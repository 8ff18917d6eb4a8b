"""
Persona resolution.

Turns a book's title and author into the persona that speaks for it, asking
the generation model at most once per normalized book key for as long as the
store keeps the answer.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..core.config import LLMConfig, PersonaCacheConfig
from ..core.exceptions import ClassificationFailedError
from ..core.metrics import MetricsCollector
from ..core.protocols import GenerationProvider
from .parsing import build_classification_prompt, parse_persona
from .store import PersonaStore, persona_key
from .types import ClassificationResult, Defaulted, Failed, Parsed, Persona

logger = logging.getLogger(__name__)


class PersonaResolver:
    """Classifies books into personas, memoized in a ``PersonaStore``."""

    def __init__(
        self,
        provider: GenerationProvider,
        store: PersonaStore,
        cache_config: Optional[PersonaCacheConfig] = None,
        llm_config: Optional[LLMConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.provider = provider
        self.store = store
        self.cache_config = cache_config or PersonaCacheConfig()
        self.llm_config = llm_config or LLMConfig()
        self.metrics = metrics
        self._locks: Dict[str, asyncio.Lock] = {}

    async def resolve(self, title: str, author: Optional[str] = None) -> Persona:
        """Resolve the persona for a book.

        Raises:
            ClassificationFailedError: the classification call itself failed.
        """
        result = await self.resolve_detailed(title, author)
        if isinstance(result, Failed):
            if isinstance(result.error, ClassificationFailedError):
                raise result.error
            raise ClassificationFailedError(
                title, str(result.error), component="PersonaResolver"
            ) from result.error
        return result.persona

    async def resolve_detailed(
        self, title: str, author: Optional[str] = None
    ) -> ClassificationResult:
        """Resolve and return the tagged classification result."""
        key = persona_key(title, author)

        cached = self._lookup(key)
        if cached is not None:
            return cached

        if not self.cache_config.single_flight:
            return await self._classify_and_store(key, title, author)

        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                # another waiter may have filled the entry
                cached = self._lookup(key, record=False)
                if cached is not None:
                    return cached
                return await self._classify_and_store(key, title, author)
        finally:
            if not lock.locked() and self._locks.get(key) is lock:
                del self._locks[key]

    def _lookup(self, key: str, record: bool = True) -> Optional[ClassificationResult]:
        cached = self.store.get(key)
        if record and self.metrics is not None:
            self.metrics.record_persona_lookup(hit=cached is not None)
        return cached

    async def _classify_and_store(
        self, key: str, title: str, author: Optional[str]
    ) -> ClassificationResult:
        result = await self._classify(title, author)

        if isinstance(result, Parsed):
            self.store.put(key, result)
        elif isinstance(result, Defaulted):
            logger.warning(f"Persona for '{title}' defaulted: {result.reason}")
            if self.cache_config.cache_defaults:
                self.store.put(key, result)
        return result

    async def _classify(self, title: str, author: Optional[str]) -> ClassificationResult:
        prompt = build_classification_prompt(title, author or "")
        try:
            text = await asyncio.wait_for(
                self.provider.generate(
                    prompt,
                    model=self.llm_config.effective_classification_model,
                    temperature=self.llm_config.classification_temperature,
                ),
                timeout=self.llm_config.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error(f"Persona classification timed out for '{title}'")
            return Failed(
                ClassificationFailedError(
                    title,
                    f"timed out after {self.llm_config.timeout_s}s",
                    component="PersonaResolver",
                )
            )
        except Exception as e:
            logger.error(f"Persona classification failed for '{title}': {e}")
            return Failed(e)

        return parse_persona(text, title)
