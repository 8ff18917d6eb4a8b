"""Persona reply generation service."""

import asyncio
import logging
from typing import Optional, Sequence

from ..books.types import Book
from ..conversation.prompt_composer import PromptComposer
from ..conversation.types import HistoryEntry
from ..core.config import LLMConfig
from ..core.exceptions import GenerationFailedError
from ..core.protocols import GenerationProvider
from ..personas.types import Persona
from .base_service import BaseService

logger = logging.getLogger(__name__)


class GenerationService(BaseService):
    """Persona reply generation service.

    Composes the prompt for a persona and asks the generation provider for
    one reply.
    """

    stage = "generation"

    def __init__(
        self,
        provider: GenerationProvider,
        composer: Optional[PromptComposer] = None,
        config: Optional[LLMConfig] = None,
    ):
        self.config = config or LLMConfig()
        super().__init__(self.config.timeout_s)
        self.provider = provider
        self.composer = composer or PromptComposer()

    def compose(
        self,
        persona: Persona,
        book: Book,
        history: Sequence[HistoryEntry],
        question: str,
    ) -> str:
        return self.composer.compose(persona, book, history, question)

    async def generate_reply(self, prompt: str) -> str:
        """Generate the persona's reply to a composed prompt.

        Raises:
            GenerationFailedError: any provider failure, timeout or empty reply
        """
        try:
            reply = await self.with_timeout(
                self.provider.generate(
                    prompt,
                    model=self.config.model,
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                )
            )
        except asyncio.TimeoutError as e:
            raise GenerationFailedError(
                f"timed out after {self.timeout_s}s", component="GenerationService"
            ) from e
        except GenerationFailedError:
            raise
        except Exception as e:
            raise GenerationFailedError(
                f"{type(e).__name__}: {e}", component="GenerationService"
            ) from e

        reply = (reply or "").strip()
        if not reply:
            raise GenerationFailedError("empty reply", component="GenerationService")

        logger.debug(f"Raw generation output: '{reply[:80]}'")
        return reply
