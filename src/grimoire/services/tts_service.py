"""Text-to-Speech service wrapper."""

import asyncio
import logging
from typing import Optional

from ..core.config import SpeechConfig
from ..core.exceptions import SynthesisFailedError
from ..core.protocols import AudioData, SpeechProvider
from ..personas.types import Persona
from .base_service import BaseService

logger = logging.getLogger(__name__)


class SynthesisService(BaseService):
    """Text-to-speech service wrapper.

    Picks a voice from the persona's gender and renders the reply. Callers
    treat any ``SynthesisFailedError`` as "no audio".
    """

    stage = "synthesis"

    def __init__(self, provider: SpeechProvider, config: Optional[SpeechConfig] = None):
        self.config = config or SpeechConfig()
        super().__init__(self.config.timeout_s)
        self.provider = provider

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def voice_for(self, persona: Optional[Persona]) -> str:
        gender = persona.gender.value if persona is not None else "unknown"
        return self.config.voice_for(gender)

    async def synthesize(
        self, text: str, persona: Optional[Persona] = None
    ) -> Optional[AudioData]:
        """Render ``text`` in the persona's voice.

        Returns:
            Encoded audio, or None when synthesis is disabled

        Raises:
            SynthesisFailedError: any provider failure, timeout or empty audio
        """
        if not self.enabled:
            return None

        voice = self.voice_for(persona)
        try:
            audio_bytes = await self.with_timeout(
                self.provider.synthesize(
                    text,
                    voice,
                    model=self.config.model,
                    response_format=self.config.response_format,
                )
            )
        except asyncio.TimeoutError as e:
            raise SynthesisFailedError(
                f"timed out after {self.timeout_s}s", component="SynthesisService"
            ) from e
        except Exception as e:
            raise SynthesisFailedError(
                f"{type(e).__name__}: {e}", component="SynthesisService"
            ) from e

        if not audio_bytes:
            raise SynthesisFailedError(
                "no audio was generated", component="SynthesisService"
            )

        logger.debug(f"Synthesized {len(audio_bytes)} bytes with voice '{voice}'")
        return AudioData(
            data=audio_bytes,
            format=self.config.response_format,
            metadata={"voice": voice},
        )
