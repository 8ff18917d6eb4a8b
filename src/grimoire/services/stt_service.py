"""Speech-to-Text service wrapper."""

import asyncio
import logging
from typing import Optional

from ..core.config import TranscriptionConfig
from ..core.exceptions import GrimoireError, TranscriptionFailedError
from ..core.protocols import AudioData, TranscriptionProvider
from .base_service import BaseService

logger = logging.getLogger(__name__)


class TranscriptionService(BaseService):
    """Speech-to-text service wrapper.

    Thin wrapper around the transcription provider that turns every failure
    into a ``TranscriptionFailedError``, except upstream outages which keep
    their own kind.
    """

    stage = "transcription"

    def __init__(
        self,
        provider: TranscriptionProvider,
        config: Optional[TranscriptionConfig] = None,
    ):
        self.config = config or TranscriptionConfig()
        super().__init__(self.config.timeout_s)
        self.provider = provider

    async def transcribe(self, audio: AudioData) -> str:
        """Transcribe audio to text.

        Args:
            audio: Recorded audio clip

        Returns:
            Transcript, stripped; empty when the clip held no speech
        """
        kwargs = {"model": self.config.model}
        if self.config.language:
            kwargs["language"] = self.config.language

        try:
            text = await self.with_timeout(self.provider.transcribe(audio, **kwargs))
        except asyncio.TimeoutError as e:
            raise TranscriptionFailedError(
                f"timed out after {self.timeout_s}s", component="TranscriptionService"
            ) from e
        except GrimoireError:
            raise
        except Exception as e:
            raise TranscriptionFailedError(
                f"{type(e).__name__}: {e}", component="TranscriptionService"
            ) from e

        return (text or "").strip()
