"""
Upstream AI provider implementations for Grimoire.

OpenAI covers every capability the pipeline needs (generation, vision,
transcription, speech). Ollama is available as a local generation backend.
"""

import base64
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import openai

from ..exceptions import ConfigurationError, UpstreamUnavailableError
from ..protocols import AudioData

logger = logging.getLogger(__name__)

# OpenAI SDK errors that mean "the provider is not serving us right now".
_OPENAI_UNAVAILABLE = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    openai.AuthenticationError,
)


class LLMProvider(Enum):
    """Supported generation providers."""

    OPENAI = "openai"
    OLLAMA = "ollama"


class LLMInterface(ABC):
    """Abstract interface for generation providers."""

    name: str = "llm"

    @abstractmethod
    async def generate(self, prompt: str, **kwargs: Any) -> str:
        """Generate a response from the LLM."""
        pass

    @abstractmethod
    def get_capabilities(self) -> Dict[str, Any]:
        """Get provider capabilities."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        pass


class OpenAIProvider(LLMInterface):
    """OpenAI provider: chat generation, vision, transcription and speech."""

    name = "openai"

    def __init__(self, config: Dict[str, Any]):
        self.api_key = config.get("api_key") or ""
        self.model = config["model"]
        self.temperature = config.get("temperature", 0.7)
        self.max_tokens = config.get("max_tokens", 400)
        self.base_url = config.get("base_url")
        self.client: Optional[Any] = None

    async def _get_client(self) -> Any:
        """Get OpenAI client"""
        if not self.client:
            if not self.api_key:
                raise ConfigurationError(
                    "OPENAI_API_KEY is not set", component="OpenAIProvider"
                )
            self.client = openai.AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self.client

    def _unavailable(self, error: Exception) -> UpstreamUnavailableError:
        return UpstreamUnavailableError(
            self.name, f"{type(error).__name__}: {error}", component="OpenAIProvider"
        )

    async def generate(self, prompt: str, **kwargs: Any) -> str:
        """Generate response using the chat completions API"""
        client = await self._get_client()

        try:
            response = await client.chat.completions.create(
                model=kwargs.get("model", self.model),
                messages=[{"role": "user", "content": prompt}],
                temperature=kwargs.get("temperature", self.temperature),
                max_tokens=kwargs.get("max_tokens", self.max_tokens),
            )
        except _OPENAI_UNAVAILABLE as e:
            raise self._unavailable(e) from e

        return str(response.choices[0].message.content or "")

    async def describe_image(self, image: bytes, instruction: str, **kwargs: Any) -> str:
        """Ask a vision-capable chat model about a JPEG image"""
        client = await self._get_client()
        data_url = "data:image/jpeg;base64," + base64.b64encode(image).decode("ascii")

        try:
            response = await client.chat.completions.create(
                model=kwargs.get("model", self.model),
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": instruction},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
                temperature=0.0,
                max_tokens=kwargs.get("max_tokens", 100),
            )
        except _OPENAI_UNAVAILABLE as e:
            raise self._unavailable(e) from e

        return str(response.choices[0].message.content or "")

    async def transcribe(self, audio: AudioData, **kwargs: Any) -> str:
        """Transcribe audio using the transcriptions API"""
        client = await self._get_client()

        request: Dict[str, Any] = {
            "model": kwargs.get("model", "whisper-1"),
            "file": (audio.filename, audio.data, audio.mime_type),
        }
        if kwargs.get("language"):
            request["language"] = kwargs["language"]

        try:
            response = await client.audio.transcriptions.create(**request)
        except _OPENAI_UNAVAILABLE as e:
            raise self._unavailable(e) from e

        return str(getattr(response, "text", "") or "")

    async def synthesize(self, text: str, voice: str, **kwargs: Any) -> bytes:
        """Render speech using the audio speech API"""
        client = await self._get_client()

        try:
            response = await client.audio.speech.create(
                model=kwargs.get("model", "tts-1"),
                voice=voice,
                input=text,
                response_format=kwargs.get("response_format", "mp3"),
            )
        except _OPENAI_UNAVAILABLE as e:
            raise self._unavailable(e) from e

        return bytes(response.content)

    def get_capabilities(self) -> Dict[str, Any]:
        """Get OpenAI capabilities"""
        return {
            "provider": "openai",
            "supports_vision": True,
            "supports_transcription": True,
            "supports_speech": True,
            "requires_internet": True,
        }

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None


class OllamaProvider(LLMInterface):
    """Ollama provider for local generation models."""

    name = "ollama"

    def __init__(self, config: Dict[str, Any]):
        self.model = config["model"]
        self.base_url = config.get("base_url") or "http://localhost:11434"
        self.temperature = config.get("temperature", 0.7)
        self.max_tokens = config.get("max_tokens", 400)
        self.client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get async HTTP client"""
        if not self.client:
            self.client = httpx.AsyncClient(base_url=self.base_url)
        return self.client

    async def generate(self, prompt: str, **kwargs: Any) -> str:
        """Generate response using Ollama"""
        client = await self._get_client()

        try:
            response = await client.post(
                "/api/generate",
                json={
                    "model": kwargs.get("model", self.model),
                    "prompt": prompt,
                    "stream": False,
                    "options": {
                        "temperature": kwargs.get("temperature", self.temperature),
                        "num_predict": kwargs.get("max_tokens", self.max_tokens),
                    },
                },
            )
        except httpx.TransportError as e:
            raise UpstreamUnavailableError(
                self.name, str(e), component="OllamaProvider"
            ) from e

        if response.status_code >= 500:
            raise UpstreamUnavailableError(
                self.name,
                f"HTTP {response.status_code}",
                component="OllamaProvider",
            )
        response.raise_for_status()
        return str(response.json()["response"])

    def get_capabilities(self) -> Dict[str, Any]:
        """Get Ollama capabilities"""
        return {
            "provider": "ollama",
            "supports_vision": False,
            "supports_transcription": False,
            "supports_speech": False,
            "requires_internet": False,
        }

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
