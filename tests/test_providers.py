"""
Tests for the upstream providers and their factory.

No network calls are made: the OpenAI SDK client is replaced with a fake and
Ollama is served from ``httpx.MockTransport``.
"""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import openai
import pytest

from grimoire.core.config import Config
from grimoire.core.exceptions import ConfigurationError, UpstreamUnavailableError
from grimoire.core.llm import LLMFactory, OllamaProvider, OpenAIProvider
from grimoire.core.protocols import AudioData

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class FakeCompletions:
    def __init__(self, content: str = "", error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai_client(completions: FakeCompletions) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def openai_provider(**overrides: Any) -> OpenAIProvider:
    config = {"api_key": "sk-test", "model": "gpt-4o-mini"}
    config.update(overrides)
    return OpenAIProvider(config)


class TestOpenAIProvider:
    """Test the OpenAI provider's request shape and error mapping."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self) -> None:
        provider = openai_provider(api_key="")

        with pytest.raises(ConfigurationError):
            await provider.generate("Hello")

    @pytest.mark.asyncio
    async def test_generate(self) -> None:
        completions = FakeCompletions(content="Hello, reader.")
        provider = openai_provider()
        provider.client = fake_openai_client(completions)

        reply = await provider.generate("Hello", temperature=0.0, model="gpt-4o")

        assert reply == "Hello, reader."
        request = completions.requests[0]
        assert request["model"] == "gpt-4o"
        assert request["temperature"] == 0.0
        assert request["messages"] == [{"role": "user", "content": "Hello"}]

    @pytest.mark.asyncio
    async def test_connection_error_is_upstream_unavailable(self) -> None:
        completions = FakeCompletions(
            error=openai.APIConnectionError(request=OPENAI_REQUEST)
        )
        provider = openai_provider()
        provider.client = fake_openai_client(completions)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await provider.generate("Hello")
        assert exc_info.value.error_code == "UpstreamUnavailable"

    @pytest.mark.asyncio
    async def test_describe_image_sends_data_url(self) -> None:
        completions = FakeCompletions(content='{"title": "Dune"}')
        provider = openai_provider()
        provider.client = fake_openai_client(completions)

        await provider.describe_image(b"\xff\xd8", "What book is this?")

        content = completions.requests[0]["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "What book is this?"}
        assert content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_transcribe_sends_named_file(self) -> None:
        requests: List[Dict[str, Any]] = []

        async def create(**kwargs: Any) -> Any:
            requests.append(kwargs)
            return SimpleNamespace(text=" Hello there ")

        provider = openai_provider()
        provider.client = SimpleNamespace(
            audio=SimpleNamespace(transcriptions=SimpleNamespace(create=create))
        )

        text = await provider.transcribe(AudioData(b"abc", format="wav"), language="en")

        assert text == " Hello there "
        assert requests[0]["file"] == ("turn.wav", b"abc", "audio/wav")
        assert requests[0]["language"] == "en"


class TestOllamaProvider:
    """Test the Ollama provider over a mock transport."""

    @staticmethod
    def provider_with(handler: Any) -> OllamaProvider:
        provider = OllamaProvider({"model": "llama3"})
        provider.client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url=provider.base_url
        )
        return provider

    @pytest.mark.asyncio
    async def test_generate(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"response": "Greetings."})

        provider = self.provider_with(handler)
        try:
            reply = await provider.generate("Hello", max_tokens=50)
        finally:
            await provider.aclose()

        assert reply == "Greetings."
        assert seen[0].url.path == "/api/generate"

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_unavailable(self) -> None:
        provider = self.provider_with(lambda request: httpx.Response(503))
        try:
            with pytest.raises(UpstreamUnavailableError):
                await provider.generate("Hello")
        finally:
            await provider.aclose()

    @pytest.mark.asyncio
    async def test_connection_refused_is_upstream_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = self.provider_with(handler)
        try:
            with pytest.raises(UpstreamUnavailableError):
                await provider.generate("Hello")
        finally:
            await provider.aclose()


class TestCapabilities:
    """Only OpenAI covers vision, transcription and speech."""

    def test_openai(self) -> None:
        capabilities = openai_provider().get_capabilities()
        assert capabilities["supports_vision"] is True
        assert capabilities["supports_speech"] is True

    def test_ollama(self) -> None:
        capabilities = OllamaProvider({"model": "llama3"}).get_capabilities()
        assert capabilities["supports_vision"] is False
        assert capabilities["requires_internet"] is False


class TestLLMFactory:
    """Test provider selection from configuration."""

    def test_openai_serves_every_stage(self) -> None:
        config = Config(runtime_yaml_path=None)
        config.llm.provider = "openai"

        providers = LLMFactory(config).create()

        assert providers.generation is providers.openai

    def test_ollama_generation(self) -> None:
        config = Config(runtime_yaml_path=None)
        config.llm.provider = "ollama"

        providers = LLMFactory(config).create()

        assert isinstance(providers.generation, OllamaProvider)
        assert isinstance(providers.openai, OpenAIProvider)

    def test_unknown_provider(self) -> None:
        config = Config(runtime_yaml_path=None)
        config.llm.provider = "carrier-pigeon"

        with pytest.raises(ConfigurationError):
            LLMFactory(config).create()
