"""
Tests for the Grimoire HTTP API.
"""

import base64
from typing import Any, Dict

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from grimoire.core.config import Config
from grimoire.core.exceptions import ConfigurationError, UpstreamUnavailableError
from grimoire.services import GENERATION_APOLOGY, NO_SPEECH_APOLOGY, ServiceRuntime
from grimoire.web.app import create_app
from grimoire.web.grimoire_api import FAILURE_HEADER
from testing_utilities import (
    StubGenerationProvider,
    StubSpeechProvider,
    StubTranscriptionProvider,
    StubVisionProvider,
)

CHAT_URL = "/api/grimoire/chat"
VOICE_URL = "/api/grimoire/voice"
IDENTIFY_URL = "/api/grimoire/identify"

AUDIO_B64 = base64.b64encode(b"fake-m4a-bytes").decode("ascii")
IMAGE_B64 = base64.b64encode(b"\xff\xd8\xff-fake-jpeg").decode("ascii")


def chat_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "bookTitle": "Pride and Prejudice",
        "author": "Jane Austen",
        "history": [],
        "question": "How are you?",
    }
    payload.update(overrides)
    return payload


def voice_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "audioBase64": AUDIO_B64,
        "bookTitle": "Pride and Prejudice",
        "author": "Jane Austen",
        "history": [],
        "audioMimeType": "audio/mp4",
    }
    payload.update(overrides)
    return payload


class TestChatEndpoint:
    """POST /api/grimoire/chat"""

    def test_answers_as_persona(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        response = client.post(CHAT_URL, json=chat_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == generation.reply
        assert body["persona"] == {
            "isFiction": True,
            "role": "protagonist",
            "name": "Elizabeth Bennet",
            "gender": "female",
        }
        assert FAILURE_HEADER not in response.headers
        assert "X-Request-ID" in response.headers

    def test_history_is_passed_in_order(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        history = [
            {"role": "user", "content": "Who are your sisters?"},
            {"role": "book", "content": "Jane, Mary, Kitty and Lydia."},
        ]
        response = client.post(CHAT_URL, json=chat_payload(history=history))

        assert response.status_code == 200
        prompt = generation.prompts[-1]
        assert "Reader: Who are your sisters?" in prompt
        assert "Elizabeth Bennet: Jane, Mary, Kitty and Lydia." in prompt

    def test_persona_is_classified_once_per_book(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        client.post(CHAT_URL, json=chat_payload())
        client.post(CHAT_URL, json=chat_payload(bookTitle="  PRIDE AND PREJUDICE "))

        assert generation.classification_calls == 1
        assert generation.generation_calls == 2

    def test_missing_question(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        response = client.post(CHAT_URL, json=chat_payload(question="   "))

        assert response.status_code == 400
        assert response.json()["error"] == "MissingInput"
        assert generation.classification_calls == 0
        assert generation.generation_calls == 0

    def test_missing_book_title(self, client: TestClient) -> None:
        payload = chat_payload()
        del payload["bookTitle"]

        response = client.post(CHAT_URL, json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "MissingInput"

    def test_blank_book_title(self, client: TestClient) -> None:
        response = client.post(CHAT_URL, json=chat_payload(bookTitle=" "))

        assert response.status_code == 400
        assert response.json()["error"] == "MissingInput"
        assert "bookTitle" in response.json()["detail"]

    def test_unknown_history_role(self, client: TestClient) -> None:
        history = [{"role": "narrator", "content": "Once upon a time"}]
        response = client.post(CHAT_URL, json=chat_payload(history=history))

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_history_over_limit(
        self, client: TestClient, runtime: ServiceRuntime
    ) -> None:
        runtime.config.api.max_history_turns = 2
        history = [{"role": "user", "content": f"q{i}"} for i in range(3)]

        response = client.post(CHAT_URL, json=chat_payload(history=history))

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_generation_failure_is_an_apology(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        generation.generation_error = UpstreamUnavailableError("openai", "down")

        response = client.post(CHAT_URL, json=chat_payload())

        assert response.status_code == 200
        assert response.json()["answer"] == GENERATION_APOLOGY
        assert response.headers[FAILURE_HEADER] == "GenerationFailed"

    def test_classification_failure_uses_fallback_persona(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        generation.classification_error = RuntimeError("bad gateway")

        response = client.post(CHAT_URL, json=chat_payload())

        assert response.status_code == 200
        persona = response.json()["persona"]
        assert persona["role"] == "protagonist"
        assert persona["name"] == "Pride and Prejudice"
        assert FAILURE_HEADER not in response.headers

    def test_missing_credential_during_generation_is_an_apology(
        self, client: TestClient, generation: StubGenerationProvider
    ) -> None:
        generation.generation_error = ConfigurationError("OPENAI_API_KEY is not set")

        response = client.post(CHAT_URL, json=chat_payload())

        assert response.status_code == 200
        assert response.json()["answer"] == GENERATION_APOLOGY
        assert response.headers[FAILURE_HEADER] == "GenerationFailed"

    def test_configuration_error_outside_generation_is_internal(
        self, client: TestClient, transcription: StubTranscriptionProvider
    ) -> None:
        transcription.error = ConfigurationError("OPENAI_API_KEY is not set")

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 500
        assert response.json()["error"] == "InternalError"


class TestVoiceEndpoint:
    """POST /api/grimoire/voice"""

    def test_spoken_reply(
        self,
        client: TestClient,
        transcription: StubTranscriptionProvider,
        speech: StubSpeechProvider,
    ) -> None:
        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["transcript"] == transcription.transcript
        assert body["persona"]["name"] == "Elizabeth Bennet"
        assert base64.b64decode(body["audioBase64"]) == speech.audio
        assert body["audioMimeType"] == "audio/mpeg"
        assert transcription.received[0].data == b"fake-m4a-bytes"
        assert transcription.received[0].format == "m4a"

    def test_mime_type_selects_format(
        self, client: TestClient, transcription: StubTranscriptionProvider
    ) -> None:
        client.post(VOICE_URL, json=voice_payload(audioMimeType="audio/wav"))
        assert transcription.received[0].format == "wav"

    def test_unknown_mime_type_defaults_to_m4a(
        self, client: TestClient, transcription: StubTranscriptionProvider
    ) -> None:
        client.post(VOICE_URL, json=voice_payload(audioMimeType=None))
        assert transcription.received[0].format == "m4a"

    def test_silence(
        self,
        client: TestClient,
        generation: StubGenerationProvider,
        transcription: StubTranscriptionProvider,
    ) -> None:
        transcription.transcript = ""

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["transcript"] == ""
        assert body["answer"] == NO_SPEECH_APOLOGY
        assert body["persona"] is None
        assert body["audioBase64"] is None
        assert generation.classification_calls == 0
        assert generation.generation_calls == 0

    def test_synthesis_failure_drops_audio(
        self, client: TestClient, speech: StubSpeechProvider
    ) -> None:
        speech.error = RuntimeError("tts down")

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 200
        assert response.json()["audioBase64"] is None
        assert response.json()["answer"]
        assert FAILURE_HEADER not in response.headers

    def test_missing_audio(
        self, client: TestClient, transcription: StubTranscriptionProvider
    ) -> None:
        response = client.post(VOICE_URL, json=voice_payload(audioBase64=""))

        assert response.status_code == 400
        assert response.json()["error"] == "MissingInput"
        assert transcription.calls == 0

    def test_undecodable_audio(
        self, client: TestClient, transcription: StubTranscriptionProvider
    ) -> None:
        response = client.post(VOICE_URL, json=voice_payload(audioBase64="%%%not-b64"))

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"
        assert transcription.calls == 0

    def test_oversized_audio(
        self, client: TestClient, runtime: ServiceRuntime
    ) -> None:
        runtime.config.api.max_audio_bytes = 4

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_transcription_failure(
        self,
        client: TestClient,
        generation: StubGenerationProvider,
        transcription: StubTranscriptionProvider,
    ) -> None:
        transcription.error = RuntimeError("decoder error")

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 502
        assert response.json()["error"] == "TranscriptionFailed"
        assert generation.generation_calls == 0

    def test_transcription_outage(
        self, client: TestClient, transcription: StubTranscriptionProvider
    ) -> None:
        transcription.error = UpstreamUnavailableError("openai", "connection refused")

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 503
        assert response.json()["error"] == "UpstreamUnavailable"

    def test_generation_failure_sets_header(
        self,
        client: TestClient,
        generation: StubGenerationProvider,
        speech: StubSpeechProvider,
    ) -> None:
        generation.generation_error = RuntimeError("model exploded")

        response = client.post(VOICE_URL, json=voice_payload())

        assert response.status_code == 200
        assert response.json()["answer"] == GENERATION_APOLOGY
        assert response.json()["audioBase64"] is None
        assert response.headers[FAILURE_HEADER] == "GenerationFailed"
        assert speech.calls == 0


class TestIdentifyEndpoint:
    """POST /api/grimoire/identify"""

    def test_identifies_cover(self, client: TestClient, vision: StubVisionProvider) -> None:
        response = client.post(IDENTIFY_URL, json={"imageBase64": IMAGE_B64})

        assert response.status_code == 200
        assert response.json() == {"title": "Dune", "author": "Frank Herbert"}
        assert vision.calls == 1

    def test_no_image(self, client: TestClient, vision: StubVisionProvider) -> None:
        response = client.post(IDENTIFY_URL, json={})

        assert response.status_code == 200
        assert response.json() == {"title": None, "author": None}
        assert vision.calls == 0

    def test_no_book_visible(
        self, client: TestClient, vision: StubVisionProvider
    ) -> None:
        vision.reply = "I can't see a book in this picture."

        response = client.post(IDENTIFY_URL, json={"imageBase64": IMAGE_B64})

        assert response.status_code == 200
        assert response.json() == {"title": None, "author": None}

    def test_invalid_image(self, client: TestClient) -> None:
        response = client.post(IDENTIFY_URL, json={"imageBase64": "***"})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_vision_failure(self, client: TestClient, vision: StubVisionProvider) -> None:
        vision.error = RuntimeError("vision model crashed")

        response = client.post(IDENTIFY_URL, json={"imageBase64": IMAGE_B64})

        assert response.status_code == 502
        assert response.json()["error"] == "IdentificationFailed"


class TestHealthAndMetrics:
    """Operational endpoints"""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_detailed_health(self, client: TestClient) -> None:
        client.post(CHAT_URL, json=chat_payload())

        response = client.get("/health/detailed")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["environment"] == "testing"
        assert body["persona_cache"]["size"] == 1
        assert body["services"] == {
            "transcription": True,
            "generation": True,
            "synthesis": True,
        }

    def test_metrics_disabled(self, client: TestClient) -> None:
        response = client.get("/metrics")
        assert response.status_code == 404

    def test_metrics_enabled(
        self, test_config: Config, runtime: ServiceRuntime
    ) -> None:
        test_config.monitoring.metrics_enabled = True
        with TestClient(create_app(test_config, runtime)) as client:
            client.post(CHAT_URL, json=chat_payload())
            response = client.get("/metrics")

        assert response.status_code == 200
        assert "grimoire_turns_total" in response.text
        assert "grimoire_api_requests_total" in response.text


class TestErrorHandling:
    """Unexpected failures become a 500 with an error id"""

    def test_unexpected_error(self, app: FastAPI, runtime: ServiceRuntime) -> None:
        async def explode(*args: Any, **kwargs: Any) -> None:
            raise RuntimeError("unexpected")

        runtime.pipeline.run_text_turn = explode  # type: ignore[method-assign]

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post(CHAT_URL, json=chat_payload())

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "InternalError"
        assert body["error_id"]

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.parametrize("path", [CHAT_URL, VOICE_URL, IDENTIFY_URL])
def test_malformed_json(client: TestClient, path: str) -> None:
    response = client.post(
        path, content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"
