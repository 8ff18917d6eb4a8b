"""
Pytest configuration and fixtures for Grimoire.
Only the upstream AI providers are stubbed; everything else is real.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from grimoire.core.config import Config, Environment
from grimoire.core.metrics import MetricsCollector
from grimoire.services.runtime import ServiceRuntime, build_runtime
from grimoire.web.app import create_app
from testing_utilities import (
    StubGenerationProvider,
    StubSpeechProvider,
    StubTranscriptionProvider,
    StubVisionProvider,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    cfg = Config(environment=Environment.TESTING, runtime_yaml_path=None)
    cfg.conversation.store_path = temp_dir / "conversations.json"
    cfg.llm.api_key = ""
    return cfg


@pytest.fixture
def generation() -> StubGenerationProvider:
    return StubGenerationProvider()


@pytest.fixture
def vision() -> StubVisionProvider:
    return StubVisionProvider()


@pytest.fixture
def transcription() -> StubTranscriptionProvider:
    return StubTranscriptionProvider()


@pytest.fixture
def speech() -> StubSpeechProvider:
    return StubSpeechProvider()


@pytest.fixture
def runtime(
    test_config: Config,
    generation: StubGenerationProvider,
    vision: StubVisionProvider,
    transcription: StubTranscriptionProvider,
    speech: StubSpeechProvider,
) -> ServiceRuntime:
    return build_runtime(
        test_config,
        generation=generation,
        vision=vision,
        transcription=transcription,
        speech=speech,
        metrics=MetricsCollector(),
    )


@pytest.fixture
def app(test_config: Config, runtime: ServiceRuntime) -> FastAPI:
    return create_app(test_config, runtime)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
