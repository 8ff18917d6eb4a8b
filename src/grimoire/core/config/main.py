"""
Main configuration class for Grimoire.

Contains the Config class that gathers every configuration section and
knows how to overlay values from ``configs/runtime.yaml`` and from
``GRIMOIRE_*`` environment variables.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..exceptions import ConfigurationError
from .base import DEFAULT_RUNTIME_YAML, ENV_PREFIX, Environment
from .runtime import (
    APIConfig,
    ClientConfig,
    ConversationConfig,
    IdentificationConfig,
    LLMConfig,
    MonitoringConfig,
    PersonaCacheConfig,
    SpeechConfig,
    TranscriptionConfig,
)
from .yaml_loader import YAMLConfigLoader

logger = logging.getLogger(__name__)

SECTION_NAMES = (
    "api",
    "llm",
    "transcription",
    "speech",
    "identification",
    "persona_cache",
    "conversation",
    "client",
    "monitoring",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class Config:
    """Main configuration class for Grimoire."""

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # Service
    api: APIConfig = field(default_factory=APIConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    # Upstream AI providers
    llm: LLMConfig = field(default_factory=LLMConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    identification: IdentificationConfig = field(
        default_factory=IdentificationConfig
    )

    # State
    persona_cache: PersonaCacheConfig = field(default_factory=PersonaCacheConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)

    # Client side
    client: ClientConfig = field(default_factory=ClientConfig)

    runtime_yaml_path: Optional[Path] = field(
        default_factory=lambda: Path(DEFAULT_RUNTIME_YAML)
    )

    def __post_init__(self) -> None:
        """Apply runtime.yaml and environment-specific defaults."""
        self._load_from_runtime_yaml()

        if self.environment == Environment.PRODUCTION:
            self.debug = False
            self.monitoring.json_logs = True
        elif self.environment == Environment.TESTING:
            self.debug = True
            self.monitoring.metrics_enabled = False

    def _load_from_runtime_yaml(self) -> None:
        """Overlay configuration from runtime.yaml if available."""
        if self.runtime_yaml_path is None or not self.runtime_yaml_path.exists():
            return

        data = YAMLConfigLoader.load_yaml_safe(self.runtime_yaml_path)
        self.apply_overrides(data)
        logger.debug(f"Loaded runtime configuration from {self.runtime_yaml_path}")

    def apply_overrides(self, data: Mapping[str, Any]) -> None:
        """Overlay a nested ``{section: {field: value}}`` mapping.

        Unknown sections and fields are ignored with a warning.
        """
        if "debug" in data:
            self.debug = _coerce(data["debug"], self.debug)
        if "environment" in data:
            self.environment = Environment(str(data["environment"]))

        for section_name, values in data.items():
            if section_name in ("debug", "environment"):
                continue
            section = getattr(self, section_name, None)
            if section_name not in SECTION_NAMES or not is_dataclass(section):
                logger.warning(f"Ignoring unknown config section: {section_name}")
                continue
            if not isinstance(values, Mapping):
                continue
            for key, value in values.items():
                if not hasattr(section, key):
                    logger.warning(f"Ignoring unknown config key: {section_name}.{key}")
                    continue
                setattr(section, key, _coerce(value, getattr(section, key)))

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "Config":
        """Load configuration from a YAML file."""
        config = cls(runtime_yaml_path=None)
        config.apply_overrides(YAMLConfigLoader.load_yaml(Path(config_path)))
        return config

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Load configuration from environment variables.

        ``GRIMOIRE_<SECTION>__<FIELD>`` sets a section field, e.g.
        ``GRIMOIRE_LLM__MODEL``. ``OPENAI_API_KEY`` and
        ``GRIMOIRE_BACKEND_URL`` are honored as-is. Environment values win
        over runtime.yaml.
        """
        env = os.environ if environ is None else environ

        try:
            environment = Environment(env.get(f"{ENV_PREFIX}ENV", "development"))
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid environment configuration: {e}", component="Config"
            ) from e
        config = cls(environment=environment)

        if f"{ENV_PREFIX}DEBUG" in env:
            config.debug = env[f"{ENV_PREFIX}DEBUG"].lower() in _TRUE_VALUES
        if "OPENAI_API_KEY" in env:
            config.llm.api_key = env["OPENAI_API_KEY"]
        if f"{ENV_PREFIX}BACKEND_URL" in env:
            config.client.backend_url = env[f"{ENV_PREFIX}BACKEND_URL"]

        overrides: Dict[str, Dict[str, Any]] = {}
        for name, value in env.items():
            if not name.startswith(ENV_PREFIX) or "__" not in name:
                continue
            section_name, _, key = name[len(ENV_PREFIX) :].partition("__")
            overrides.setdefault(section_name.lower(), {})[key.lower()] = value

        try:
            config.apply_overrides(overrides)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid environment configuration: {e}", component="Config"
            ) from e
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain dictionary (secrets masked)."""
        result: Dict[str, Any] = {
            "environment": self.environment.value,
            "debug": self.debug,
        }
        for section_name in SECTION_NAMES:
            section = getattr(self, section_name)
            values = {}
            for f in fields(section):
                value = getattr(section, f.name)
                if f.name == "api_key":
                    value = "***" if value else ""
                elif isinstance(value, Path):
                    value = str(value)
                values[f.name] = value
            result[section_name] = values
        return result

    def save(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        YAMLConfigLoader.save_yaml(self.to_dict(), Path(config_path))


def _coerce(value: Any, current: Any) -> Any:
    """Coerce a raw YAML/env value to the type of the current field value."""
    if not isinstance(value, str):
        if isinstance(current, Path) and value is not None:
            return Path(value)
        return value

    if isinstance(current, bool):
        return value.lower() in _TRUE_VALUES
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, Path):
        return Path(value)
    if isinstance(current, (list, dict)):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            if isinstance(current, list):
                return [item.strip() for item in value.split(",") if item.strip()]
            raise ValueError(f"Expected a JSON object, got: {value!r}")
        return parsed
    if current is None and value == "":
        return None
    return value
