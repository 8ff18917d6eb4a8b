"""
Base configuration infrastructure for Grimoire.

Contains constants and the Environment enum.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)

ENV_PREFIX = "GRIMOIRE_"
DEFAULT_RUNTIME_YAML = "configs/runtime.yaml"
DEFAULT_BACKEND_URL = "http://localhost:4000"


class Environment(Enum):
    """Environment types for configuration."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
