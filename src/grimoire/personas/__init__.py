"""
Personas: who a book speaks as, and how that is decided and remembered.
"""

from .parsing import build_classification_prompt, parse_persona
from .resolver import PersonaResolver
from .store import PersonaStore, persona_key
from .types import (
    ClassificationResult,
    Defaulted,
    Failed,
    Parsed,
    Persona,
    PersonaGender,
    PersonaRole,
    default_persona,
    last_resort_persona,
)

__all__ = [
    "Persona",
    "PersonaRole",
    "PersonaGender",
    "Parsed",
    "Defaulted",
    "Failed",
    "ClassificationResult",
    "default_persona",
    "last_resort_persona",
    "parse_persona",
    "build_classification_prompt",
    "PersonaStore",
    "persona_key",
    "PersonaResolver",
]
