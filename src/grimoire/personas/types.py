"""
Persona value types and classification outcomes.

A persona is the voice a book speaks with: its protagonist for fiction, its
author otherwise. Classification of a book yields one of three tagged
results so callers can tell a clean parse from a fallback.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union


class PersonaRole(Enum):
    """Who speaks for the book."""

    PROTAGONIST = "protagonist"
    AUTHOR = "author"


class PersonaGender(Enum):
    """Gender used to pick a synthesis voice."""

    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Persona:
    """The speaking persona for a book."""

    is_fiction: bool
    role: PersonaRole
    name: str
    gender: PersonaGender = PersonaGender.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isFiction": self.is_fiction,
            "role": self.role.value,
            "name": self.name,
            "gender": self.gender.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Persona":
        return cls(
            is_fiction=bool(data["isFiction"]),
            role=PersonaRole(data["role"]),
            name=str(data["name"]),
            gender=PersonaGender(data.get("gender", "unknown")),
        )


def default_persona(title: str) -> Persona:
    """Persona used when classification output is unusable."""
    return Persona(
        is_fiction=True,
        role=PersonaRole.PROTAGONIST,
        name=title,
        gender=PersonaGender.UNKNOWN,
    )


def last_resort_persona(title: str) -> Persona:
    """Persona used for one turn when classification could not run at all."""
    return default_persona(title)


@dataclass(frozen=True)
class Parsed:
    """Model output parsed cleanly."""

    persona: Persona


@dataclass(frozen=True)
class Defaulted:
    """Model output was partly or wholly unusable; defaults were filled in.

    ``fields`` names the persona fields that took their default value.
    """

    persona: Persona
    reason: str
    fields: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Failed:
    """The classification call itself failed."""

    error: Exception


ClassificationResult = Union[Parsed, Defaulted, Failed]
