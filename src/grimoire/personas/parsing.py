"""
Parsing of persona classification output.

The model is asked for a JSON object but often wraps it in prose or code
fences, so the first ``{...}`` span is extracted before decoding. Each field
is validated on its own and falls back to its default independently.
"""

import json
import logging
import re
from typing import Any, List, Union

from .types import (
    Defaulted,
    Parsed,
    Persona,
    PersonaGender,
    PersonaRole,
    default_persona,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_ALL_FIELDS = ("isFiction", "role", "name", "gender")

CLASSIFICATION_INSTRUCTION = """You are classifying a book so that a reader can talk with it.

Book title: {title}
Author: {author}

Decide whether the book is fiction. For fiction, the speaker is the book's
protagonist. For non-fiction, the speaker is the author.

Reply with only a JSON object with exactly these keys:
{{"isFiction": true or false,
  "role": "protagonist" or "author",
  "name": the speaker's name,
  "gender": "male", "female" or "unknown"}}"""


def build_classification_prompt(title: str, author: str = "") -> str:
    return CLASSIFICATION_INSTRUCTION.format(title=title, author=author or "unknown")


def _enum_value(raw: Any, enum_cls: Any) -> Any:
    if not isinstance(raw, str):
        return None
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        return None


def parse_persona(text: str, title: str) -> Union[Parsed, Defaulted]:
    """Parse classification output into ``Parsed`` or ``Defaulted``.

    Never raises; anything unusable degrades to the default persona for
    ``title``, field by field where possible.
    """
    fallback = default_persona(title)

    match = _JSON_OBJECT.search(text or "")
    if not match:
        return Defaulted(fallback, "no JSON object in model output", _ALL_FIELDS)

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return Defaulted(fallback, f"undecodable JSON: {e.msg}", _ALL_FIELDS)

    if not isinstance(data, dict):
        return Defaulted(fallback, "JSON value is not an object", _ALL_FIELDS)

    defaulted: List[str] = []

    is_fiction = data.get("isFiction")
    # bool only; 1/0 and "true" are rejected
    if not isinstance(is_fiction, bool):
        is_fiction = fallback.is_fiction
        defaulted.append("isFiction")

    role = _enum_value(data.get("role"), PersonaRole)
    if role is None:
        role = fallback.role
        defaulted.append("role")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        name = fallback.name
        defaulted.append("name")
    else:
        name = name.strip()

    gender = _enum_value(data.get("gender"), PersonaGender)
    if gender is None:
        gender = fallback.gender
        defaulted.append("gender")

    persona = Persona(is_fiction=is_fiction, role=role, name=name, gender=gender)
    if defaulted:
        logger.debug(f"Persona for '{title}' defaulted fields: {defaulted}")
        return Defaulted(persona, "invalid fields in model output", tuple(defaulted))
    return Parsed(persona)

