"""
Request and response models for the Grimoire HTTP API.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..personas.types import Persona


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryItem(APIModel):
    role: Literal["user", "book"]
    content: str


class PersonaModel(APIModel):
    is_fiction: bool
    role: Literal["protagonist", "author"]
    name: str
    gender: Literal["male", "female", "unknown"]

    @classmethod
    def from_persona(cls, persona: Persona) -> "PersonaModel":
        return cls.model_validate(persona.to_dict())


class ChatRequest(APIModel):
    book_title: str
    author: Optional[str] = None
    history: List[HistoryItem] = Field(default_factory=list)
    question: str = ""


class ChatResponse(APIModel):
    answer: str
    persona: PersonaModel


class IdentifyRequest(APIModel):
    image_base64: Optional[str] = None


class IdentifyResponse(APIModel):
    title: Optional[str] = None
    author: Optional[str] = None


class VoiceRequest(APIModel):
    audio_base64: str = ""
    book_title: str
    author: Optional[str] = None
    history: List[HistoryItem] = Field(default_factory=list)
    audio_mime_type: Optional[str] = None


class VoiceResponse(APIModel):
    transcript: str
    answer: str
    persona: Optional[PersonaModel] = None
    audio_base64: Optional[str] = None
    audio_mime_type: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
