"""
Grimoire conversation endpoints.

Text chat, voice chat and cover identification. Each handler validates its
payload before any upstream call is made, then hands the turn to the
pipeline held by the running service.
"""

import base64
import binascii
from typing import List, Optional, Sequence

from fastapi import APIRouter, Request, Response

from ..books.types import Book
from ..conversation.types import HistoryEntry, TurnRole
from ..core.exceptions import InvalidInputError, MissingInputError
from ..core.logging import get_logger
from ..core.protocols import AudioData
from ..personas.types import last_resort_persona
from ..services.runtime import ServiceRuntime
from .models import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HistoryItem,
    IdentifyRequest,
    IdentifyResponse,
    PersonaModel,
    VoiceRequest,
    VoiceResponse,
)

logger = get_logger(__name__)

FAILURE_HEADER = "X-Grimoire-Failure"
DEFAULT_AUDIO_FORMAT = "m4a"

grimoire_router = APIRouter(
    prefix="/api/grimoire",
    tags=["grimoire"],
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def get_runtime(request: Request) -> ServiceRuntime:
    return request.app.state.runtime  # type: ignore[no-any-return]


def _decode_base64(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(field, f"not valid base64 ({e})") from e


def _book_from(title: str, author: Optional[str]) -> Book:
    if not title or not title.strip():
        raise MissingInputError("bookTitle")
    return Book(title=title.strip(), author=(author or "").strip() or None)


def _history_from(
    items: Sequence[HistoryItem], runtime: ServiceRuntime
) -> List[HistoryEntry]:
    limit = runtime.config.api.max_history_turns
    if len(items) > limit:
        raise InvalidInputError("history", f"at most {limit} turns are accepted")
    return [
        HistoryEntry(role=TurnRole.from_wire(item.role), content=item.content)
        for item in items
    ]


@grimoire_router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, request: Request, response: Response) -> ChatResponse:
    """Answer a typed question as the book's persona."""
    runtime = get_runtime(request)

    book = _book_from(body.book_title, body.author)
    if not body.question.strip():
        raise MissingInputError("question")
    history = _history_from(body.history, runtime)

    result = await runtime.pipeline.run_text_turn(book, history, body.question.strip())
    if result.failure is not None:
        response.headers[FAILURE_HEADER] = result.failure.value

    persona = result.persona or last_resort_persona(book.title)
    return ChatResponse(answer=result.answer, persona=PersonaModel.from_persona(persona))


@grimoire_router.post("/identify", response_model=IdentifyResponse)
async def identify(body: IdentifyRequest, request: Request) -> IdentifyResponse:
    """Identify a book's title and author from a cover photo."""
    runtime = get_runtime(request)

    if not body.image_base64:
        return IdentifyResponse()

    image = _decode_base64(body.image_base64, "imageBase64")
    result = await runtime.identifier.identify(image)
    logger.info("Cover identified", found=result.found, title=result.title)
    return IdentifyResponse(title=result.title, author=result.author)


@grimoire_router.post("/voice", response_model=VoiceResponse)
async def voice(
    body: VoiceRequest, request: Request, response: Response
) -> VoiceResponse:
    """Answer a recorded question, with a spoken reply when possible."""
    runtime = get_runtime(request)

    if not body.audio_base64:
        raise MissingInputError("audioBase64")
    audio_bytes = _decode_base64(body.audio_base64, "audioBase64")
    if not audio_bytes:
        raise MissingInputError("audioBase64")
    if len(audio_bytes) > runtime.config.api.max_audio_bytes:
        raise InvalidInputError(
            "audioBase64",
            f"exceeds {runtime.config.api.max_audio_bytes} bytes",
        )

    book = _book_from(body.book_title, body.author)
    history = _history_from(body.history, runtime)
    audio_format = (
        AudioData.format_for_mime_type(body.audio_mime_type) or DEFAULT_AUDIO_FORMAT
    )

    result = await runtime.pipeline.run_voice_turn(
        book, history, AudioData(data=audio_bytes, format=audio_format)
    )
    if result.failure is not None:
        response.headers[FAILURE_HEADER] = result.failure.value

    audio = result.audio
    return VoiceResponse(
        transcript=result.transcript,
        answer=result.answer,
        persona=PersonaModel.from_persona(result.persona) if result.persona else None,
        audio_base64=base64.b64encode(audio.data).decode("ascii") if audio else None,
        audio_mime_type=audio.mime_type if audio else None,
    )
