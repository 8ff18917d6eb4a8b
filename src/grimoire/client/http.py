"""
HTTP client for the Grimoire service.

Speaks the ``/api/grimoire`` JSON API over ``httpx.AsyncClient`` and maps
error bodies back onto the exception hierarchy.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx

from ..books.types import Book, IdentificationResult
from ..conversation.types import HistoryEntry
from ..core.config import ClientConfig
from ..core.exceptions import GrimoireClientError, UpstreamUnavailableError
from ..personas.types import Persona

logger = logging.getLogger(__name__)

FAILURE_HEADER = "X-Grimoire-Failure"


@dataclass(frozen=True)
class ChatReply:
    """The service's answer to a typed question."""

    answer: str
    persona: Persona
    failure: Optional[str] = None
    recorded: bool = False


@dataclass(frozen=True)
class VoiceReply:
    """The service's answer to a recorded question."""

    transcript: str
    answer: str
    persona: Optional[Persona] = None
    audio: Optional[bytes] = None
    audio_mime_type: Optional[str] = None
    failure: Optional[str] = None
    recorded: bool = False


def _history_payload(history: Sequence[HistoryEntry]) -> list:
    return [
        {"role": entry.role.to_wire(), "content": entry.content} for entry in history
    ]


def _book_payload(book: Book) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"bookTitle": book.title}
    if book.author:
        payload["author"] = book.author
    return payload


class GrimoireClient:
    """Async client for a Grimoire service at ``base_url``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        config = ClientConfig()
        self.base_url = (base_url or config.backend_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.timeout_s
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout
        )

    async def __aenter__(self) -> "GrimoireClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TransportError as e:
            raise UpstreamUnavailableError(
                "grimoire", f"{type(e).__name__}: {e}", component="GrimoireClient"
            ) from e

        if response.is_success:
            return response

        kind: Optional[str] = None
        detail = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            kind = body.get("error")
            detail = str(body.get("detail", detail))

        logger.warning(f"{method} {path} failed with {response.status_code}: {kind}")
        raise GrimoireClientError(
            response.status_code, kind, detail, component="GrimoireClient"
        )

    async def chat(
        self, book: Book, history: Sequence[HistoryEntry], question: str
    ) -> ChatReply:
        """Ask the book's persona a typed question."""
        payload = {
            **_book_payload(book),
            "history": _history_payload(history),
            "question": question,
        }
        response = await self._request("POST", "/api/grimoire/chat", payload)
        body = response.json()
        return ChatReply(
            answer=body["answer"],
            persona=Persona.from_dict(body["persona"]),
            failure=response.headers.get(FAILURE_HEADER),
        )

    async def voice(
        self,
        book: Book,
        history: Sequence[HistoryEntry],
        audio: bytes,
        audio_mime_type: Optional[str] = None,
    ) -> VoiceReply:
        """Ask the book's persona a recorded question."""
        payload = {
            **_book_payload(book),
            "history": _history_payload(history),
            "audioBase64": base64.b64encode(audio).decode("ascii"),
        }
        if audio_mime_type:
            payload["audioMimeType"] = audio_mime_type

        response = await self._request("POST", "/api/grimoire/voice", payload)
        body = response.json()
        audio_b64 = body.get("audioBase64")
        return VoiceReply(
            transcript=body.get("transcript", ""),
            answer=body["answer"],
            persona=Persona.from_dict(body["persona"])
            if body.get("persona")
            else None,
            audio=base64.b64decode(audio_b64) if audio_b64 else None,
            audio_mime_type=body.get("audioMimeType"),
            failure=response.headers.get(FAILURE_HEADER),
        )

    async def identify(self, image: Optional[bytes]) -> IdentificationResult:
        """Identify a book from a JPEG cover photo."""
        payload: Dict[str, Any] = {}
        if image:
            payload["imageBase64"] = base64.b64encode(image).decode("ascii")

        response = await self._request("POST", "/api/grimoire/identify", payload)
        body = response.json()
        return IdentificationResult(title=body.get("title"), author=body.get("author"))

    async def health(self) -> bool:
        """Whether the service answers its liveness probe."""
        try:
            response = await self._request("GET", "/health")
        except (GrimoireClientError, UpstreamUnavailableError):
            return False
        return response.text.strip() == "OK"
