"""
Client-side conversation sessions.

A ``BookChat`` ties one conversation in the local log to the service: it
sends the recorded history with every question and then records the user turn
followed by the persona turn.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from ..books.types import Book
from ..conversation.log import ConversationLog
from ..conversation.types import Conversation, HistoryEntry
from ..core.exceptions import (
    ConversationNotFoundError,
    ConversationPersistenceError,
    MissingInputError,
)
from .http import ChatReply, GrimoireClient, VoiceReply

logger = logging.getLogger(__name__)


class BookChat:
    """A conversation with one book, recorded in a ``ConversationLog``."""

    def __init__(
        self, client: GrimoireClient, log: ConversationLog, conversation_id: str
    ):
        self.client = client
        self.log = log
        self.conversation_id = conversation_id

    @classmethod
    async def start(
        cls, client: GrimoireClient, log: ConversationLog, book: Book
    ) -> "BookChat":
        """Create a conversation about ``book`` and return a session for it."""
        conversation = await log.create_conversation(book)
        return cls(client, log, conversation.id)

    @classmethod
    async def start_from_cover(
        cls,
        client: GrimoireClient,
        log: ConversationLog,
        image: bytes,
        cover_image_uri: Optional[str] = None,
    ) -> Optional["BookChat"]:
        """Identify a cover photo and start a conversation about that book.

        Returns None when no title could be read from the cover.
        """
        result = await client.identify(image)
        if not result.found:
            logger.info("No book identified from cover")
            return None
        return await cls.start(client, log, result.to_book(cover_image_uri))

    @property
    def conversation(self) -> Conversation:
        conversation = self.log.get(self.conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(self.conversation_id, component="BookChat")
        return conversation

    @property
    def book(self) -> Book:
        return self.conversation.book

    def history(self) -> List[HistoryEntry]:
        return self.conversation.history()

    async def ask(self, question: str) -> ChatReply:
        """Ask a typed question and record the exchange."""
        question = question.strip()
        if not question:
            raise MissingInputError("question", component="BookChat")

        conversation = self.conversation
        reply = await self.client.chat(
            conversation.book, conversation.history(), question
        )
        recorded = await self._record(question, reply.answer)
        return replace(reply, recorded=recorded)

    async def speak(
        self, audio: bytes, audio_mime_type: Optional[str] = None
    ) -> VoiceReply:
        """Ask a recorded question and record the exchange.

        When nothing was heard only the persona's apology is recorded.
        """
        if not audio:
            raise MissingInputError("audio", component="BookChat")

        conversation = self.conversation
        reply = await self.client.voice(
            conversation.book, conversation.history(), audio, audio_mime_type
        )
        recorded = await self._record(reply.transcript or None, reply.answer)
        return replace(reply, recorded=recorded)

    async def _record(self, user_text: Optional[str], answer: str) -> bool:
        """Append the user turn then the persona turn as one exchange.

        A persistence failure loses the whole exchange from history but not
        the reply.
        """
        try:
            await self.log.append_exchange(self.conversation_id, user_text, answer)
        except ConversationPersistenceError as e:
            logger.error(f"Failed to record exchange in {self.conversation_id}: {e}")
            return False
        return True
