"""
Append-only conversation log.

Holds every conversation in memory as immutable snapshots and writes the
whole log through to a JSON file on each mutation. A mutation only becomes
visible once the file write has succeeded.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..books.types import Book
from ..core.exceptions import ConversationNotFoundError, ConversationPersistenceError
from ..core.persistence import JSONRepository
from .types import Conversation, Turn, TurnRole, new_id, utc_now

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class ConversationLog:
    """File-backed store of conversations and their turns."""

    def __init__(
        self, store_path: Path, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self.store_path = Path(store_path)
        self.clock = clock
        self._conversations: Dict[str, Conversation] = {}
        self._lock = asyncio.Lock()
        self._open = False

    async def open(self) -> None:
        """Load conversations from disk. A corrupt file starts an empty log."""
        data = JSONRepository.load_json(self.store_path, default={})
        self._conversations = {}

        for conversation_id, raw in (data.get("conversations") or {}).items():
            try:
                self._conversations[conversation_id] = Conversation.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    f"Skipping unreadable conversation {conversation_id}: {e}"
                )

        if self.store_path.exists() and not data:
            logger.warning(
                f"Conversation store {self.store_path} could not be read; "
                "starting with an empty log"
            )

        self._open = True
        logger.info(
            f"Conversation log opened with {len(self._conversations)} conversations"
        )

    async def close(self) -> None:
        self._open = False
        self._conversations = {}

    async def __aenter__(self) -> "ConversationLog":
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _check_open(self) -> None:
        if not self._open:
            raise RuntimeError("ConversationLog is not open")

    def _now(self, not_before: Optional[datetime] = None) -> datetime:
        now = self.clock()
        # clamp clocks that go backwards
        if not_before is not None and now < not_before:
            return not_before
        return now

    def _commit(self, conversation: Conversation) -> None:
        """Write the log with ``conversation`` replaced; roll back on failure.

        Every commit rewrites the whole store file, so its cost grows with
        the total size of the log.
        """
        previous = self._conversations.get(conversation.id)
        self._conversations[conversation.id] = conversation

        if not JSONRepository.save_json(self.store_path, self._serialize()):
            if previous is None:
                del self._conversations[conversation.id]
            else:
                self._conversations[conversation.id] = previous
            raise ConversationPersistenceError(
                str(self.store_path), component="ConversationLog"
            )

    def _require(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id, component="ConversationLog")
        return conversation

    def _new_turn(
        self,
        conversation: Conversation,
        role: TurnRole,
        content: str,
        turn_id: Optional[str] = None,
    ) -> Turn:
        return Turn(
            id=turn_id or new_id(),
            role=role,
            content=content,
            created_at=self._now(not_before=conversation.last_active_at),
        )

    def _serialize(self) -> Dict[str, Any]:
        return {
            "version": STORE_VERSION,
            "conversations": {
                cid: conversation.to_dict()
                for cid, conversation in self._conversations.items()
            },
        }

    async def create_conversation(self, book: Book) -> Conversation:
        """Create a conversation about ``book``."""
        self._check_open()
        async with self._lock:
            conversation = Conversation(book=book, created_at=self._now(), id=new_id())
            self._commit(conversation)

        logger.info(f"Created conversation {conversation.id} for '{book.title}'")
        return conversation

    async def append(
        self,
        conversation_id: str,
        role: TurnRole,
        content: str,
        turn_id: Optional[str] = None,
    ) -> Turn:
        """Append a turn. The only way turns are added to a conversation.

        Raises:
            ConversationNotFoundError: no conversation has this id.
            ConversationPersistenceError: the log could not be written.
        """
        self._check_open()
        async with self._lock:
            conversation = self._require(conversation_id)
            turn = self._new_turn(conversation, role, content, turn_id)
            self._commit(conversation.with_turn(turn))

        return turn

    async def append_exchange(
        self, conversation_id: str, user_text: Optional[str], answer: str
    ) -> List[Turn]:
        """Append a user turn and the persona's answer in one write.

        Either both turns are recorded or neither is. With no ``user_text``
        only the persona turn is appended.

        Raises:
            ConversationNotFoundError: no conversation has this id.
            ConversationPersistenceError: the log could not be written.
        """
        self._check_open()
        async with self._lock:
            conversation = self._require(conversation_id)
            turns: List[Turn] = []
            if user_text:
                turns.append(self._new_turn(conversation, TurnRole.USER, user_text))
                conversation = conversation.with_turn(turns[-1])
            turns.append(self._new_turn(conversation, TurnRole.PERSONA, answer))
            self._commit(conversation.with_turn(turns[-1]))

        return turns

    async def update_book_cover(
        self, conversation_id: str, cover_image_uri: str
    ) -> Conversation:
        """Replace the book's cover, keeping conversation identity and turns."""
        self._check_open()
        async with self._lock:
            conversation = self._require(conversation_id)
            updated = conversation.with_book(
                conversation.book.with_cover(cover_image_uri),
                self._now(not_before=conversation.last_active_at),
            )
            self._commit(updated)

        return updated

    def get(self, conversation_id: str) -> Optional[Conversation]:
        self._check_open()
        return self._conversations.get(conversation_id)

    def list(self) -> List[Conversation]:
        """All conversations, most recently active first."""
        self._check_open()
        return sorted(
            self._conversations.values(),
            key=lambda c: c.last_active_at or c.created_at,
            reverse=True,
        )
