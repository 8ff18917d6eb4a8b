"""Conversation value types."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..books.types import Book


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class TurnRole(Enum):
    """Who produced a turn."""

    USER = "user"
    PERSONA = "persona"

    @classmethod
    def from_wire(cls, value: str) -> "TurnRole":
        """Map a wire role (``user`` or ``book``) to a turn role."""
        normalized = value.strip().lower()
        if normalized == "user":
            return cls.USER
        if normalized in ("book", "persona", "assistant"):
            return cls.PERSONA
        raise ValueError(f"Unknown turn role: {value!r}")

    def to_wire(self) -> str:
        return "user" if self is TurnRole.USER else "book"


@dataclass(frozen=True)
class HistoryEntry:
    """One prior turn as sent to the service."""

    role: TurnRole
    content: str


@dataclass(frozen=True)
class Turn:
    """One message in a conversation. Immutable once appended."""

    role: TurnRole
    content: str
    created_at: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)

    def to_history_entry(self) -> HistoryEntry:
        return HistoryEntry(role=self.role, content=self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        return cls(
            id=data["id"],
            role=TurnRole(data["role"]),
            content=data["content"],
            created_at=datetime.fromisoformat(data["createdAt"]),
        )


@dataclass(frozen=True)
class Conversation:
    """A book and the ordered turns exchanged about it."""

    book: Book
    turns: Tuple[Turn, ...] = ()
    created_at: datetime = field(default_factory=utc_now)
    last_active_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if self.last_active_at is None:
            object.__setattr__(self, "last_active_at", self.created_at)

    def with_turn(self, turn: Turn) -> "Conversation":
        return replace(self, turns=self.turns + (turn,), last_active_at=turn.created_at)

    def with_book(self, book: Book, touched_at: datetime) -> "Conversation":
        return replace(self, book=book, last_active_at=touched_at)

    def history(self) -> List[HistoryEntry]:
        """Turns in append order, as history entries."""
        return [turn.to_history_entry() for turn in self.turns]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "book": self.book.to_dict(),
            "turns": [turn.to_dict() for turn in self.turns],
            "createdAt": self.created_at.isoformat(),
            "lastActiveAt": (self.last_active_at or self.created_at).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            id=data["id"],
            book=Book.from_dict(data["book"]),
            turns=tuple(Turn.from_dict(t) for t in data.get("turns", [])),
            created_at=datetime.fromisoformat(data["createdAt"]),
            last_active_at=datetime.fromisoformat(data["lastActiveAt"])
            if data.get("lastActiveAt")
            else None,
        )
