"""Book value types."""

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional


def _new_book_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Book:
    """A book a conversation is about. Immutable; amendments return a copy."""

    title: str
    author: Optional[str] = None
    cover_image_uri: Optional[str] = None
    id: str = field(default_factory=_new_book_id)

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("Book title is required")

    def with_cover(self, cover_image_uri: str) -> "Book":
        return replace(self, cover_image_uri=cover_image_uri)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "coverImageUri": self.cover_image_uri,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        return cls(
            id=data.get("id") or _new_book_id(),
            title=data["title"],
            author=data.get("author") or None,
            cover_image_uri=data.get("coverImageUri"),
        )


@dataclass(frozen=True)
class IdentificationResult:
    """What a cover scan recognised. Both fields are None when nothing was."""

    title: Optional[str] = None
    author: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.title)

    def to_book(self, cover_image_uri: Optional[str] = None) -> Book:
        if not self.title:
            raise ValueError("No title was identified")
        return Book(
            title=self.title, author=self.author, cover_image_uri=cover_image_uri
        )
