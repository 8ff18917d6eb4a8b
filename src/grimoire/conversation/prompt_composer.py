"""
Prompt composition for persona replies.

Builds one self-contained prompt: who is speaking, how to answer, the
conversation so far in exact order, and the reader's new question.
"""

from typing import List, Sequence

from ..books.types import Book
from ..personas.types import Persona, PersonaRole
from .types import HistoryEntry, TurnRole

READER_LABEL = "Reader"

GUIDANCE = (
    "Stay in character for the whole reply. Keep answers concise and "
    "conversational, a few sentences at most. Ground what you say in the "
    "book. If the reader asks about something the book does not cover, say "
    "so plainly instead of inventing details."
)


class PromptComposer:
    """Composes single-persona, history-aware prompts. Pure; no I/O."""

    def __init__(self, guidance: str = GUIDANCE):
        self.guidance = guidance

    def framing(self, persona: Persona, book: Book) -> str:
        work = f'"{book.title}"'
        if book.author:
            work += f" by {book.author}"

        if persona.role == PersonaRole.PROTAGONIST:
            return (
                f"You are {persona.name}, the protagonist of {work}. "
                "Speak in the first person, as yourself, from inside the story."
            )

        kind = "fiction" if persona.is_fiction else "non-fiction"
        return (
            f"You are {persona.name}, the author of the {kind} work {work}. "
            "Speak in the first person about your book, its ideas and why you "
            "wrote it."
        )

    def format_history(self, persona: Persona, history: Sequence[HistoryEntry]) -> str:
        lines: List[str] = []
        for entry in history:
            speaker = READER_LABEL if entry.role == TurnRole.USER else persona.name
            lines.append(f"{speaker}: {entry.content}")
        return "\n".join(lines)

    def compose(
        self,
        persona: Persona,
        book: Book,
        history: Sequence[HistoryEntry],
        new_user_text: str,
    ) -> str:
        """Build the generation prompt for the reader's next message."""
        sections = [self.framing(persona, book), self.guidance]

        history_block = self.format_history(persona, history)
        if history_block:
            sections.append(f"Conversation so far:\n{history_block}")

        sections.append(f"{READER_LABEL}: {new_user_text}\n{persona.name}:")
        return "\n\n".join(sections)
