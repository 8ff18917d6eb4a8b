"""
Conversations: turns, their history, prompt composition and the local log.
"""

from .log import ConversationLog
from .prompt_composer import PromptComposer
from .types import Conversation, HistoryEntry, Turn, TurnRole

__all__ = [
    "Conversation",
    "HistoryEntry",
    "Turn",
    "TurnRole",
    "PromptComposer",
    "ConversationLog",
]
