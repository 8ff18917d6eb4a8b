"""
Client side of Grimoire: the HTTP client and recorded book conversations.
"""

from .http import ChatReply, GrimoireClient, VoiceReply
from .session import BookChat

__all__ = ["GrimoireClient", "ChatReply", "VoiceReply", "BookChat"]
