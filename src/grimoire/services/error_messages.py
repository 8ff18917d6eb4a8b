"""
Centralized fallback replies for degraded turns.

These are the texts a reader sees in place of a persona reply when a turn
cannot be answered normally.
"""


class ServiceErrorMessages:
    """Centralized fallback replies for services."""

    # Transcription
    NO_SPEECH_APOLOGY = (
        "I'm sorry, I couldn't hear anything in that recording. "
        "Could you say it again?"
    )

    # Generation
    GENERATION_APOLOGY = (
        "I'm sorry, my thoughts are clouded right now. "
        "Please ask me again in a moment."
    )


# Convenience constants for direct import
NO_SPEECH_APOLOGY = ServiceErrorMessages.NO_SPEECH_APOLOGY
GENERATION_APOLOGY = ServiceErrorMessages.GENERATION_APOLOGY
