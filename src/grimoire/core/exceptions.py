"""
Exception hierarchy for Grimoire.

Provides structured error handling with specific error types for each
pipeline stage and failure mode. The ``error_code`` of every pipeline error
is the machine-readable failure kind reported to HTTP callers.
"""

from typing import Any, Dict, Optional


class GrimoireError(Exception):
    """Base exception for all Grimoire errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        component: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.component = component

    def __str__(self) -> str:
        """String representation of the error."""
        base_msg = f"[{self.component or 'Grimoire'}] {self.message}"
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "details": self.details,
        }


class ConfigurationError(GrimoireError):
    """Exception raised when configuration is invalid or missing."""

    pass


# Pipeline stage failures


class TranscriptionFailedError(GrimoireError):
    """Speech-to-text failed; fatal to a voice turn."""

    def __init__(self, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Transcription failed: {reason}",
            error_code="TranscriptionFailed",
            details={"reason": reason},
            **kwargs,
        )


class ClassificationFailedError(GrimoireError):
    """Persona classification call failed outright (not a parse failure)."""

    def __init__(self, title: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Persona classification failed for '{title}': {reason}",
            error_code="ClassificationFailed",
            details={"title": title, "reason": reason},
            **kwargs,
        )


class GenerationFailedError(GrimoireError):
    """Reply generation failed; the turn is answered with an apology."""

    def __init__(self, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Generation failed: {reason}",
            error_code="GenerationFailed",
            details={"reason": reason},
            **kwargs,
        )


class SynthesisFailedError(GrimoireError):
    """Speech synthesis failed; the reply is returned without audio."""

    def __init__(self, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Speech synthesis failed: {reason}",
            error_code="SynthesisFailed",
            details={"reason": reason},
            **kwargs,
        )


class IdentificationFailedError(GrimoireError):
    """Cover identification call failed outright."""

    def __init__(self, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Book identification failed: {reason}",
            error_code="IdentificationFailed",
            details={"reason": reason},
            **kwargs,
        )


class UpstreamUnavailableError(GrimoireError):
    """The AI provider could not be reached or is overloaded."""

    def __init__(self, provider: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Upstream provider '{provider}' unavailable: {reason}",
            error_code="UpstreamUnavailable",
            details={"provider": provider, "reason": reason},
            **kwargs,
        )


# Input validation


class MissingInputError(GrimoireError):
    """A required request field is absent or empty."""

    def __init__(self, field: str, reason: str = "is required", **kwargs: Any) -> None:
        super().__init__(
            f"Field '{field}' {reason}",
            error_code="MissingInput",
            details={"field": field, "reason": reason},
            **kwargs,
        )


class InvalidInputError(GrimoireError):
    """A request field is present but unusable."""

    def __init__(self, field: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Field '{field}' is invalid: {reason}",
            error_code="InvalidInput",
            details={"field": field, "reason": reason},
            **kwargs,
        )


# Conversation log


class ConversationNotFoundError(GrimoireError):
    """No conversation exists with the given id."""

    def __init__(self, conversation_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"Conversation not found: {conversation_id}",
            error_code="ConversationNotFound",
            details={"conversation_id": conversation_id},
            **kwargs,
        )


class ConversationPersistenceError(GrimoireError):
    """The conversation store could not be written."""

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(
            f"Failed to persist conversations to {path}",
            error_code="ConversationPersistence",
            details={"path": path},
            **kwargs,
        )


# Client side


class GrimoireClientError(GrimoireError):
    """The Grimoire service answered with a non-success status."""

    def __init__(
        self, status_code: int, kind: Optional[str], detail: str, **kwargs: Any
    ) -> None:
        super().__init__(
            f"Grimoire service returned {status_code}: {detail}",
            error_code=kind or "HTTPError",
            details={"status_code": status_code, "detail": detail},
            **kwargs,
        )
        self.status_code = status_code
