"""Turn orchestration for the transcription -> persona -> generation -> speech flow.

One pipeline serves both entry points:
- Text turns: persona resolution, prompt composition, generation
- Voice turns: transcription first, best-effort speech synthesis last

Only transcription failures are fatal. Classification failures fall back to a
last-resort persona, generation failures become an apology reply, and
synthesis failures drop the audio.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence

from ..books.types import Book
from ..conversation.types import HistoryEntry, TurnRole
from ..core.exceptions import (
    ClassificationFailedError,
    GenerationFailedError,
    GrimoireError,
    SynthesisFailedError,
)
from ..core.logging import ProcessingTimer, get_logger
from ..core.metrics import MetricsCollector
from ..core.protocols import AudioData
from ..personas.resolver import PersonaResolver
from ..personas.types import Persona, last_resort_persona
from .error_messages import GENERATION_APOLOGY, NO_SPEECH_APOLOGY
from .llm_service import GenerationService
from .stt_service import TranscriptionService
from .tts_service import SynthesisService

logger = get_logger(__name__)


class TurnKind(Enum):
    """Pipeline entry point."""

    TEXT = "text"
    VOICE = "voice"


class TurnState(Enum):
    """States a turn moves through."""

    RECEIVED = "received"
    TRANSCRIBING = "transcribing"
    PERSONA_RESOLVING = "persona_resolving"
    COMPOSING = "composing"
    GENERATING = "generating"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureKind(Enum):
    """Stage failure kinds, named as reported to callers."""

    TRANSCRIPTION_FAILED = "TranscriptionFailed"
    CLASSIFICATION_FAILED = "ClassificationFailed"
    GENERATION_FAILED = "GenerationFailed"
    SYNTHESIS_FAILED = "SynthesisFailed"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"

    @classmethod
    def from_error(cls, error: GrimoireError) -> Optional["FailureKind"]:
        try:
            return cls(error.error_code)
        except ValueError:
            return None


@dataclass
class TurnResult:
    """Outcome of one turn.

    ``failure`` is set only when the turn ended in ``FAILED``; stage failures
    the turn recovered from are listed in ``degraded``.
    """

    turn_kind: TurnKind
    transcript: str = ""
    answer: str = ""
    persona: Optional[Persona] = None
    audio: Optional[AudioData] = None
    state: TurnState = TurnState.RECEIVED
    failure: Optional[FailureKind] = None
    degraded: List[FailureKind] = field(default_factory=list)
    trace: List[TurnState] = field(default_factory=lambda: [TurnState.RECEIVED])
    timings: Dict[str, float] = field(default_factory=dict)

    def advance(self, state: TurnState) -> None:
        self.state = state
        self.trace.append(state)

    def fail(self, kind: Optional[FailureKind]) -> None:
        self.failure = kind
        self.advance(TurnState.FAILED)

    def turns(self) -> List[HistoryEntry]:
        """Entries to append to history, user turn first.

        The user entry is left out when there is no transcript.
        """
        entries = []
        if self.transcript:
            entries.append(HistoryEntry(role=TurnRole.USER, content=self.transcript))
        entries.append(HistoryEntry(role=TurnRole.PERSONA, content=self.answer))
        return entries


class TurnPipeline:
    """Orchestrates one conversational turn across the AI services."""

    def __init__(
        self,
        resolver: PersonaResolver,
        transcription: TranscriptionService,
        generation: GenerationService,
        synthesis: SynthesisService,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.resolver = resolver
        self.transcription = transcription
        self.generation = generation
        self.synthesis = synthesis
        self.metrics = metrics

    async def run_text_turn(
        self, book: Book, history: Sequence[HistoryEntry], question: str
    ) -> TurnResult:
        """Answer a typed question. Never runs transcription or synthesis."""
        result = TurnResult(turn_kind=TurnKind.TEXT, transcript=question)

        await self._answer(result, book, history, question)
        if result.state != TurnState.FAILED:
            result.advance(TurnState.COMPLETED)

        self._finish(result)
        return result

    async def run_voice_turn(
        self, book: Book, history: Sequence[HistoryEntry], audio: AudioData
    ) -> TurnResult:
        """Answer a recorded question, with a spoken reply when possible.

        Raises:
            TranscriptionFailedError: the recording could not be transcribed
            UpstreamUnavailableError: the transcription provider is unreachable
        """
        result = TurnResult(turn_kind=TurnKind.VOICE)

        result.advance(TurnState.TRANSCRIBING)
        try:
            with self._timed(result, "transcription"):
                transcript = await self.transcription.transcribe(audio)
        except GrimoireError as e:
            self._record_failure("transcription", e)
            result.fail(FailureKind.from_error(e))
            self._finish(result)
            raise

        if not transcript.strip():
            # nothing was said; answer without consulting any other stage
            result.answer = NO_SPEECH_APOLOGY
            result.advance(TurnState.COMPLETED)
            self._finish(result)
            return result

        result.transcript = transcript
        await self._answer(result, book, history, transcript)

        if result.state != TurnState.FAILED:
            result.advance(TurnState.SYNTHESIZING)
            try:
                with self._timed(result, "synthesis"):
                    result.audio = await self.synthesis.synthesize(
                        result.answer, result.persona
                    )
            except SynthesisFailedError as e:
                logger.warning("Synthesis failed; replying without audio", error=str(e))
                self._record_failure("synthesis", e)
                result.degraded.append(FailureKind.SYNTHESIS_FAILED)
                result.audio = None
            result.advance(TurnState.COMPLETED)

        self._finish(result)
        return result

    async def _answer(
        self,
        result: TurnResult,
        book: Book,
        history: Sequence[HistoryEntry],
        question: str,
    ) -> None:
        result.advance(TurnState.PERSONA_RESOLVING)
        result.persona = await self._resolve_persona(result, book)

        result.advance(TurnState.COMPOSING)
        prompt = self.generation.compose(result.persona, book, history, question)

        result.advance(TurnState.GENERATING)
        try:
            with self._timed(result, "generation"):
                result.answer = await self.generation.generate_reply(prompt)
        except GenerationFailedError as e:
            logger.error("Generation failed; replying with apology", error=str(e))
            self._record_failure("generation", e)
            result.answer = GENERATION_APOLOGY
            result.fail(FailureKind.GENERATION_FAILED)

    async def _resolve_persona(self, result: TurnResult, book: Book) -> Persona:
        try:
            with self._timed(result, "persona"):
                return await self.resolver.resolve(book.title, book.author)
        except ClassificationFailedError as e:
            logger.warning(
                "Persona classification failed; using last-resort persona",
                title=book.title,
                error=str(e),
            )
            self._record_failure("persona", e)
            result.degraded.append(FailureKind.CLASSIFICATION_FAILED)
            return last_resort_persona(book.title)

    @contextmanager
    def _timed(self, result: TurnResult, stage: str) -> Iterator[None]:
        timer = ProcessingTimer(
            logger, stage, "TurnPipeline", turn_kind=result.turn_kind.value
        )
        try:
            with timer:
                yield
        finally:
            if timer.duration_ms is not None:
                result.timings[stage] = timer.duration_ms
                if self.metrics is not None:
                    self.metrics.record_stage(stage, timer.duration_ms / 1000)

    def _record_failure(self, stage: str, error: GrimoireError) -> None:
        if self.metrics is not None:
            self.metrics.record_stage_failure(stage, error.error_code or "Unknown")

    def _finish(self, result: TurnResult) -> None:
        outcome = result.state.value
        logger.log_turn(
            result.turn_kind.value,
            outcome,
            failure=result.failure.value if result.failure else None,
            degraded=[kind.value for kind in result.degraded],
            timings_ms=result.timings,
        )
        if self.metrics is not None:
            self.metrics.record_turn(result.turn_kind.value, outcome)
