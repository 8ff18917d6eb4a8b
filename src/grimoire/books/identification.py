"""
Book identification from a cover photo.

A vision model is asked for the title and author on the cover. Its free-text
answer is read by an ordered list of parsing strategies; the first strategy
that yields a title wins, otherwise the result is empty (title and author
both None).
"""

import asyncio
import json
import logging
import re
from typing import Any, List, Optional, Sequence

from ..core.config import IdentificationConfig
from ..core.exceptions import GrimoireError, IdentificationFailedError
from ..core.protocols import VisionProvider
from .types import IdentificationResult

logger = logging.getLogger(__name__)

IDENTIFY_INSTRUCTION = (
    "This photo should show the cover or spine of a book. Read the book's "
    "title and author from it. Reply with only a JSON object of the form "
    '{"title": "...", "author": "..."}. Use null for anything you cannot '
    "read. If no book is visible, reply with "
    '{"title": null, "author": null}.'
)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_NULL_WORDS = {"", "null", "none", "unknown", "n/a", "not visible", "unreadable"}
_STRIP_CHARS = " \t\r\n\"'`*_“”‘’"


def _clean(value: Any) -> Optional[str]:
    """Normalise one extracted field; None when it carries no information."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip(_STRIP_CHARS)
    if cleaned.lower() in _NULL_WORDS:
        return None
    return cleaned


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


class IdentificationStrategy:
    """One way of reading a title and author out of model text."""

    name = "base"

    def parse(self, text: str) -> Optional[IdentificationResult]:
        raise NotImplementedError


class JsonObjectStrategy(IdentificationStrategy):
    """``{"title": ..., "author": ...}`` anywhere in the text."""

    name = "json"

    def parse(self, text: str) -> Optional[IdentificationResult]:
        match = _JSON_OBJECT.search(text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None

        title = _clean(data.get("title"))
        if not title:
            return None
        return IdentificationResult(title=title, author=_clean(data.get("author")))


class SeparatorStrategy(IdentificationStrategy):
    """``<title><separator><author>`` on the first non-empty line."""

    pattern = re.compile(r"$^")

    def parse(self, text: str) -> Optional[IdentificationResult]:
        line = _first_line(text)
        parts = self.pattern.split(line, maxsplit=1)
        if len(parts) != 2:
            return None

        title, author = _clean(parts[0]), _clean(parts[1])
        if not title or not author:
            return None
        return IdentificationResult(title=title, author=author)


class BySeparatorStrategy(SeparatorStrategy):
    """``Title by Author``, case-insensitive."""

    name = "by"
    pattern = re.compile(r"\s+by\s+", re.IGNORECASE)


class DashSeparatorStrategy(SeparatorStrategy):
    """``Title - Author``."""

    name = "dash"
    pattern = re.compile(r"\s+[-–—]\s+")


def default_strategies() -> List[IdentificationStrategy]:
    """Strategies in the order they are tried."""
    return [
        JsonObjectStrategy(),
        BySeparatorStrategy(),
        DashSeparatorStrategy(),
    ]


def parse_identification(
    text: str, strategies: Optional[Sequence[IdentificationStrategy]] = None
) -> IdentificationResult:
    """Run ``strategies`` in order and return the first result with a title."""
    for strategy in strategies or default_strategies():
        result = strategy.parse(text)
        if result is not None and result.found:
            logger.debug(f"Identification parsed by '{strategy.name}' strategy")
            return result
    return IdentificationResult()


class BookIdentifier:
    """Identifies a book from a JPEG cover photo."""

    def __init__(
        self,
        vision: VisionProvider,
        config: Optional[IdentificationConfig] = None,
        strategies: Optional[Sequence[IdentificationStrategy]] = None,
    ):
        self.vision = vision
        self.config = config or IdentificationConfig()
        self.strategies = list(strategies or default_strategies())

    async def identify(self, image: Optional[bytes]) -> IdentificationResult:
        """Return the identified title/author; empty when there is no image."""
        if not image:
            return IdentificationResult()

        try:
            text = await asyncio.wait_for(
                self.vision.describe_image(
                    image, IDENTIFY_INSTRUCTION, model=self.config.model
                ),
                timeout=self.config.timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise IdentificationFailedError(
                f"timed out after {self.config.timeout_s}s", component="BookIdentifier"
            ) from e
        except GrimoireError:
            # UpstreamUnavailable and configuration errors keep their own status
            raise
        except Exception as e:
            raise IdentificationFailedError(
                f"{type(e).__name__}: {e}", component="BookIdentifier"
            ) from e

        result = parse_identification(text, self.strategies)
        if not result.found:
            logger.info("Cover scan did not yield a title")
        return result
