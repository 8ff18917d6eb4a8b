"""
Tests for cover identification.
"""

import asyncio

import pytest

from grimoire.books import (
    BookIdentifier,
    BySeparatorStrategy,
    DashSeparatorStrategy,
    IdentificationResult,
    JsonObjectStrategy,
    parse_identification,
)
from grimoire.core.config import IdentificationConfig
from grimoire.core.exceptions import IdentificationFailedError, UpstreamUnavailableError
from testing_utilities import StubVisionProvider


class TestStrategies:
    """Each parsing strategy in isolation."""

    def test_json_object(self) -> None:
        result = JsonObjectStrategy().parse(
            'Here you go: {"title": "Dune", "author": "Frank Herbert"}'
        )
        assert result == IdentificationResult("Dune", "Frank Herbert")

    def test_json_null_author(self) -> None:
        result = JsonObjectStrategy().parse('{"title": "Beowulf", "author": null}')
        assert result == IdentificationResult("Beowulf", None)

    def test_json_without_title(self) -> None:
        assert JsonObjectStrategy().parse('{"title": null, "author": null}') is None
        assert JsonObjectStrategy().parse('{"title": "unknown"}') is None
        assert JsonObjectStrategy().parse("no json here") is None

    def test_by_separator(self) -> None:
        result = BySeparatorStrategy().parse('"The Hobbit" BY J.R.R. Tolkien')
        assert result == IdentificationResult("The Hobbit", "J.R.R. Tolkien")

    def test_by_separator_cleans_markdown(self) -> None:
        result = BySeparatorStrategy().parse("**Emma** by *Jane Austen*\nmore text")
        assert result == IdentificationResult("Emma", "Jane Austen")

    def test_dash_separator(self) -> None:
        result = DashSeparatorStrategy().parse("Frankenstein - Mary Shelley")
        assert result == IdentificationResult("Frankenstein", "Mary Shelley")

    def test_separators_need_both_sides(self) -> None:
        assert BySeparatorStrategy().parse("Dune") is None
        assert DashSeparatorStrategy().parse("Dune - unknown") is None


class TestParseIdentification:
    """Strategies run in order."""

    def test_json_wins_over_separators(self) -> None:
        text = 'Dune by Someone Else\n{"title": "Dune", "author": "Frank Herbert"}'
        assert parse_identification(text).author == "Frank Herbert"

    def test_falls_through_to_separator(self) -> None:
        assert parse_identification("Emma by Jane Austen").title == "Emma"

    def test_nothing_found(self) -> None:
        result = parse_identification("I can't see a book in this picture.")
        assert result == IdentificationResult()
        assert not result.found


class TestBookIdentifier:
    """Test the identifier against a stub vision model."""

    @pytest.mark.asyncio
    async def test_identifies(self) -> None:
        vision = StubVisionProvider()
        result = await BookIdentifier(vision).identify(b"\xff\xd8jpeg")

        assert result == IdentificationResult("Dune", "Frank Herbert")
        assert vision.calls == 1

    @pytest.mark.asyncio
    async def test_no_image_is_not_an_error(self) -> None:
        vision = StubVisionProvider()
        assert await BookIdentifier(vision).identify(None) == IdentificationResult()
        assert await BookIdentifier(vision).identify(b"") == IdentificationResult()
        assert vision.calls == 0

    @pytest.mark.asyncio
    async def test_provider_error(self) -> None:
        vision = StubVisionProvider()
        vision.error = RuntimeError("bad response")
        with pytest.raises(IdentificationFailedError):
            await BookIdentifier(vision).identify(b"jpeg")

    @pytest.mark.asyncio
    async def test_upstream_outage_keeps_its_kind(self) -> None:
        vision = StubVisionProvider()
        vision.error = UpstreamUnavailableError("openai", "down")
        with pytest.raises(UpstreamUnavailableError):
            await BookIdentifier(vision).identify(b"jpeg")

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        class SlowVision(StubVisionProvider):
            async def describe_image(self, image: bytes, instruction: str, **kwargs: object) -> str:
                await asyncio.sleep(5)
                return ""

        identifier = BookIdentifier(SlowVision(), IdentificationConfig(timeout_s=0.01))
        with pytest.raises(IdentificationFailedError):
            await identifier.identify(b"jpeg")

    def test_to_book(self) -> None:
        book = IdentificationResult("Dune", "Frank Herbert").to_book("file:///dune.jpg")
        assert book.title == "Dune"
        assert book.cover_image_uri == "file:///dune.jpg"

        with pytest.raises(ValueError):
            IdentificationResult().to_book()
