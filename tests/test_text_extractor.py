"""Unit tests for TextExtractor and its strategies."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from errors import EmptyInputError, ExtractionFailedError
from services.text_extractor import (
    ExtractionStrategy,
    MinimalStrategy,
    PageRunStrategy,
    TextExtractor,
    TextLayerStrategy,
    default_strategies,
)


def strategy(name, result=None, error=None):
    mock_strategy = Mock(spec=ExtractionStrategy)
    mock_strategy.name = name
    if error is not None:
        mock_strategy.extract.side_effect = error
    else:
        mock_strategy.extract.return_value = result
    return mock_strategy


@pytest.fixture
def some_file(tmp_path):
    path = tmp_path / "upload.pdf"
    path.write_bytes(b"%PDF-1.4 not really parsed by mocked strategies")
    return path


class TestTextExtractor:
    """Test suite for the fallback chain."""

    def test_default_strategy_order(self):
        names = [s.name for s in default_strategies()]
        assert names == ["pymupdf-text", "pymupdf-page-runs", "pdfplumber-simple"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TextExtractor().extract(tmp_path / "missing.pdf")

    def test_zero_byte_file_attempts_no_strategy(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        first = strategy("first", "text")

        with pytest.raises(EmptyInputError):
            TextExtractor([first]).extract(path)

        first.extract.assert_not_called()

    def test_first_strategy_wins(self, some_file):
        first = strategy("first", "  Hello\n\nworld ")
        second = strategy("second", "unused")

        assert TextExtractor([first, second]).extract(some_file) == "Hello world"
        second.extract.assert_not_called()

    def test_falls_back_on_exception(self, some_file):
        first = strategy("first", error=RuntimeError("corrupt xref"))
        second = strategy("second", "recovered text")

        assert TextExtractor([first, second]).extract(some_file) == "recovered text"

    def test_falls_back_on_empty_output(self, some_file):
        first = strategy("first", " \x00 \n ")
        second = strategy("second", "")
        third = strategy("third", "minimal text")

        assert TextExtractor([first, second, third]).extract(some_file) == "minimal text"

    def test_all_strategies_fail(self, some_file):
        extractor = TextExtractor([
            strategy("first", error=RuntimeError("boom")),
            strategy("second", ""),
        ])

        with pytest.raises(ExtractionFailedError, match="All extraction methods failed") as exc_info:
            extractor.extract(some_file)

        attempts = exc_info.value.details["attempts"]
        assert attempts == ["first: boom", "second: empty output"]
        assert exc_info.value.details["file"] == "upload.pdf"


class TestPDFStrategies:
    """Strategies against real generated PDFs."""

    def test_text_layer(self, make_pdf):
        path = make_pdf(["Photosynthesis converts light", "into chemical energy"])
        text = TextLayerStrategy().extract(path)
        assert "Photosynthesis" in text
        assert "chemical energy" in text

    def test_page_runs_respects_page_limit(self, make_pdf):
        path = make_pdf(["first page", "second page", "third page"])
        text = PageRunStrategy(max_pages=2).extract(path)
        assert "first page" in text
        assert "second page" in text
        assert "third page" not in text

    def test_minimal_strategy(self, make_pdf):
        path = make_pdf(["Mitochondria are the powerhouse"])
        text = MinimalStrategy().extract(path)
        assert "Mitochondria" in text

    def test_extractor_on_real_pdf(self, make_pdf):
        path = make_pdf(["Newton's   second law", "F = m a"])
        text = TextExtractor().extract(path)
        assert "Newton's second law" in text
        assert "  " not in text

    def test_invalid_pdf_fails_every_strategy(self, tmp_path):
        path = tmp_path / "garbage.pdf"
        path.write_bytes(b"this is not a pdf at all")

        with pytest.raises(ExtractionFailedError) as exc_info:
            TextExtractor().extract(path)

        assert len(exc_info.value.details["attempts"]) == 3
