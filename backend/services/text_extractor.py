"""Text extraction from uploaded PDFs with ordered fallback strategies."""
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Union

import fitz  # PyMuPDF
import pdfplumber

from config import MAX_EXTRACT_PAGES
from errors import EmptyInputError, ExtractionFailedError
from services.sanitizer import sanitize

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class ExtractionStrategy:
    """One way of turning a PDF file into raw text."""

    name = "base"

    def extract(self, file_path: PathLike) -> str:
        raise NotImplementedError


class TextLayerStrategy(ExtractionStrategy):
    """General-purpose text-layer extraction over every page."""

    name = "pymupdf-text"

    def extract(self, file_path: PathLike) -> str:
        with fitz.open(file_path) as pdf_document:
            return "\n".join(page.get_text() for page in pdf_document)


class PageRunStrategy(ExtractionStrategy):
    """
    Page-by-page extraction from the layout dictionary.

    Joins the non-empty span runs of each page, up to ``max_pages`` pages so
    that very large uploads stay bounded. A page that fails to render is
    skipped rather than failing the whole strategy.
    """

    name = "pymupdf-page-runs"

    def __init__(self, max_pages: int = MAX_EXTRACT_PAGES):
        self.max_pages = max_pages

    def extract(self, file_path: PathLike) -> str:
        page_texts = []

        with fitz.open(file_path) as pdf_document:
            page_count = min(len(pdf_document), self.max_pages)
            if len(pdf_document) > self.max_pages:
                logger.info(
                    f"Limiting page-run extraction to {self.max_pages} of {len(pdf_document)} pages"
                )

            for page_num in range(page_count):
                try:
                    blocks = pdf_document[page_num].get_text("dict")["blocks"]
                except Exception as e:
                    logger.warning(f"Could not extract page {page_num + 1}: {e}")
                    continue

                runs = [
                    span["text"].strip()
                    for block in blocks
                    for line in block.get("lines", [])
                    for span in line.get("spans", [])
                    if span.get("text", "").strip()
                ]
                if runs:
                    page_texts.append(" ".join(runs))

        return "\n".join(page_texts)


class MinimalStrategy(ExtractionStrategy):
    """Last resort: pdfplumber's simple extractor with relaxed tolerances."""

    name = "pdfplumber-simple"

    def __init__(self, x_tolerance: float = 5, y_tolerance: float = 5):
        self.x_tolerance = x_tolerance
        self.y_tolerance = y_tolerance

    def extract(self, file_path: PathLike) -> str:
        page_texts = []
        with pdfplumber.open(file_path) as pdf:
            for page in pdf.pages:
                text = page.extract_text_simple(
                    x_tolerance=self.x_tolerance,
                    y_tolerance=self.y_tolerance
                )
                if text:
                    page_texts.append(text)
        return "\n".join(page_texts)


def default_strategies(max_pages: int = MAX_EXTRACT_PAGES) -> List[ExtractionStrategy]:
    """Strategies in priority order."""
    return [TextLayerStrategy(), PageRunStrategy(max_pages=max_pages), MinimalStrategy()]


class TextExtractor:
    """Converts a document file to sanitized plain text."""

    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None):
        """
        Initialize TextExtractor.

        Args:
            strategies: Extraction strategies tried in order (defaults to
                text layer, page runs, then minimal pdfplumber extraction)
        """
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def extract(self, file_path: PathLike) -> str:
        """
        Extract text, falling back through the strategy chain.

        The first strategy that returns non-empty sanitized text wins. A
        strategy that raises or returns nothing hands over to the next.

        Args:
            file_path: Path to the uploaded file

        Returns:
            Sanitized, non-empty text

        Raises:
            FileNotFoundError: If the file does not exist
            EmptyInputError: If the file is zero bytes (no strategy is attempted)
            ExtractionFailedError: If every strategy failed or produced no text
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        size = path.stat().st_size
        if size == 0:
            logger.error(f"File is empty: {path.name}")
            raise EmptyInputError(f"File is empty: {path.name}", {"file": path.name})

        logger.info(f"Extracting text from {path.name} ({size} bytes)")
        failures = []

        for strategy in self.strategies:
            try:
                text = sanitize(strategy.extract(path))
            except Exception as e:
                logger.warning(f"Strategy {strategy.name} failed for {path.name}: {e}")
                failures.append(f"{strategy.name}: {e}")
                continue

            if text:
                logger.info(f"Extracted {len(text)} characters from {path.name} using {strategy.name}")
                return text

            logger.warning(f"Strategy {strategy.name} returned no text for {path.name}")
            failures.append(f"{strategy.name}: empty output")

        logger.error(f"All extraction strategies failed for {path.name}")
        raise ExtractionFailedError(
            f"Could not extract text from {path.name}. All extraction methods failed.",
            {"file": path.name, "attempts": failures}
        )
