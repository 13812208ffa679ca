"""Chunking engine producing overlapping fixed-size word windows."""
import logging
from typing import List

from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """Segments extracted text into retrievable chunks."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Words per chunk
            chunk_overlap: Words shared by consecutive chunks

        Raises:
            ValueError: If the window parameters leave no forward step
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk(self, text: str) -> List[str]:
        """
        Split text on whitespace into overlapping windows of words.

        Consecutive chunks share ``chunk_overlap`` words (step is
        ``chunk_size - chunk_overlap``). A window starts at every step below
        the word count, so the trailing chunks may be shorter than
        ``chunk_size``.

        Args:
            text: Sanitized text

        Returns:
            Chunks in source order; empty for empty/whitespace-only input
        """
        if not text or not text.strip():
            logger.warning("Empty text provided, no chunks created")
            return []

        words = text.split()
        step = self.chunk_size - self.chunk_overlap
        chunks = []

        for start in range(0, len(words), step):
            chunks.append(" ".join(words[start:start + self.chunk_size]))

        logger.info(f"Created {len(chunks)} chunks from text (total words: {len(words)})")
        return chunks
