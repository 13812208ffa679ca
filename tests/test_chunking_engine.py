"""Unit tests for ChunkingEngine class."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from services.chunking_engine import ChunkingEngine


def words(n, prefix="w"):
    return " ".join(f"{prefix}{i}" for i in range(n))


def reconstruct(chunks, overlap):
    """Rebuild the word sequence by dropping each chunk's leading overlap."""
    result = chunks[0].split()
    for chunk in chunks[1:]:
        result.extend(chunk.split()[overlap:])
    return result


class TestChunkingEngine:
    """Test suite for ChunkingEngine."""

    def test_initialization_defaults(self):
        engine = ChunkingEngine()
        assert engine.chunk_size == 500
        assert engine.chunk_overlap == 50

    @pytest.mark.parametrize("size,overlap", [(0, 0), (-1, 0), (10, 10), (10, 11), (10, -1)])
    def test_invalid_parameters(self, size, overlap):
        with pytest.raises(ValueError):
            ChunkingEngine(chunk_size=size, chunk_overlap=overlap)

    def test_empty_text(self):
        engine = ChunkingEngine()
        assert engine.chunk("") == []
        assert engine.chunk("   \n\t ") == []

    def test_short_text_single_chunk(self):
        engine = ChunkingEngine()
        text = words(120)
        assert engine.chunk(text) == [text]

    def test_exact_chunk_size_emits_overlap_tail(self):
        """Windows start at words 0 and 450; the second holds the last 50 words."""
        engine = ChunkingEngine()
        chunks = engine.chunk(words(500))

        assert len(chunks) == 2
        assert len(chunks[0].split()) == 500
        assert chunks[1].split() == [f"w{i}" for i in range(450, 500)]

    def test_1200_words_produces_three_windows(self):
        """Windows start at words 0, 450 and 900."""
        engine = ChunkingEngine()
        chunks = engine.chunk(words(1200))

        assert len(chunks) == 3
        assert chunks[0].split()[0] == "w0"
        assert chunks[1].split()[0] == "w450"
        assert chunks[2].split()[0] == "w900"
        assert len(chunks[0].split()) == 500
        assert len(chunks[1].split()) == 500
        assert len(chunks[2].split()) == 300

    def test_consecutive_chunks_share_overlap(self):
        engine = ChunkingEngine(chunk_size=10, chunk_overlap=3)
        chunks = engine.chunk(words(25))

        for previous, current in zip(chunks, chunks[1:]):
            assert previous.split()[-3:] == current.split()[:3]

    @pytest.mark.parametrize("n,expected", [(1, 1), (7, 1), (8, 2), (10, 2), (14, 2), (15, 3), (17, 3)])
    def test_a_window_starts_at_every_step(self, n, expected):
        engine = ChunkingEngine(chunk_size=10, chunk_overlap=3)
        chunks = engine.chunk(words(n))

        assert len(chunks) == expected
        assert [c.split()[0] for c in chunks] == [f"w{start}" for start in range(0, n, 7)]

    @pytest.mark.parametrize("n", [1, 9, 10, 11, 50, 123])
    def test_reconstruction_returns_original_words(self, n):
        engine = ChunkingEngine(chunk_size=10, chunk_overlap=4)
        text = words(n)
        chunks = engine.chunk(text)
        assert reconstruct(chunks, 4) == text.split()

    def test_whitespace_is_normalized(self):
        engine = ChunkingEngine(chunk_size=5, chunk_overlap=1)
        chunks = engine.chunk("alpha\n\nbeta\tgamma   delta")
        assert chunks == ["alpha beta gamma delta"]
