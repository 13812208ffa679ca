"""Chunk data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Chunk:
    """Represents a stored document chunk."""
    document_id: int
    chunk_index: int  # 0-based, defines recombination order
    text: str
    embedding: List[float] = field(default_factory=list)
    chunk_id: Optional[int] = None


@dataclass
class ScoredChunk:
    """Chunk text with parent document info and similarity from retrieval."""
    text: str
    document_title: str
    document_subject: str
    similarity: float  # 1 - cosine distance
    document_id: Optional[int] = None
    chunk_index: Optional[int] = None
