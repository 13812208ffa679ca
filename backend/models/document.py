"""Document data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Document:
    """An uploaded source document. Owns its chunks (cascade delete)."""
    document_id: int
    title: str
    subject: str
    description: Optional[str] = None
    file_path: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    chunk_count: int = 0


@dataclass
class DocumentContent:
    """A document's chunks recombined in chunk-index order."""
    document_id: int
    title: str
    subject: str
    content: str


@dataclass
class IngestionResult:
    """Summary of one ingestion run; partial success carries warnings."""
    document_id: int
    chunks_processed: int
    total_chunks: int
    warnings: List[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return self.chunks_processed < self.total_chunks
