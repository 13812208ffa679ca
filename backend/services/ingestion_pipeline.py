"""Document ingestion: extract, chunk, embed and store one uploaded file."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from errors import (
    AllChunksFailedError,
    ConfigurationError,
    NoChunksGeneratedError,
    NoTextExtractedError,
)
from models.document import IngestionResult
from services.chunking_engine import ChunkingEngine
from services.document_store import DocumentStore
from services.embedding_model import EmbeddingModel
from services.text_extractor import TextExtractor
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class ChunkOutcome:
    """Result of embedding and storing one chunk."""
    chunk_index: int
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class IngestionPipeline:
    """
    Orchestrates TextExtractor -> ChunkingEngine -> EmbeddingModel -> VectorStore.

    Chunks are processed sequentially. A failing chunk is recorded as a
    warning and the loop moves on; only a document where every chunk failed
    is reported as an error.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        text_extractor: TextExtractor,
        chunking_engine: ChunkingEngine,
        embedding_model: EmbeddingModel,
        vector_store: VectorStore
    ):
        self.document_store = document_store
        self.text_extractor = text_extractor
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store

    def ingest(
        self,
        file_path: Union[str, os.PathLike],
        title: str,
        subject: str,
        description: Optional[str] = None
    ) -> IngestionResult:
        """
        Ingest one document file.

        The document row is created first. If extraction or chunking then
        fails the row is left in place; the caller decides whether to delete it.

        Args:
            file_path: Path to the uploaded file
            title: Document title
            subject: Document subject/category
            description: Optional description

        Returns:
            IngestionResult with processed/total chunk counts and warnings

        Raises:
            ValueError: If title or subject is missing
            FileNotFoundError: If the file does not exist
            EmptyInputError, ExtractionFailedError: From text extraction
            NoTextExtractedError: If extraction produced no text
            NoChunksGeneratedError: If chunking produced nothing
            AllChunksFailedError: If no chunk could be embedded and stored
            ConfigurationError: If a provider credential is missing
        """
        if not title or not title.strip() or not subject or not subject.strip():
            raise ValueError("Title and subject are required")

        path = Path(file_path)
        if not path.is_file() or not os.access(path, os.R_OK):
            raise FileNotFoundError(f"File not found or unreadable: {path}")

        logger.info(f"Starting ingestion for: {path.name} ({path.stat().st_size} bytes)")

        # 1. Store document metadata
        document = self.document_store.create_document(
            title=title,
            subject=subject,
            description=description,
            file_path=str(path)
        )
        document_id = document.document_id

        # 2. Extract text
        text = self.text_extractor.extract(path)
        if not text or not text.strip():
            raise NoTextExtractedError(
                "No text could be extracted from the document",
                {"document_id": document_id}
            )
        logger.info(f"Extracted text: {len(text)} characters")

        # 3. Split into chunks
        chunks = self.chunking_engine.chunk(text)
        if not chunks:
            raise NoChunksGeneratedError(
                "No chunks generated from document text",
                {"document_id": document_id}
            )
        logger.info(f"Generated {len(chunks)} chunks")

        # 4. Embed and store each chunk
        outcomes: List[ChunkOutcome] = []
        for chunk_index, chunk_text in enumerate(chunks):
            outcomes.append(self._process_chunk(document_id, chunk_index, chunk_text))

            if (chunk_index + 1) % 10 == 0:
                logger.info(f"Progress: {chunk_index + 1}/{len(chunks)} chunks processed")

        return self._summarize(document_id, outcomes)

    def _process_chunk(self, document_id: int, chunk_index: int, chunk_text: str) -> ChunkOutcome:
        try:
            embedding = self.embedding_model.embed(chunk_text)
            self.vector_store.store(document_id, chunk_index, chunk_text, embedding)
        except ConfigurationError:
            # Would fail every remaining chunk the same way
            raise
        except Exception as e:
            logger.error(f"Chunk {chunk_index} failed: {e}")
            return ChunkOutcome(chunk_index=chunk_index, error=str(e))

        return ChunkOutcome(chunk_index=chunk_index)

    def _summarize(self, document_id: int, outcomes: List[ChunkOutcome]) -> IngestionResult:
        failures = [outcome for outcome in outcomes if not outcome.succeeded]
        processed = len(outcomes) - len(failures)
        warnings = [f"Chunk {outcome.chunk_index} failed: {outcome.error}" for outcome in failures]

        logger.info(f"Completed: {processed}/{len(outcomes)} chunks stored successfully")

        if processed == 0:
            raise AllChunksFailedError(
                f"Failed to generate embeddings for all chunks: {failures[0].error}",
                {
                    "document_id": document_id,
                    "total_chunks": len(outcomes),
                    "first_error": failures[0].error
                }
            )

        return IngestionResult(
            document_id=document_id,
            chunks_processed=processed,
            total_chunks=len(outcomes),
            warnings=warnings
        )
