"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from typing import List, Optional
from config import DEFAULT_TOP_K
from models.chunk import ScoredChunk
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel
from services.sanitizer import sanitize

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed free-text queries and rank stored chunks against them."""

    def __init__(self, vector_store: VectorStore, embedding_model: EmbeddingModel):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        category: Optional[str] = None
    ) -> List[ScoredChunk]:
        """
        Retrieve the chunks most similar to a query.

        Args:
            query: User question
            top_k: Maximum number of chunks to return
            category: Optional document subject; only chunks of documents with
                this subject are ranked

        Returns:
            Scored chunks in descending similarity, empty for a query that
            sanitizes to nothing

        Raises:
            EmbeddingProviderError, UnexpectedResponseFormatError: From embedding
            DatastoreError: From the similarity search
        """
        # A query with no printable text would embed to a zero vector
        if not query or not sanitize(query):
            logger.warning("Empty query string provided, returning empty results")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_model.embed(query)

        scored_chunks = self.vector_store.query(
            query_embedding,
            top_k=top_k,
            category_filter=category or None
        )

        if scored_chunks:
            logger.info(
                f"Retrieved {len(scored_chunks)} chunks "
                f"(top similarity: {scored_chunks[0].similarity:.3f})"
            )
        else:
            logger.info("No chunks found for query")

        return scored_chunks
