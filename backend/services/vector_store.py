"""Vector store implementation using Supabase pgvector."""
import logging
from typing import List, Optional
from supabase import Client

from config import EMBEDDING_DIMENSION
from errors import DatastoreError
from models.chunk import ScoredChunk
from services.supabase_client import get_supabase_client, rows

logger = logging.getLogger(__name__)


class VectorStore:
    """Store chunk embeddings and enable similarity search using Supabase pgvector."""

    def __init__(
        self,
        client: Optional[Client] = None,
        table_name: str = "document_chunks",
        dimension: int = EMBEDDING_DIMENSION
    ):
        """
        Initialize the vector store.

        Args:
            client: Supabase client (created from environment settings if omitted)
            table_name: Name of the table to store chunks
            dimension: Embedding dimension every stored vector must have

        Raises:
            ConfigurationError: If no client is given and Supabase credentials are missing
        """
        self.client: Client = client if client is not None else get_supabase_client()
        self.table_name = table_name
        self.dimension = dimension

        logger.info(f"Initialized VectorStore with table: {table_name}")

    def store(self, document_id: int, chunk_index: int, text: str, vector: List[float]) -> None:
        """
        Persist one chunk row.

        Args:
            document_id: Parent document id
            chunk_index: 0-based position of the chunk in the document
            text: Chunk text
            vector: Embedding of length ``self.dimension``

        Raises:
            ValueError: If the vector has the wrong dimension
            DatastoreError: If the insert fails
        """
        if len(vector) != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {len(vector)}"
            )

        try:
            self.client.table(self.table_name).insert({
                "document_id": document_id,
                "chunk_index": chunk_index,
                "chunk_text": text,
                "embedding": vector
            }).execute()
        except Exception as e:
            error_msg = f"Failed to store chunk {chunk_index} of document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e

        logger.debug(f"Stored chunk {chunk_index} for document {document_id}")

    def query(
        self,
        query_vector: List[float],
        top_k: int = 5,
        category_filter: Optional[str] = None
    ) -> List[ScoredChunk]:
        """
        Find the chunks most similar to a query vector.

        Similarity is ``1 - cosine_distance``. The category filter restricts
        candidates to chunks whose parent document has that subject and is
        applied inside the ``match_chunks`` function, before ranking.

        Args:
            query_vector: Query embedding
            top_k: Number of chunks to retrieve
            category_filter: Optional document subject to restrict to

        Returns:
            ScoredChunk list in descending similarity order

        Raises:
            ValueError: If query_vector is empty or top_k is invalid
            DatastoreError: If the search fails
        """
        if not query_vector:
            raise ValueError("Query embedding cannot be empty")

        if top_k <= 0:
            raise ValueError("top_k must be positive")

        try:
            response = self.client.rpc(
                "match_chunks",
                {
                    "query_embedding": query_vector,
                    "match_count": top_k,
                    "filter_subject": category_filter
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search vector store: {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e

        scored_chunks = [
            ScoredChunk(
                text=row["chunk_text"],
                document_title=row["title"],
                document_subject=row["subject"],
                similarity=float(row["similarity"]),
                document_id=row.get("document_id"),
                chunk_index=row.get("chunk_index")
            )
            for row in rows(response)
        ]
        scored_chunks.sort(key=lambda chunk: chunk.similarity, reverse=True)

        logger.debug(
            f"Found {len(scored_chunks)} chunks for query"
            + (f" in subject '{category_filter}'" if category_filter else "")
        )
        return scored_chunks[:top_k]

    def delete_document_chunks(self, document_id: int) -> int:
        """
        Remove every chunk of a document.

        Returns:
            Number of chunks deleted
        """
        try:
            response = self.client.table(self.table_name).delete().eq("document_id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to delete chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e

        deleted = len(rows(response))
        logger.info(f"Deleted {deleted} chunks for document {document_id}")
        return deleted

    def count(self, document_id: Optional[int] = None) -> int:
        """
        Get the number of stored chunks, optionally for one document.

        Raises:
            DatastoreError: If database operation fails
        """
        try:
            query = self.client.table(self.table_name).select("id", count="exact")
            if document_id is not None:
                query = query.eq("document_id", document_id)
            response = query.execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count chunks in vector store: {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e
