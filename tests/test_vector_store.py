"""Unit tests for VectorStore class."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import MagicMock, patch
from errors import ConfigurationError, DatastoreError
from models.chunk import ScoredChunk
from services.vector_store import VectorStore
from fake_supabase import FakeAPIError, basis_vector


@pytest.fixture
def documents(supabase):
    """Two Math documents and one Physics document."""
    supabase.insert_row("documents", {"title": "Algebra", "subject": "Math"})
    supabase.insert_row("documents", {"title": "Calculus", "subject": "Math"})
    supabase.insert_row("documents", {"title": "Mechanics", "subject": "Physics"})
    return supabase


class TestVectorStore:
    """Test suite for VectorStore."""

    @patch('services.supabase_client.create_client')
    def test_initialization_with_credentials(self, mock_create_client):
        from services.supabase_client import get_supabase_client
        mock_create_client.return_value = MagicMock()

        store = VectorStore(client=get_supabase_client("https://test.supabase.co", "test_key"))
        assert store.table_name == "document_chunks"
        assert store.dimension == 384
        mock_create_client.assert_called_once_with("https://test.supabase.co", "test_key")

    def test_initialization_without_credentials(self):
        from services.supabase_client import get_supabase_client

        with pytest.raises(ConfigurationError, match="SUPABASE_URL and SUPABASE_KEY"):
            get_supabase_client(None, "test_key")

        with pytest.raises(ConfigurationError, match="SUPABASE_URL and SUPABASE_KEY"):
            get_supabase_client("https://test.supabase.co", None)

    def test_store_inserts_row(self, documents):
        store = VectorStore(client=documents)
        store.store(1, 0, "chunk text", basis_vector(0))

        rows = documents.tables["document_chunks"]
        assert len(rows) == 1
        assert rows[0]["document_id"] == 1
        assert rows[0]["chunk_index"] == 0
        assert rows[0]["chunk_text"] == "chunk text"
        assert len(rows[0]["embedding"]) == 384

    def test_store_rejects_wrong_dimension(self, documents):
        store = VectorStore(client=documents)

        with pytest.raises(ValueError, match="dimension mismatch"):
            store.store(1, 0, "chunk text", [0.1, 0.2])

        assert documents.tables["document_chunks"] == []

    def test_store_wraps_datastore_errors(self, documents):
        documents.failures[("document_chunks", "insert")] = FakeAPIError("connection reset")
        store = VectorStore(client=documents)

        with pytest.raises(DatastoreError, match="chunk 3 of document 1"):
            store.store(1, 3, "chunk text", basis_vector(0))

    def test_duplicate_chunk_index_rejected(self, documents):
        store = VectorStore(client=documents)
        store.store(1, 0, "first", basis_vector(0))

        with pytest.raises(DatastoreError):
            store.store(1, 0, "again", basis_vector(1))

    def test_query_ranks_by_similarity(self, documents):
        store = VectorStore(client=documents)
        store.store(1, 0, "exact", basis_vector(0))
        store.store(2, 0, "partial", [0.6, 0.8] + [0.0] * 382)
        store.store(3, 0, "orthogonal", basis_vector(1))

        results = store.query(basis_vector(0), top_k=2)

        assert [r.text for r in results] == ["exact", "partial"]
        assert isinstance(results[0], ScoredChunk)
        assert results[0].similarity == pytest.approx(1.0)
        assert results[1].similarity == pytest.approx(0.6)
        assert results[0].document_title == "Algebra"
        assert results[0].document_subject == "Math"

    def test_query_category_filter_applies_before_ranking(self, documents):
        store = VectorStore(client=documents)
        store.store(3, 0, "physics best match", basis_vector(0))
        store.store(1, 0, "math weaker", [0.6, 0.8] + [0.0] * 382)
        store.store(2, 0, "math weakest", basis_vector(1))

        results = store.query(basis_vector(0), top_k=5, category_filter="Math")

        assert len(results) == 2
        assert all(r.document_subject == "Math" for r in results)
        assert results[0].text == "math weaker"

        params = documents.rpc_calls[-1][1]
        assert params["filter_subject"] == "Math"
        assert params["match_count"] == 5

    def test_query_returns_at_most_top_k(self, documents):
        store = VectorStore(client=documents)
        for i in range(6):
            store.store(1, i, f"chunk {i}", basis_vector(i))

        assert len(store.query(basis_vector(0), top_k=3)) == 3

    def test_query_validation(self, documents):
        store = VectorStore(client=documents)

        with pytest.raises(ValueError, match="cannot be empty"):
            store.query([], top_k=5)

        with pytest.raises(ValueError, match="top_k must be positive"):
            store.query(basis_vector(0), top_k=0)

    def test_query_wraps_rpc_errors(self, documents):
        documents.failures[("rpc", "match_chunks")] = FakeAPIError("function missing")
        store = VectorStore(client=documents)

        with pytest.raises(DatastoreError, match="Failed to search vector store"):
            store.query(basis_vector(0))

    def test_delete_document_chunks_and_count(self, documents):
        store = VectorStore(client=documents)
        store.store(1, 0, "a", basis_vector(0))
        store.store(1, 1, "b", basis_vector(1))
        store.store(2, 0, "c", basis_vector(2))

        assert store.count() == 3
        assert store.count(document_id=1) == 2

        assert store.delete_document_chunks(1) == 2
        assert store.count() == 1
        assert store.count(document_id=1) == 0
