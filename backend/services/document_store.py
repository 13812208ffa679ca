"""Document metadata persistence."""
import logging
from typing import List, Optional, Sequence
from supabase import Client

from errors import DatastoreError, DocumentNotFoundError
from models.document import Document, DocumentContent
from services.supabase_client import (
    embedded_count,
    first_row,
    get_supabase_client,
    parse_timestamp,
    rows,
)

logger = logging.getLogger(__name__)

_DOCUMENT_COLUMNS = "id, title, description, subject, file_path, uploaded_at, document_chunks(count)"


class DocumentStore:
    """Creates, lists and deletes uploaded documents in Supabase."""

    def __init__(self, client: Optional[Client] = None, table_name: str = "documents"):
        self.client: Client = client if client is not None else get_supabase_client()
        self.table_name = table_name

    def create_document(
        self,
        title: str,
        subject: str,
        description: Optional[str] = None,
        file_path: Optional[str] = None
    ) -> Document:
        """
        Insert a document row.

        Raises:
            ValueError: If title or subject is missing
            DatastoreError: If the insert fails
        """
        if not title or not title.strip() or not subject or not subject.strip():
            raise ValueError("Title and subject are required")

        try:
            response = self.client.table(self.table_name).insert({
                "title": title.strip(),
                "subject": subject.strip(),
                "description": description or None,
                "file_path": file_path
            }).execute()
        except Exception as e:
            error_msg = f"Failed to create document '{title}': {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e

        row = first_row(response.data)
        if row is None:
            raise DatastoreError(f"Document insert for '{title}' returned no row")

        document = self._to_document(row)
        logger.info(f"Document created with ID: {document.document_id}")
        return document

    def get_document(self, document_id: int) -> Optional[Document]:
        response = (
            self.client.table(self.table_name)
            .select(_DOCUMENT_COLUMNS)
            .eq("id", document_id)
            .execute()
        )
        row = first_row(response.data)
        return self._to_document(row) if row else None

    def list_documents(self) -> List[Document]:
        """All documents with their chunk counts, newest first."""
        response = (
            self.client.table(self.table_name)
            .select(_DOCUMENT_COLUMNS)
            .order("uploaded_at", desc=True)
            .execute()
        )
        return [self._to_document(row) for row in rows(response)]

    def delete_document(self, document_id: int) -> None:
        """
        Delete a document; its chunks go with it (ON DELETE CASCADE).

        Raises:
            DocumentNotFoundError: If no such document exists
        """
        response = self.client.table(self.table_name).delete().eq("id", document_id).execute()
        if not rows(response):
            raise DocumentNotFoundError(f"Document {document_id} not found", {"document_id": document_id})
        logger.info(f"Deleted document {document_id}")

    def aggregate_content(self, document_ids: Sequence[int]) -> List[DocumentContent]:
        """
        Each requested document's chunks joined in chunk-index order.

        Unknown ids are skipped; the result may be empty.
        """
        if not document_ids:
            return []

        try:
            response = self.client.rpc(
                "aggregate_document_content",
                {"p_document_ids": list(document_ids)}
            ).execute()
        except Exception as e:
            error_msg = f"Failed to aggregate content for documents {list(document_ids)}: {str(e)}"
            logger.error(error_msg)
            raise DatastoreError(error_msg) from e

        return [
            DocumentContent(
                document_id=row["id"],
                title=row["title"],
                subject=row["subject"],
                content=row.get("content") or ""
            )
            for row in rows(response)
        ]

    @staticmethod
    def _to_document(row: dict) -> Document:
        return Document(
            document_id=row["id"],
            title=row["title"],
            subject=row["subject"],
            description=row.get("description"),
            file_path=row.get("file_path"),
            uploaded_at=parse_timestamp(row.get("uploaded_at")),
            chunk_count=embedded_count(row, "document_chunks")
        )
