"""Relational store for documents, chunks and query audit records using Supabase."""
import json
import logging
import time
from typing import List, Optional

from supabase import create_client, Client

from models.chunk import Chunk
from models.document import Document
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)

DOCUMENTS_TABLE = "documents"
CHUNKS_TABLE = "document_chunks"
QUERIES_TABLE = "document_queries"

# Table schema (run once in the Supabase SQL editor):
#
# CREATE TABLE documents (
#   id text PRIMARY KEY,
#   filename text NOT NULL,
#   original_filename text NOT NULL,
#   file_size bigint DEFAULT 0,
#   status text NOT NULL DEFAULT 'processing',
#   chunk_count int DEFAULT 0,
#   metadata jsonb,
#   created_at timestamptz DEFAULT now(),
#   updated_at timestamptz DEFAULT now()
# );
# CREATE TABLE document_chunks (
#   id text PRIMARY KEY,
#   document_id text NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
#   chunk_text text NOT NULL,
#   page_number int,
#   chunk_index int,
#   word_count int,
#   metadata jsonb,
#   created_at timestamptz DEFAULT now(),
#   UNIQUE (document_id, chunk_index)
# );
# CREATE TABLE document_queries (
#   id text PRIMARY KEY,
#   question text NOT NULL,
#   answer text,
#   confidence float,
#   sources jsonb,
#   context text,
#   created_at timestamptz DEFAULT now()
# );


class DocumentStore:
    """Persist document, chunk and query records in Supabase Postgres."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        client: Optional[Client] = None
    ):
        """
        Initialize the document store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            client: Existing client to share (skips credential checks)

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        logger.info("Initialized DocumentStore")

    # Documents

    def insert_document(self, document: Document, metadata: Optional[dict] = None) -> None:
        """
        Insert or replace a document record.

        Raises:
            RuntimeError: If database operation fails
        """
        record = {
            "id": document.document_id,
            "filename": document.filename,
            "original_filename": document.original_filename,
            "file_size": document.file_size,
            "status": document.status,
            "chunk_count": document.chunk_count,
            "metadata": metadata or {},
        }
        try:
            self.client.table(DOCUMENTS_TABLE).upsert(record).execute()
        except Exception as e:
            error_msg = f"Failed to insert document {document.document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def update_document_status(self, document_id: str, status: str) -> None:
        """Set a document's status. Raises RuntimeError on failure."""
        self._update_document(document_id, {"status": status})

    def update_document_chunk_count(self, document_id: str, chunk_count: int) -> None:
        """Set a document's chunk count. Raises RuntimeError on failure."""
        self._update_document(document_id, {"chunk_count": chunk_count})

    def _update_document(self, document_id: str, values: dict) -> None:
        try:
            self.client.table(DOCUMENTS_TABLE).update(values).eq("id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to update document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def get_document(self, document_id: str) -> Optional[Document]:
        """Fetch a single document, or None when it does not exist."""
        try:
            response = self.client.table(DOCUMENTS_TABLE).select("*").eq("id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to get document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        if not response.data:
            return None
        return self._row_to_document(response.data[0])

    def list_documents(self, limit: int = 50, offset: int = 0) -> List[Document]:
        """
        List documents, newest first.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            response = (
                self.client.table(DOCUMENTS_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to list documents: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        return [self._row_to_document(row) for row in response.data or []]

    def delete_document(self, document_id: str) -> None:
        """Delete a document; its chunks go with it through the FK cascade."""
        try:
            self.client.table(DOCUMENTS_TABLE).delete().eq("id", document_id).execute()
            logger.info(f"Deleted document {document_id}")
        except Exception as e:
            error_msg = f"Failed to delete document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    @staticmethod
    def _row_to_document(row: dict) -> Document:
        return Document(
            document_id=row["id"],
            original_filename=row["original_filename"],
            status=row["status"],
            chunk_count=row.get("chunk_count") or 0,
            filename=row.get("filename", ""),
            file_size=row.get("file_size") or 0,
            created_at=row.get("created_at"),
        )

    # Chunks

    def insert_chunks(self, chunks: List[Chunk]) -> None:
        """
        Insert chunk records in one batch.

        Raises:
            ValueError: If chunks list is empty
            RuntimeError: If database operation fails
        """
        if not chunks:
            raise ValueError("Chunks list cannot be empty")

        records = [
            {
                "id": chunk.chunk_id,
                "document_id": chunk.document_id,
                "chunk_text": chunk.text,
                "page_number": chunk.page_number,
                "chunk_index": chunk.chunk_index,
                "word_count": chunk.word_count,
                "metadata": {"page": chunk.page_number, "chunk_index": chunk.chunk_index},
            }
            for chunk in chunks
        ]

        try:
            self.client.table(CHUNKS_TABLE).upsert(records).execute()
            logger.info(f"Stored {len(chunks)} chunks")
        except Exception as e:
            error_msg = f"Failed to insert chunks: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def get_chunks_by_document(self, document_id: str, limit: int = 50, offset: int = 0) -> List[Chunk]:
        """
        Fetch a document's chunks ordered by chunk_index.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            response = (
                self.client.table(CHUNKS_TABLE)
                .select("*")
                .eq("document_id", document_id)
                .order("chunk_index")
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to get chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        return [
            Chunk(
                chunk_id=row["id"],
                document_id=row["document_id"],
                text=row["chunk_text"],
                page_number=row.get("page_number") or 0,
                chunk_index=row.get("chunk_index") or 0,
                word_count=row.get("word_count") or 0,
            )
            for row in response.data or []
        ]

    # Query audit trail

    def insert_query(
        self,
        question: str,
        answer: str,
        confidence: float,
        sources: List[str],
        context: str
    ) -> str:
        """
        Record a query outcome.

        Returns:
            The generated query id

        Raises:
            RuntimeError: If database operation fails
        """
        query_id = f"query_{time.time_ns()}"
        try:
            self.client.table(QUERIES_TABLE).insert({
                "id": query_id,
                "question": question,
                "answer": answer,
                "confidence": confidence,
                "sources": json.dumps(sources),
                "context": context,
            }).execute()
        except Exception as e:
            error_msg = f"Failed to store query: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return query_id

    def list_queries(self, limit: int = 50, offset: int = 0) -> List[dict]:
        """List recorded queries, newest first."""
        try:
            response = (
                self.client.table(QUERIES_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            return response.data or []
        except Exception as e:
            error_msg = f"Failed to list queries: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def health_check(self) -> bool:
        """Return True when the documents table is reachable."""
        try:
            self.client.table(DOCUMENTS_TABLE).select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning(f"Document store health check failed: {str(e)}")
            return False

    def flush(self) -> None:
        """
        Delete all query, chunk and document records.

        Raises:
            RuntimeError: If database operation fails
        """
        try:
            for table in (QUERIES_TABLE, CHUNKS_TABLE, DOCUMENTS_TABLE):
                self.client.table(table).delete().neq("id", "").execute()
            logger.info("Cleared all documents, chunks and queries")
        except Exception as e:
            error_msg = f"Failed to flush document store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
