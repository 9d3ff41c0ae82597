"""Unit tests for DocumentStore class."""
import json
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch, MagicMock
from models.chunk import Chunk
from models.document import Document, STATUS_COMPLETED
from services.document_store import DocumentStore, CHUNKS_TABLE, DOCUMENTS_TABLE, QUERIES_TABLE


@pytest.fixture
def mock_client():
    return MagicMock()


@pytest.fixture
def store(mock_client):
    return DocumentStore(client=mock_client)


class TestDocumentStore:
    """Test suite for DocumentStore."""

    @patch('services.document_store.create_client')
    def test_initialization_success(self, mock_create_client):
        """Test successful initialization with credentials."""
        mock_create_client.return_value = MagicMock()

        store = DocumentStore(supabase_url="https://test.supabase.co", supabase_key="test_key")

        assert store.client is mock_create_client.return_value
        mock_create_client.assert_called_once_with("https://test.supabase.co", "test_key")

    def test_initialization_without_credentials(self):
        """Test initialization fails without Supabase credentials."""
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            DocumentStore(supabase_url=None, supabase_key="test_key")

        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            DocumentStore(supabase_url="https://test.supabase.co", supabase_key=None)

    def test_insert_document(self, store, mock_client):
        document = Document(
            document_id="doc_1",
            original_filename="report.pdf",
            filename="doc_1/report.pdf",
            file_size=1024,
        )

        store.insert_document(document, metadata={"uploaded_at": "2024-01-01T00:00:00+00:00"})

        mock_client.table.assert_called_with(DOCUMENTS_TABLE)
        record = mock_client.table.return_value.upsert.call_args[0][0]
        assert record["id"] == "doc_1"
        assert record["status"] == "processing"
        assert record["filename"] == "doc_1/report.pdf"
        assert record["metadata"] == {"uploaded_at": "2024-01-01T00:00:00+00:00"}

    def test_insert_document_failure(self, store, mock_client):
        mock_client.table.return_value.upsert.return_value.execute.side_effect = Exception("Database error")

        with pytest.raises(RuntimeError, match="Failed to insert document doc_1"):
            store.insert_document(Document(document_id="doc_1", original_filename="a.pdf"))

    def test_update_document_status(self, store, mock_client):
        store.update_document_status("doc_1", STATUS_COMPLETED)

        mock_client.table.return_value.update.assert_called_once_with({"status": "completed"})
        mock_client.table.return_value.update.return_value.eq.assert_called_once_with("id", "doc_1")

    def test_update_document_chunk_count(self, store, mock_client):
        store.update_document_chunk_count("doc_1", 7)
        mock_client.table.return_value.update.assert_called_once_with({"chunk_count": 7})

    def test_list_documents(self, store, mock_client):
        query = mock_client.table.return_value.select.return_value.order.return_value.range.return_value
        query.execute.return_value = Mock(data=[
            {
                "id": "doc_2",
                "original_filename": "b.pdf",
                "filename": "doc_2/b.pdf",
                "status": "completed",
                "chunk_count": 4,
                "file_size": 2048,
                "created_at": "2024-01-02T00:00:00Z",
            },
            {"id": "doc_1", "original_filename": "a.pdf", "status": "processing", "chunk_count": None},
        ])

        documents = store.list_documents(limit=10, offset=20)

        mock_client.table.return_value.select.return_value.order.assert_called_once_with("created_at", desc=True)
        mock_client.table.return_value.select.return_value.order.return_value.range.assert_called_once_with(20, 29)
        assert [d.document_id for d in documents] == ["doc_2", "doc_1"]
        assert documents[0].is_completed
        assert documents[0].chunk_count == 4
        assert documents[1].chunk_count == 0

    def test_list_documents_failure(self, store, mock_client):
        mock_client.table.return_value.select.side_effect = Exception("Network error")

        with pytest.raises(RuntimeError, match="Failed to list documents"):
            store.list_documents()

    def test_get_document_missing(self, store, mock_client):
        mock_client.table.return_value.select.return_value.eq.return_value.execute.return_value = Mock(data=[])
        assert store.get_document("doc_missing") is None

    def test_insert_chunks_empty_list(self, store):
        """Test insert_chunks raises error for empty list."""
        with pytest.raises(ValueError, match="Chunks list cannot be empty"):
            store.insert_chunks([])

    def test_insert_chunks_success(self, store, mock_client):
        chunks = [
            Chunk(chunk_id="doc_1_p1_c0", document_id="doc_1", text="First", page_number=1, chunk_index=0, word_count=1),
            Chunk(chunk_id="doc_1_p2_c1", document_id="doc_1", text="Second", page_number=2, chunk_index=1, word_count=1),
        ]

        store.insert_chunks(chunks)

        mock_client.table.assert_called_with(CHUNKS_TABLE)
        records = mock_client.table.return_value.upsert.call_args[0][0]
        assert len(records) == 2
        assert records[1] == {
            "id": "doc_1_p2_c1",
            "document_id": "doc_1",
            "chunk_text": "Second",
            "page_number": 2,
            "chunk_index": 1,
            "word_count": 1,
            "metadata": {"page": 2, "chunk_index": 1},
        }

    def test_insert_chunks_failure(self, store, mock_client):
        mock_client.table.return_value.upsert.return_value.execute.side_effect = Exception("Database error")
        chunk = Chunk(chunk_id="c", document_id="d", text="t", page_number=1, chunk_index=0)

        with pytest.raises(RuntimeError, match="Failed to insert chunks"):
            store.insert_chunks([chunk])

    def test_get_chunks_by_document(self, store, mock_client):
        select = mock_client.table.return_value.select.return_value
        select.eq.return_value.order.return_value.range.return_value.execute.return_value = Mock(data=[
            {
                "id": "doc_1_p1_c0",
                "document_id": "doc_1",
                "chunk_text": "Paris is the capital of France.",
                "page_number": 1,
                "chunk_index": 0,
                "word_count": 6,
            }
        ])

        chunks = store.get_chunks_by_document("doc_1", limit=50)

        select.eq.assert_called_once_with("document_id", "doc_1")
        select.eq.return_value.order.assert_called_once_with("chunk_index")
        select.eq.return_value.order.return_value.range.assert_called_once_with(0, 49)
        assert chunks == [Chunk(
            chunk_id="doc_1_p1_c0",
            document_id="doc_1",
            text="Paris is the capital of France.",
            page_number=1,
            chunk_index=0,
            word_count=6,
        )]

    def test_get_chunks_failure(self, store, mock_client):
        mock_client.table.return_value.select.side_effect = Exception("timeout")

        with pytest.raises(RuntimeError, match="Failed to get chunks for document doc_1"):
            store.get_chunks_by_document("doc_1")

    def test_insert_query(self, store, mock_client):
        query_id = store.insert_query(
            question="What is the capital?",
            answer="Paris.",
            confidence=0.9,
            sources=["doc_1|a.pdf"],
            context="Paris is the capital of France.",
        )

        assert query_id.startswith("query_")
        mock_client.table.assert_called_with(QUERIES_TABLE)
        record = mock_client.table.return_value.insert.call_args[0][0]
        assert record["id"] == query_id
        assert json.loads(record["sources"]) == ["doc_1|a.pdf"]
        assert record["confidence"] == 0.9

    def test_delete_document(self, store, mock_client):
        """Deleting the document row is the only call; chunks go through the FK cascade."""
        store.delete_document("doc_1")

        tables = [call[0][0] for call in mock_client.table.call_args_list]
        assert tables == [DOCUMENTS_TABLE]
        mock_client.table.return_value.delete.return_value.eq.assert_called_once_with("id", "doc_1")

    def test_delete_document_failure(self, store, mock_client):
        mock_client.table.return_value.delete.return_value.eq.return_value.execute.side_effect = Exception("locked")

        with pytest.raises(RuntimeError, match="Failed to delete document doc_1"):
            store.delete_document("doc_1")

    def test_list_queries(self, store, mock_client):
        query = mock_client.table.return_value.select.return_value.order.return_value.range.return_value
        query.execute.return_value = Mock(data=[{"id": "query_2", "question": "Where?"}])

        rows = store.list_queries(limit=5)

        mock_client.table.assert_called_with(QUERIES_TABLE)
        mock_client.table.return_value.select.return_value.order.assert_called_once_with("created_at", desc=True)
        mock_client.table.return_value.select.return_value.order.return_value.range.assert_called_once_with(0, 4)
        assert rows == [{"id": "query_2", "question": "Where?"}]

    def test_list_queries_failure(self, store, mock_client):
        mock_client.table.return_value.select.side_effect = Exception("Network error")

        with pytest.raises(RuntimeError, match="Failed to list queries"):
            store.list_queries()

    def test_health_check(self, store, mock_client):
        assert store.health_check() is True

        mock_client.table.return_value.select.side_effect = Exception("down")
        assert store.health_check() is False

    def test_flush_clears_every_table(self, store, mock_client):
        store.flush()

        tables = [call[0][0] for call in mock_client.table.call_args_list]
        assert tables == [QUERIES_TABLE, CHUNKS_TABLE, DOCUMENTS_TABLE]
        assert mock_client.table.return_value.delete.return_value.neq.call_count == 3
