"""Unit tests for SessionManager."""
import json
import sys
sys.path.insert(0, 'backend')

import pytest
from datetime import datetime
from unittest.mock import MagicMock, Mock
from services.conversation_manager import (
    SessionManager,
    SessionNotFoundError,
    SESSIONS_TABLE,
    MESSAGES_TABLE,
)


SESSION_ROW = {
    "id": "session_abc123",
    "title": "Geography",
    "created_at": "2024-03-01T10:00:00.12345+00:00",
    "updated_at": "2024-03-01T10:05:00Z",
}


class TestSessionManager:
    """Test suite for SessionManager."""

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def manager(self, client):
        """Create a SessionManager backed by a mock Supabase client."""
        return SessionManager(client=client)

    def test_initialization_without_credentials(self):
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            SessionManager(supabase_url=None, supabase_key=None)

    def test_create_session(self, manager, client):
        session = manager.create_session("Geography")

        assert session.session_id.startswith("session_")
        assert session.title == "Geography"
        assert isinstance(session.created_at, datetime)
        assert session.messages == []

        client.table.assert_called_with(SESSIONS_TABLE)
        record = client.table.return_value.insert.call_args[0][0]
        assert record["id"] == session.session_id
        assert record["title"] == "Geography"

    def test_session_id_uniqueness(self, manager):
        assert manager.create_session().session_id != manager.create_session().session_id

    def test_create_session_failure(self, manager, client):
        client.table.return_value.insert.return_value.execute.side_effect = Exception("Database error")

        with pytest.raises(RuntimeError, match="Failed to create session"):
            manager.create_session()

    def test_list_sessions(self, manager, client):
        query = client.table.return_value.select.return_value.order.return_value.range.return_value
        query.execute.return_value = Mock(data=[SESSION_ROW])

        sessions = manager.list_sessions()

        client.table.return_value.select.return_value.order.assert_called_once_with("updated_at", desc=True)
        assert [s.session_id for s in sessions] == ["session_abc123"]
        assert sessions[0].created_at.microsecond == 123450

    def test_get_session_with_messages(self, manager, client):
        def table(name):
            mock_table = MagicMock()
            if name == SESSIONS_TABLE:
                mock_table.select.return_value.eq.return_value.execute.return_value = Mock(data=[SESSION_ROW])
            else:
                query = mock_table.select.return_value.eq.return_value.order.return_value.range.return_value
                query.execute.return_value = Mock(data=[
                    {
                        "id": "msg_1",
                        "role": "user",
                        "content": "What is the capital of France?",
                        "sources": None,
                        "confidence": 0,
                        "created_at": "2024-03-01T10:01:00Z",
                    },
                    {
                        "id": "msg_2",
                        "role": "assistant",
                        "content": "Paris.",
                        "sources": json.dumps(["doc_1|geo.pdf"]),
                        "confidence": 0.9,
                        "created_at": "2024-03-01T10:01:02.5Z",
                    },
                ])
            return mock_table

        client.table.side_effect = table

        session = manager.get_session("session_abc123")

        assert session.title == "Geography"
        assert [m.role for m in session.messages] == ["user", "assistant"]
        assert session.messages[0].sources == []
        assert session.messages[1].sources == ["doc_1|geo.pdf"]
        assert session.messages[1].confidence == 0.9

    def test_get_missing_session(self, manager, client):
        client.table.return_value.select.return_value.eq.return_value.execute.return_value = Mock(data=[])

        with pytest.raises(SessionNotFoundError):
            manager.get_session("session_missing")

    def test_rename_session(self, manager, client):
        client.table.return_value.select.return_value.eq.return_value.execute.return_value = Mock(data=[SESSION_ROW])

        manager.rename_session("session_abc123", "Renamed")

        values = client.table.return_value.update.call_args[0][0]
        assert values["title"] == "Renamed"
        assert "updated_at" in values

    def test_rename_missing_session(self, manager, client):
        client.table.return_value.select.return_value.eq.return_value.execute.return_value = Mock(data=[])

        with pytest.raises(SessionNotFoundError):
            manager.rename_session("session_missing", "Renamed")
        client.table.return_value.update.assert_not_called()

    def test_delete_session(self, manager, client):
        manager.delete_session("session_abc123")
        client.table.return_value.delete.return_value.eq.assert_called_once_with("id", "session_abc123")

    def test_add_message(self, manager, client):
        manager.add_message("session_abc123", "assistant", "Paris.", sources=["doc_1|geo.pdf"], confidence=0.8)

        record = client.table.return_value.insert.call_args[0][0]
        assert record["id"].startswith("msg_")
        assert record["session_id"] == "session_abc123"
        assert json.loads(record["sources"]) == ["doc_1|geo.pdf"]
        assert record["confidence"] == 0.8
        client.table.return_value.update.assert_called_once()

    def test_add_message_failure(self, manager, client):
        client.table.return_value.insert.return_value.execute.side_effect = Exception("Database error")

        with pytest.raises(RuntimeError, match="Failed to add message"):
            manager.add_message("session_abc123", "user", "hello")

    def test_get_messages_failure_returns_empty(self, manager, client):
        client.table.return_value.select.side_effect = Exception("Network error")
        assert manager.get_messages("session_abc123") == []

    def test_flush(self, manager, client):
        manager.flush()

        tables = [call[0][0] for call in client.table.call_args_list]
        assert tables == [MESSAGES_TABLE, SESSIONS_TABLE]
