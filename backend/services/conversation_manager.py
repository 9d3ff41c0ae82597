"""Session manager storing chat transcripts in Supabase PostgreSQL."""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List

from supabase import create_client, Client

from models.conversation import ChatSession, ChatMessage
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "chat_sessions"
MESSAGES_TABLE = "chat_messages"

# CREATE TABLE chat_sessions (
#   id text PRIMARY KEY,
#   title text NOT NULL,
#   created_at timestamptz DEFAULT now(),
#   updated_at timestamptz DEFAULT now()
# );
# CREATE TABLE chat_messages (
#   id text PRIMARY KEY,
#   session_id text NOT NULL REFERENCES chat_sessions(id) ON DELETE CASCADE,
#   role text NOT NULL,
#   content text NOT NULL,
#   sources jsonb,
#   confidence float DEFAULT 0,
#   created_at timestamptz DEFAULT now()
# );


class SessionNotFoundError(Exception):
    """Raised when a chat session does not exist."""


class SessionManager:
    """Manages chat session and message storage using Supabase PostgreSQL."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        client: Optional[Client] = None
    ):
        """Initialize the session manager with a Supabase client."""
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        logger.info("SessionManager initialized with Supabase")

    def create_session(self, title: str = "New Chat") -> ChatSession:
        """
        Create a new chat session.

        Raises:
            RuntimeError: If database operation fails
        """
        session_id = self._generate_session_id()
        now = datetime.now(timezone.utc)

        try:
            self.client.table(SESSIONS_TABLE).insert({
                "id": session_id,
                "title": title,
                "created_at": now.isoformat(),
                "updated_at": now.isoformat()
            }).execute()
        except Exception as e:
            logger.error(f"Error creating session: {e}")
            raise RuntimeError(f"Failed to create session: {e}")

        logger.info(f"Created new session: {session_id}")
        return ChatSession(session_id=session_id, title=title, created_at=now, updated_at=now)

    def list_sessions(self, limit: int = 50, offset: int = 0) -> List[ChatSession]:
        """List sessions, most recently updated first."""
        try:
            result = (
                self.client.table(SESSIONS_TABLE)
                .select("*")
                .order("updated_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing sessions: {e}")
            raise RuntimeError(f"Failed to list sessions: {e}")

        return [self._row_to_session(row) for row in result.data or []]

    def get_session(self, session_id: str, with_messages: bool = True) -> ChatSession:
        """
        Retrieve a session, optionally with its messages.

        Raises:
            SessionNotFoundError: If the session does not exist
            RuntimeError: If database operation fails
        """
        try:
            result = self.client.table(SESSIONS_TABLE).select("*").eq("id", session_id).execute()
        except Exception as e:
            logger.error(f"Error retrieving session {session_id}: {e}")
            raise RuntimeError(f"Failed to get session: {e}")

        if not result.data:
            raise SessionNotFoundError(session_id)

        session = self._row_to_session(result.data[0])
        if with_messages:
            session.messages = self.get_messages(session_id)
        return session

    def rename_session(self, session_id: str, title: str) -> None:
        """Update a session's title. Raises SessionNotFoundError if missing."""
        self.get_session(session_id, with_messages=False)
        try:
            self.client.table(SESSIONS_TABLE).update({
                "title": title,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }).eq("id", session_id).execute()
        except Exception as e:
            logger.error(f"Error renaming session {session_id}: {e}")
            raise RuntimeError(f"Failed to update session: {e}")

    def delete_session(self, session_id: str) -> None:
        """Delete a session; its messages are removed by the FK cascade."""
        try:
            self.client.table(SESSIONS_TABLE).delete().eq("id", session_id).execute()
            logger.info(f"Deleted session {session_id}")
        except Exception as e:
            logger.error(f"Error deleting session {session_id}: {e}")
            raise RuntimeError(f"Failed to delete session: {e}")

    def add_message(
        self,
        session_id: str,
        role: str,
        content: str,
        sources: Optional[List[str]] = None,
        confidence: float = 0.0
    ) -> None:
        """
        Append a message to a session transcript.

        Raises:
            RuntimeError: If database operation fails
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            self.client.table(MESSAGES_TABLE).insert({
                "id": f"msg_{uuid.uuid4().hex[:12]}",
                "session_id": session_id,
                "role": role,
                "content": content,
                "sources": json.dumps(sources or []),
                "confidence": confidence,
                "created_at": now
            }).execute()
            self.client.table(SESSIONS_TABLE).update({"updated_at": now}).eq("id", session_id).execute()
        except Exception as e:
            logger.error(f"Error adding message to session {session_id}: {e}")
            raise RuntimeError(f"Failed to add message: {e}")

        logger.info(f"Added {role} message to session {session_id}")

    def get_messages(self, session_id: str, limit: int = 100, offset: int = 0) -> List[ChatMessage]:
        """Retrieve a session's messages in chronological order."""
        try:
            result = (
                self.client.table(MESSAGES_TABLE)
                .select("*")
                .eq("session_id", session_id)
                .order("created_at", desc=False)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error retrieving messages for session {session_id}: {e}")
            return []

        return [
            ChatMessage(
                message_id=row.get("id"),
                role=row["role"],
                content=row["content"],
                sources=self._parse_sources(row.get("sources")),
                confidence=row.get("confidence") or 0.0,
                created_at=self._parse_timestamp(row["created_at"]) if row.get("created_at") else None
            )
            for row in result.data or []
        ]

    def flush(self) -> None:
        """Delete every session and message."""
        try:
            self.client.table(MESSAGES_TABLE).delete().neq("id", "").execute()
            self.client.table(SESSIONS_TABLE).delete().neq("id", "").execute()
            logger.info("Cleared all chat sessions")
        except Exception as e:
            logger.error(f"Error clearing sessions: {e}")
            raise RuntimeError(f"Failed to flush sessions: {e}")

    def _row_to_session(self, row: dict) -> ChatSession:
        return ChatSession(
            session_id=row["id"],
            title=row["title"],
            created_at=self._parse_timestamp(row["created_at"]),
            updated_at=self._parse_timestamp(row["updated_at"])
        )

    @staticmethod
    def _parse_sources(raw) -> List[str]:
        if not raw:
            return []
        if isinstance(raw, list):
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            return []

    def _generate_session_id(self) -> str:
        return f"session_{uuid.uuid4().hex[:12]}"

    def _parse_timestamp(self, timestamp_str: str) -> datetime:
        """
        Parse timestamp string from Supabase, handling various formats.

        Supabase can return timestamps with varying microsecond precision,
        which Python's fromisoformat() can't always handle. This method
        normalizes the fractional part to 6 digits.
        """
        timestamp_str = timestamp_str.replace("Z", "+00:00")

        if "." in timestamp_str:
            head, fraction = timestamp_str.split(".", 1)
            tz = ""
            for sign in ("+", "-"):
                if sign in fraction:
                    fraction, tz = fraction.split(sign, 1)
                    tz = sign + tz
                    break
            fraction = fraction[:6].ljust(6, "0")
            timestamp_str = f"{head}.{fraction}{tz}"

        return datetime.fromisoformat(timestamp_str)
