"""Chat session data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class ChatMessage:
    """Represents a single message in a chat session."""
    role: str  # "user" or "assistant"
    content: str
    sources: List[str] = field(default_factory=list)
    confidence: float = 0.0
    created_at: Optional[datetime] = None
    message_id: Optional[str] = None


@dataclass
class ChatSession:
    """Represents a stored chat session transcript."""
    session_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: List[ChatMessage] = field(default_factory=list)
