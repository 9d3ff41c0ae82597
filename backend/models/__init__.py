"""Data models for the PDF Knowledge Base service."""
from .document import Document, Page, STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED
from .chunk import Chunk, ScoredChunk
from .conversation import ChatSession, ChatMessage
from .query import QueryResult, SourceMatch

__all__ = [
    "Document",
    "Page",
    "STATUS_PROCESSING",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "Chunk",
    "ScoredChunk",
    "ChatSession",
    "ChatMessage",
    "QueryResult",
    "SourceMatch",
]
