"""Request and response schemas for the HTTP API."""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Body of POST /query."""
    question: str = Field(..., description="Natural-language question")


class QueryResponse(BaseModel):
    """Grounded answer with sources and confidence."""
    answer: str
    sources: List[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    context: str = ""


class ChatRequest(BaseModel):
    """Body of POST /chat and POST /sessions/{id}/chat."""
    message: str


class ChatResponse(BaseModel):
    """Raw generation backend reply."""
    response: str
    model: str


class UploadResult(BaseModel):
    """Per-file outcome of an upload."""
    filename: str
    status: str  # "success" or "error"
    message: str
    document_id: Optional[str] = None


class UploadResponse(BaseModel):
    """Body returned by POST /upload."""
    message: str
    results: List[UploadResult]


class SourceSearchRequest(BaseModel):
    """Body of POST /search-sources."""
    query: str


class Source(BaseModel):
    """A document matched by source search."""
    document_id: str
    filename: str
    relevance_score: float
    chunk_count: int
    snippet: str
    uploaded_at: str = ""


class SourceSearchResponse(BaseModel):
    """Body returned by POST /search-sources."""
    query: str
    sources: List[Source]
    count: int


class StatsResponse(BaseModel):
    """Corpus statistics."""
    total_documents: int
    completed_documents: int
    total_chunks: int


class SessionCreateRequest(BaseModel):
    """Body of POST /sessions and PUT /sessions/{id}."""
    title: str = "New Chat"


class MessageResponse(BaseModel):
    """A stored chat message."""
    role: str
    content: str
    sources: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    created_at: Optional[str] = None


class SessionResponse(BaseModel):
    """A chat session, optionally with its messages."""
    session_id: str
    title: str
    created_at: str
    updated_at: str
    messages: List[MessageResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Detailed health check."""
    status: str
    services: Dict[str, Any]
