"""Chunk data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Chunk:
    """Represents a document chunk for retrieval."""
    chunk_id: str  # Format: "{document_id}_p{page}_c{chunk_index}"
    document_id: str
    text: str
    page_number: int
    chunk_index: int
    word_count: int = 0


@dataclass
class ScoredChunk:
    """Chunk with lexical relevance score from retrieval."""
    chunk: Chunk
    relevance_score: float  # Unbounded, >= 0.0
