"""Query result data models."""
from dataclasses import dataclass, field
from typing import List


@dataclass
class QueryResult:
    """Grounded answer returned for a question."""
    answer: str
    sources: List[str] = field(default_factory=list)  # "document_id|filename"
    confidence: float = 0.0  # Always within [0, 1]
    context: str = ""


@dataclass
class SourceMatch:
    """A document matched by source search."""
    document_id: str
    filename: str
    relevance_score: float
    chunk_count: int
    snippet: str
    uploaded_at: str = ""
