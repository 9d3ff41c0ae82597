"""Document data models."""
from dataclasses import dataclass
from typing import Optional

# Document lifecycle states
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


@dataclass
class Page:
    """Represents a single page of extracted PDF text."""
    page_number: int
    text: str
    word_count: int


@dataclass
class Document:
    """Represents an uploaded PDF document."""
    document_id: str
    original_filename: str
    status: str = STATUS_PROCESSING
    chunk_count: int = 0
    filename: str = ""  # Blob key: "{document_id}/{original_filename}"
    file_size: int = 0
    created_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED
