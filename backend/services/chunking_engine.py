"""Chunking engine that splits page text into overlapping passages."""
import logging
import re
from typing import Iterable, List

from models.chunk import Chunk
from models.document import Page
from config import CHUNK_SIZE, CHUNK_OVERLAP, MIN_CHUNK_LENGTH

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")
_STANDALONE_NUMBER = re.compile(r"^\s*\d+\s*$")
_FRAMED_NUMBER = re.compile(r"\n\s*\d+\s*\n")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """
    Clean raw page text before chunking.

    Collapses whitespace, strips page-number artifacts, limits blank lines,
    drops non-printable characters (newlines and tabs survive) and trims.
    """
    text = _WHITESPACE_RUN.sub(" ", text)
    text = _STANDALONE_NUMBER.sub("", text)
    text = _FRAMED_NUMBER.sub("\n", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    text = "".join(c for c in text if c.isprintable() or c in "\n\t")
    return text.strip()


class ChunkingEngine:
    """Segments document pages into word-bounded, overlapping chunks."""

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        min_chunk_length: int = MIN_CHUNK_LENGTH
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in characters
            chunk_overlap: Overlap budget in characters (carried over as chunk_overlap // 10 words)
            min_chunk_length: Chunks this short or shorter are dropped as noise
        """
        self.chunk_size = chunk_size
        self.overlap_words = chunk_overlap // 10
        self.min_chunk_length = min_chunk_length

    def chunk_pages(self, pages: Iterable[Page], document_id: str) -> List[Chunk]:
        """
        Chunk every page of a document.

        chunk_index runs across the whole document, so chunk ids are unique
        within it and follow reading order.

        Args:
            pages: Extracted pages in page order
            document_id: Owning document identifier

        Returns:
            Ordered list of Chunk objects
        """
        chunks: List[Chunk] = []
        page_count = 0

        for page in pages:
            page_count += 1
            cleaned = normalize_text(page.text)
            if not cleaned:
                continue

            for text in self.split_text(cleaned):
                chunk_index = len(chunks)
                chunks.append(Chunk(
                    chunk_id=f"{document_id}_p{page.page_number}_c{chunk_index}",
                    document_id=document_id,
                    text=text,
                    page_number=page.page_number,
                    chunk_index=chunk_index,
                    word_count=len(text.split())
                ))

        logger.info(f"Created {len(chunks)} chunks from {page_count} pages of {document_id}")
        return chunks

    def split_text(self, text: str) -> List[str]:
        """
        Split normalized text into chunk strings.

        Words accumulate until the buffer reaches chunk_size characters or
        the text ends. Each emitted chunk (except the last) seeds the next
        buffer with its trailing overlap words.

        Args:
            text: Normalized text

        Returns:
            List of chunk texts, each longer than min_chunk_length
        """
        words = text.split()
        chunks: List[str] = []
        buffer: List[str] = []
        buffer_length = 0

        for i, word in enumerate(words):
            buffer.append(word)
            buffer_length += len(word) + 1  # trailing space
            is_last = i == len(words) - 1

            if buffer_length < self.chunk_size and not is_last:
                continue

            chunk_text = " ".join(buffer).strip()
            buffer, buffer_length = [], 0

            if len(chunk_text) <= self.min_chunk_length:
                continue

            chunks.append(chunk_text)

            if not is_last and self.overlap_words > 0:
                buffer = chunk_text.split()[-self.overlap_words:]
                buffer_length = sum(len(w) + 1 for w in buffer)

        return chunks
