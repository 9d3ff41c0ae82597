"""Document loading service for PDF text extraction."""
import logging
from typing import List
import fitz  # PyMuPDF

from models.document import Page

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when a PDF cannot be opened."""


class DocumentLoader:
    """Extracts raw page text from PDF bytes."""

    def extract_pages(self, pdf_bytes: bytes, filename: str = "") -> List[Page]:
        """
        Extract text page-by-page from an in-memory PDF.

        Unreadable pages are skipped; blank pages are kept so page numbers
        stay 1-indexed positions in the original file.

        Args:
            pdf_bytes: Raw PDF file contents
            filename: Name of the file, for logging

        Returns:
            Ordered list of Page objects

        Raises:
            ExtractionError: If the PDF cannot be opened
        """
        try:
            pdf_document = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {str(e)}")
            raise ExtractionError(f"failed to open PDF: {str(e)}") from e

        pages = []
        try:
            for page_num in range(len(pdf_document)):
                try:
                    text = pdf_document[page_num].get_text()
                except Exception as e:
                    logger.warning(f"Failed to extract text from page {page_num + 1} of {filename}: {str(e)}")
                    continue

                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text,
                    word_count=len(text.split())
                ))
        finally:
            pdf_document.close()

        logger.info(f"Extracted {len(pages)} pages from {filename}")
        return pages
