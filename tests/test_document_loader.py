"""Unit tests for DocumentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import MagicMock, patch
from services.document_loader import DocumentLoader, ExtractionError


def make_pdf(page_texts):
    pdf = MagicMock()
    pdf.__len__.return_value = len(page_texts)

    def get_page(index):
        page = MagicMock()
        value = page_texts[index]
        if isinstance(value, Exception):
            page.get_text.side_effect = value
        else:
            page.get_text.return_value = value
        return page

    pdf.__getitem__.side_effect = get_page
    return pdf


class TestDocumentLoader:
    """Test suite for PDF text extraction."""

    @patch('services.document_loader.fitz')
    def test_extract_pages(self, mock_fitz):
        pdf = make_pdf(["First page text", "Second page has more words"])
        mock_fitz.open.return_value = pdf

        pages = DocumentLoader().extract_pages(b"%PDF-1.4", "report.pdf")

        mock_fitz.open.assert_called_once_with(stream=b"%PDF-1.4", filetype="pdf")
        assert [p.page_number for p in pages] == [1, 2]
        assert pages[0].text == "First page text"
        assert pages[1].word_count == 5
        pdf.close.assert_called_once()

    @patch('services.document_loader.fitz')
    def test_unreadable_page_is_skipped(self, mock_fitz):
        mock_fitz.open.return_value = make_pdf(["one", RuntimeError("bad xref"), "three"])

        pages = DocumentLoader().extract_pages(b"%PDF", "broken.pdf")

        assert [p.page_number for p in pages] == [1, 3]

    @patch('services.document_loader.fitz')
    def test_blank_pages_are_kept(self, mock_fitz):
        mock_fitz.open.return_value = make_pdf(["", "text"])

        pages = DocumentLoader().extract_pages(b"%PDF")

        assert len(pages) == 2
        assert pages[0].word_count == 0

    @patch('services.document_loader.fitz')
    def test_unopenable_pdf_raises(self, mock_fitz):
        mock_fitz.open.side_effect = RuntimeError("cannot open broken document")

        with pytest.raises(ExtractionError, match="failed to open PDF"):
            DocumentLoader().extract_pages(b"not a pdf", "junk.pdf")
