"""
Document Ingestion Script for the PDF Knowledge Base.

This script:
1. Optionally clears existing documents, chunks, queries and files
2. Loads every PDF from a directory
3. Stores each file, extracts and chunks its text, and persists the chunks

Usage:
    python ingest_documents.py path/to/pdfs [--flush]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOG_LEVEL
from logger import setup_logging
from services.blob_store import BlobStore
from services.document_store import DocumentStore
from services.rag_service import RAGService, IngestionError

logger = logging.getLogger(__name__)


def ingest_directory(rag_service: RAGService, docs_path: Path) -> Tuple[List[str], List[str]]:
    """
    Ingest every PDF in a directory.

    Args:
        rag_service: Service performing the ingestion
        docs_path: Directory holding PDF files

    Returns:
        (succeeded filenames, failed filenames)
    """
    succeeded: List[str] = []
    failed: List[str] = []

    pdf_files = sorted(p for p in docs_path.iterdir() if p.suffix.lower() == ".pdf")
    logger.info(f"Found {len(pdf_files)} PDF files in {docs_path}")

    for pdf_path in pdf_files:
        try:
            document = rag_service.ingest(pdf_path.name, pdf_path.read_bytes())
            logger.info(f"  ✓ {pdf_path.name}: {document.chunk_count} chunks ({document.document_id})")
            succeeded.append(pdf_path.name)
        except (IngestionError, OSError) as e:
            logger.error(f"  ✗ {pdf_path.name}: {e}")
            failed.append(pdf_path.name)

    return succeeded, failed


def main():
    """Main ingestion process."""
    parser = argparse.ArgumentParser(description="Ingest a directory of PDFs into the knowledge base")
    parser.add_argument("docs_dir", help="Directory containing PDF files")
    parser.add_argument(
        "--flush",
        action="store_true",
        help="Delete all existing documents and files before ingesting"
    )
    args = parser.parse_args()

    setup_logging(LOG_LEVEL)

    docs_path = Path(args.docs_dir)
    if not docs_path.is_dir():
        logger.error(f"Documents directory not found: {docs_path}")
        sys.exit(1)

    try:
        document_store = DocumentStore()
        rag_service = RAGService(
            backend=None,
            document_store=document_store,
            blob_store=BlobStore(client=document_store.client)
        )

        if args.flush:
            logger.info("Clearing existing data...")
            rag_service.flush()

        succeeded, failed = ingest_directory(rag_service, docs_path)

        logger.info("=" * 60)
        logger.info(f"Ingested: {len(succeeded)}  Failed: {len(failed)}")
        logger.info(f"Stats: {rag_service.get_stats()}")
        logger.info("=" * 60)

        if failed:
            sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        sys.exit(1)
    except (RuntimeError, ValueError) as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
