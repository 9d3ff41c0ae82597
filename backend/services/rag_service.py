"""RAG service: PDF ingestion and grounded question answering."""
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models.chunk import Chunk
from models.document import Document, STATUS_COMPLETED, STATUS_FAILED, STATUS_PROCESSING
from models.query import QueryResult, SourceMatch
from services.blob_store import BlobStore
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.document_store import DocumentStore
from services.llm_client import GenerationBackend, LLMError, LLMClientError
from services.output_evaluator import OutputEvaluator
from services.relevance_scorer import score_chunk, tokenize_question
from services.retrieval_engine import (
    RetrievalEngine,
    RetrievalResult,
    RetrievalState,
    PRIMARY_PROFILE,
    FALLBACK_PROFILE,
)
from services import prompts
from config import (
    APP_LANGUAGE,
    DEFAULT_LANGUAGE,
    DOCUMENTS_BUCKET,
    SOURCE_RELEVANCE_FLOOR,
    SOURCE_SEARCH_CHUNK_LIMIT,
    SNIPPET_LENGTH,
    SOURCE_SEARCH_PAGE_SIZE,
)

logger = logging.getLogger(__name__)

_STATE_MESSAGES = {
    RetrievalState.NO_DOCUMENTS: prompts.NO_DOCUMENTS,
    RetrievalState.NO_CHUNKS: prompts.NO_CHUNKS,
    RetrievalState.NO_RELEVANT_CHUNKS: prompts.NO_RELEVANT_INFORMATION,
}


class IngestionError(Exception):
    """Raised when a document cannot be ingested; the document is marked failed."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        self.document_id = document_id
        super().__init__(message)


class RAGService:
    """Ingest PDFs into chunk records and answer questions grounded in them."""

    def __init__(
        self,
        backend: Optional[GenerationBackend],
        document_store: DocumentStore,
        blob_store: BlobStore,
        document_loader: Optional[DocumentLoader] = None,
        chunking_engine: Optional[ChunkingEngine] = None,
        retrieval_engine: Optional[RetrievalEngine] = None,
        language: str = APP_LANGUAGE,
        bucket: str = DOCUMENTS_BUCKET
    ):
        """
        Initialize the RAG service.

        Args:
            backend: Generation backend used for answers and translations (None for ingest-only use)
            document_store: Relational store for documents, chunks and queries
            blob_store: Storage for raw PDF bytes
            document_loader: PDF text extractor
            chunking_engine: Page text chunker
            retrieval_engine: Chunk ranker (built on document_store by default)
            language: Response language
            bucket: Blob bucket for uploaded files
        """
        self.backend = backend
        self.document_store = document_store
        self.blob_store = blob_store
        self.document_loader = document_loader or DocumentLoader()
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.retrieval_engine = retrieval_engine or RetrievalEngine(document_store)
        self.language = language
        self.bucket = bucket
        self.output_evaluator = OutputEvaluator(language)
        logger.info(f"Initialized RAGService (language={language})")

    # Ingestion

    def ingest(self, filename: str, pdf_bytes: bytes) -> Document:
        """
        Store a PDF, extract and chunk its text, and persist the chunks.

        Args:
            filename: Original filename
            pdf_bytes: Raw PDF contents

        Returns:
            The completed Document

        Raises:
            IngestionError: If storage, extraction or chunking fails
        """
        logger.info(f"Processing PDF: {filename}")
        document_id = f"doc_{time.time_ns()}"
        object_name = f"{document_id}/{filename}"

        try:
            self.blob_store.put(self.bucket, object_name, pdf_bytes, "application/pdf")
        except RuntimeError as e:
            raise IngestionError(f"failed to store PDF: {e}", document_id) from e

        document = Document(
            document_id=document_id,
            original_filename=filename,
            status=STATUS_PROCESSING,
            filename=object_name,
            file_size=len(pdf_bytes),
        )
        try:
            self.document_store.insert_document(
                document, metadata={"uploaded_at": datetime.now(timezone.utc).isoformat()}
            )
        except RuntimeError as e:
            raise IngestionError(f"failed to insert document record: {e}", document_id) from e

        try:
            pages = self.document_loader.extract_pages(pdf_bytes, filename)
        except Exception as e:
            self._mark_failed(document_id)
            raise IngestionError(f"failed to extract text from PDF: {e}", document_id) from e

        chunks = self.chunking_engine.chunk_pages(pages, document_id)
        if not chunks:
            self._mark_failed(document_id)
            raise IngestionError("no text chunks extracted from PDF", document_id)

        self._store_chunks(chunks)

        try:
            self.document_store.update_document_chunk_count(document_id, len(chunks))
        except RuntimeError as e:
            logger.warning(f"Failed to update chunk count for {document_id}: {e}")
        try:
            self.document_store.update_document_status(document_id, STATUS_COMPLETED)
        except RuntimeError as e:
            logger.warning(f"Failed to update status for {document_id}: {e}")

        document.status = STATUS_COMPLETED
        document.chunk_count = len(chunks)
        logger.info(f"Successfully processed {len(chunks)} chunks from PDF {filename} (Document ID: {document_id})")
        return document

    def _store_chunks(self, chunks: List[Chunk]) -> None:
        try:
            self.document_store.insert_chunks(chunks)
        except RuntimeError as e:
            logger.warning(f"Failed to insert chunk records: {e}")

    def _mark_failed(self, document_id: str) -> None:
        try:
            self.document_store.update_document_status(document_id, STATUS_FAILED)
        except RuntimeError as e:
            logger.warning(f"Failed to mark document {document_id} as failed: {e}")

    # Querying

    def query(self, question: str) -> QueryResult:
        """
        Answer a question from the ingested documents.

        The primary pass keeps the top 3 chunks above 0.2. When nothing
        passes, the fallback pass keeps the top 8 above 0.1 and, for a
        non-default response language, may retry once with the question
        translated to English.

        Args:
            question: User question

        Returns:
            QueryResult with answer, sources, confidence and context

        Raises:
            LLMClientError: If the generation backend fails
            RuntimeError: If the document list cannot be loaded
        """
        logger.info(f"Processing RAG query: {question[:100]}")

        corpus = self.retrieval_engine.load_corpus()
        retrieval = self.retrieval_engine.retrieve(question, PRIMARY_PROFILE, corpus=corpus)

        if retrieval.state == RetrievalState.NO_RELEVANT_CHUNKS:
            translate = self.translate_to_english if self.language != DEFAULT_LANGUAGE else None
            retrieval = self.retrieval_engine.retrieve(
                question, FALLBACK_PROFILE, translate=translate, corpus=corpus
            )

        if not retrieval.has_context:
            result = QueryResult(answer=prompts.message(_STATE_MESSAGES[retrieval.state], self.language))
            self._store_query(question, result)
            return result

        result = self._synthesize(question, retrieval)
        self._store_query(question, result)
        return result

    def _synthesize(self, question: str, retrieval: RetrievalResult) -> QueryResult:
        prompt = prompts.build_grounding_prompt(retrieval.context, question, self.language)
        answer = self._generate(prompt)

        if self.output_evaluator.is_insufficient(answer):
            logger.info("Answer signals insufficient information; discarding sources")
            return QueryResult(
                answer=prompts.message(prompts.INSUFFICIENT_INFORMATION, self.language),
                sources=[],
                confidence=0.0,
                context=retrieval.context,
            )

        return QueryResult(
            answer=answer,
            sources=retrieval.formatted_sources,
            confidence=max(0.0, min(retrieval.best_score, 1.0)),
            context=retrieval.context,
        )

    def translate_to_english(self, text: str) -> str:
        """Translate text to English with the generation backend."""
        return self._generate(prompts.build_translation_prompt(text)).strip()

    def _generate(self, prompt: str) -> str:
        if self.backend is None:
            raise LLMClientError(LLMError(
                code="LLM_DISABLED",
                message="No generation backend is configured",
                details={}
            ))
        return self.backend.generate(prompt)

    def _store_query(self, question: str, result: QueryResult) -> None:
        try:
            self.document_store.insert_query(
                question=question,
                answer=result.answer,
                confidence=result.confidence,
                sources=result.sources,
                context=result.context,
            )
        except Exception as e:
            logger.warning(f"Failed to store query: {e}")

    # Source search and stats

    def search_sources(self, query: str) -> List[SourceMatch]:
        """
        Find the completed documents whose chunks are relevant to a query.

        Returns:
            Matching documents sorted by their best chunk score, descending
        """
        query_tokens = tokenize_question(query)
        matches: List[SourceMatch] = []

        for doc in self._all_documents():
            if not doc.is_completed:
                continue

            try:
                chunks = self.document_store.get_chunks_by_document(
                    doc.document_id, limit=SOURCE_SEARCH_CHUNK_LIMIT
                )
            except RuntimeError as e:
                logger.warning(f"Skipping document {doc.document_id} in source search: {e}")
                continue

            relevant = []
            max_score = 0.0
            for chunk in chunks:
                score = score_chunk(query_tokens, chunk.text)
                if score > SOURCE_RELEVANCE_FLOOR:
                    relevant.append(chunk)
                    max_score = max(max_score, score)

            if not relevant:
                continue

            snippet = relevant[0].text
            if len(snippet) > SNIPPET_LENGTH:
                snippet = snippet[:SNIPPET_LENGTH] + "..."

            matches.append(SourceMatch(
                document_id=doc.document_id,
                filename=doc.original_filename,
                relevance_score=max_score,
                chunk_count=len(relevant),
                snippet=snippet,
                uploaded_at=doc.created_at or "",
            ))

        matches.sort(key=lambda m: m.relevance_score, reverse=True)
        return matches

    def _all_documents(self) -> List[Document]:
        """Page through every document record, newest first."""
        documents: List[Document] = []
        offset = 0
        while True:
            page = self.document_store.list_documents(limit=SOURCE_SEARCH_PAGE_SIZE, offset=offset)
            documents.extend(page)
            if len(page) < SOURCE_SEARCH_PAGE_SIZE:
                return documents
            offset += SOURCE_SEARCH_PAGE_SIZE

    def get_stats(self) -> Dict[str, int]:
        """Count documents and chunks over the latest 100 documents."""
        documents = self.document_store.list_documents(limit=100)
        completed = [doc for doc in documents if doc.is_completed]
        return {
            "total_documents": len(documents),
            "completed_documents": len(completed),
            "total_chunks": sum(doc.chunk_count for doc in completed),
        }

    def get_file(self, document_id: str, filename: str) -> bytes:
        """Fetch the stored PDF. Raises BlobNotFoundError when missing."""
        return self.blob_store.get(self.bucket, f"{document_id}/{filename}")

    def flush(self) -> None:
        """Delete every document record and stored file."""
        self.document_store.flush()
        self.blob_store.flush(self.bucket)
