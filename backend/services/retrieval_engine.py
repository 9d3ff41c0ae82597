"""Retrieval engine for lexical chunk ranking and context assembly."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from models.chunk import Chunk, ScoredChunk
from models.document import Document
from services.document_store import DocumentStore
from services.relevance_scorer import score_chunk, tokenize_question
from config import (
    CONTEXT_RELEVANCE_FLOOR,
    SOURCE_RELEVANCE_FLOOR,
    PRIMARY_TOP_N,
    FALLBACK_TOP_N,
    TRANSLATION_TOP_N,
    MAX_SOURCES,
    MAX_CONTEXT_CHARS,
    CHUNK_FETCH_LIMIT,
    DOCUMENT_FETCH_LIMIT,
    CHUNK_FETCH_WORKERS,
)

logger = logging.getLogger(__name__)


class RetrievalState(str, Enum):
    """Terminal state of a retrieval pass."""
    OK = "ok"
    NO_DOCUMENTS = "no_documents"
    NO_CHUNKS = "no_chunks"
    NO_RELEVANT_CHUNKS = "no_relevant_chunks"


@dataclass(frozen=True)
class RetrievalProfile:
    """Knobs that distinguish the primary and fallback retrieval passes."""
    top_n: int
    relevance_floor: float
    separator: str = "\n\n"
    max_context_chars: Optional[int] = None
    allow_translation_retry: bool = False


PRIMARY_PROFILE = RetrievalProfile(
    top_n=PRIMARY_TOP_N,
    relevance_floor=CONTEXT_RELEVANCE_FLOOR,
)

FALLBACK_PROFILE = RetrievalProfile(
    top_n=FALLBACK_TOP_N,
    relevance_floor=SOURCE_RELEVANCE_FLOOR,
    separator="\n\n---\n\n",
    max_context_chars=MAX_CONTEXT_CHARS,
    allow_translation_retry=True,
)


@dataclass
class SourceScore:
    """A document with its best chunk score."""
    document: Document
    score: float

    @property
    def formatted(self) -> str:
        """Source label used for downstream file lookup."""
        return f"{self.document.document_id}|{self.document.original_filename}"


@dataclass
class Corpus:
    """Documents and the chunks of the completed ones, loaded once per query."""
    documents: List[Document]
    chunks_by_document: Dict[str, List[Chunk]] = field(default_factory=dict)

    @property
    def completed_documents(self) -> List[Document]:
        return [doc for doc in self.documents if doc.is_completed]

    @property
    def all_chunks(self) -> List[Chunk]:
        chunks: List[Chunk] = []
        for doc in self.completed_documents:
            chunks.extend(self.chunks_by_document.get(doc.document_id, []))
        return chunks


@dataclass
class RetrievalResult:
    """Outcome of one retrieval: selected chunks, context and sources."""
    state: RetrievalState
    chunks: List[ScoredChunk] = field(default_factory=list)
    context: str = ""
    best_score: float = 0.0
    sources: List[SourceScore] = field(default_factory=list)
    query_tokens: List[str] = field(default_factory=list)
    translated_question: Optional[str] = None

    @property
    def has_context(self) -> bool:
        return self.state == RetrievalState.OK and bool(self.context)

    @property
    def formatted_sources(self) -> List[str]:
        return [source.formatted for source in self.sources]


def rank_chunks(query_tokens: Sequence[str], chunks: Sequence[Chunk]) -> List[ScoredChunk]:
    """Score every chunk and sort descending; ties keep input order."""
    scored = [ScoredChunk(chunk=chunk, relevance_score=score_chunk(query_tokens, chunk.text)) for chunk in chunks]
    scored.sort(key=lambda sc: sc.relevance_score, reverse=True)
    return scored


class RetrievalEngine:
    """Rank stored chunks against a question and assemble grounding context."""

    def __init__(
        self,
        document_store: DocumentStore,
        chunk_fetch_limit: int = CHUNK_FETCH_LIMIT,
        document_fetch_limit: int = DOCUMENT_FETCH_LIMIT,
        max_workers: int = CHUNK_FETCH_WORKERS
    ):
        """
        Initialize the retrieval engine.

        Args:
            document_store: Store holding document and chunk records
            chunk_fetch_limit: Maximum chunks loaded per document
            document_fetch_limit: Maximum documents considered per query
            max_workers: Thread pool size for per-document chunk fetches
        """
        self.document_store = document_store
        self.chunk_fetch_limit = chunk_fetch_limit
        self.document_fetch_limit = document_fetch_limit
        self.max_workers = max_workers
        logger.info("Initialized RetrievalEngine")

    def load_corpus(self) -> Corpus:
        """
        Load documents and the chunks of every completed document.

        Chunk fetches fan out over a thread pool and fan back in document
        order. A document whose fetch fails is logged and skipped.

        Raises:
            RuntimeError: If the document list cannot be loaded
        """
        documents = self.document_store.list_documents(limit=self.document_fetch_limit)
        corpus = Corpus(documents=documents)

        completed = corpus.completed_documents
        if not completed:
            return corpus

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(self._fetch_chunks, completed))

        for doc, chunks in zip(completed, results):
            if chunks is not None:
                corpus.chunks_by_document[doc.document_id] = chunks

        return corpus

    def _fetch_chunks(self, document: Document) -> Optional[List[Chunk]]:
        try:
            return self.document_store.get_chunks_by_document(
                document.document_id, limit=self.chunk_fetch_limit
            )
        except Exception as e:
            logger.warning(f"Failed to get chunks for document {document.document_id}: {e}")
            return None

    def retrieve(
        self,
        question: str,
        profile: RetrievalProfile = PRIMARY_PROFILE,
        translate: Optional[Callable[[str], str]] = None,
        corpus: Optional[Corpus] = None
    ) -> RetrievalResult:
        """
        Retrieve grounding context for a question.

        Steps:
        1. Load the corpus (unless one is passed in)
        2. Score every chunk of the completed documents
        3. Keep the top N chunks above the profile's relevance floor
        4. Join them into the context string, capped when the profile says so
        5. Rank up to MAX_SOURCES source documents by their best chunk score
        6. If nothing passed and the profile allows it, translate the question
           once and repeat steps 2-4 with the translated tokens; sources are
           still ranked with the original question

        Args:
            question: User question
            profile: Retrieval knobs (PRIMARY_PROFILE or FALLBACK_PROFILE)
            translate: Callable turning the question into the reference language
            corpus: Previously loaded corpus to reuse

        Returns:
            RetrievalResult; degenerate corpora produce a non-OK state, never an exception
        """
        if corpus is None:
            corpus = self.load_corpus()

        query_tokens = tokenize_question(question)

        if not corpus.documents:
            logger.info("No documents in knowledge base")
            return RetrievalResult(state=RetrievalState.NO_DOCUMENTS, query_tokens=query_tokens)

        all_chunks = corpus.all_chunks
        if not all_chunks:
            logger.info("No processed chunks in knowledge base")
            return RetrievalResult(state=RetrievalState.NO_CHUNKS, query_tokens=query_tokens)

        result = self._select(query_tokens, all_chunks, corpus, profile.top_n, profile)

        if result.state == RetrievalState.NO_RELEVANT_CHUNKS and profile.allow_translation_retry and translate:
            result = self._retry_translated(question, all_chunks, corpus, profile, translate) or result

        return result

    def _retry_translated(
        self,
        question: str,
        all_chunks: List[Chunk],
        corpus: Corpus,
        profile: RetrievalProfile,
        translate: Callable[[str], str]
    ) -> Optional[RetrievalResult]:
        try:
            translated = translate(question)
        except Exception as e:
            logger.warning(f"Question translation failed, keeping original ranking: {e}")
            return None

        if not translated or not translated.strip():
            return None

        logger.info(f"Retrying retrieval with translated question: {translated[:100]}")
        result = self._select(
            tokenize_question(translated), all_chunks, corpus, TRANSLATION_TOP_N, profile,
            source_tokens=tokenize_question(question)
        )
        result.translated_question = translated.strip()
        return result

    def _select(
        self,
        query_tokens: List[str],
        all_chunks: List[Chunk],
        corpus: Corpus,
        top_n: int,
        profile: RetrievalProfile,
        source_tokens: Optional[List[str]] = None
    ) -> RetrievalResult:
        ranked = rank_chunks(query_tokens, all_chunks)

        for i, scored in enumerate(ranked[:5]):
            logger.debug(f"Chunk {i} score: {scored.relevance_score:.2f}, text preview: {scored.chunk.text[:100]}")

        selected = [sc for sc in ranked[:top_n] if sc.relevance_score > profile.relevance_floor]
        if not selected:
            logger.info(f"No chunks above relevance floor {profile.relevance_floor}")
            return RetrievalResult(state=RetrievalState.NO_RELEVANT_CHUNKS, query_tokens=query_tokens)

        context = profile.separator.join(sc.chunk.text for sc in selected)
        if profile.max_context_chars is not None and len(context) > profile.max_context_chars:
            context = context[:profile.max_context_chars]

        best_score = max(sc.relevance_score for sc in selected)
        sources = self.rank_sources(query_tokens if source_tokens is None else source_tokens, corpus)

        logger.info(
            f"Retrieved {len(selected)} chunks (best score: {best_score:.3f}, "
            f"floor: {profile.relevance_floor}, sources: {len(sources)})"
        )

        return RetrievalResult(
            state=RetrievalState.OK,
            chunks=selected,
            context=context,
            best_score=best_score,
            sources=sources,
            query_tokens=query_tokens,
        )

    @staticmethod
    def rank_sources(query_tokens: Sequence[str], corpus: Corpus, limit: int = MAX_SOURCES) -> List[SourceScore]:
        """
        Rank completed documents by their best chunk score.

        Documents whose best score does not exceed SOURCE_RELEVANCE_FLOOR are
        dropped. Ties keep the corpus document order.
        """
        scores = []
        for doc in corpus.completed_documents:
            chunks = corpus.chunks_by_document.get(doc.document_id, [])
            max_score = max((score_chunk(query_tokens, chunk.text) for chunk in chunks), default=0.0)
            if max_score > SOURCE_RELEVANCE_FLOOR:
                scores.append(SourceScore(document=doc, score=max_score))

        scores.sort(key=lambda s: s.score, reverse=True)
        return scores[:limit]
