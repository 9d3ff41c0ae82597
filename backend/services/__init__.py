"""Services for the PDF Knowledge Base."""
from .document_loader import DocumentLoader, ExtractionError
from .chunking_engine import ChunkingEngine, normalize_text
from .relevance_scorer import score_chunk, tokenize_question
from .document_store import DocumentStore
from .blob_store import BlobStore, BlobNotFoundError
from .retrieval_engine import RetrievalEngine, RetrievalProfile, RetrievalResult, RetrievalState
from .llm_client import GenerationBackend, GroqClient, LLMError, LLMClientError, create_generation_backend
from .ollama_client import OllamaClient
from .output_evaluator import OutputEvaluator
from .conversation_manager import SessionManager, SessionNotFoundError
from .rag_service import RAGService, IngestionError

__all__ = [
    'DocumentLoader', 'ExtractionError', 'ChunkingEngine', 'normalize_text', 'score_chunk',
    'tokenize_question', 'DocumentStore', 'BlobStore', 'BlobNotFoundError', 'RetrievalEngine',
    'RetrievalProfile', 'RetrievalResult', 'RetrievalState', 'GenerationBackend', 'GroqClient',
    'LLMError', 'LLMClientError', 'create_generation_backend', 'OllamaClient', 'OutputEvaluator',
    'SessionManager', 'SessionNotFoundError', 'RAGService', 'IngestionError'
]
