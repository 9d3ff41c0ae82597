"""Main entry point for the PDF Knowledge Base API."""
import logging
from typing import List

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from config import PORT, LOG_LEVEL, CORS_ORIGINS, LLM_PROVIDER, DOCUMENTS_BUCKET, MAX_UPLOAD_BYTES
from logger import setup_logging
from models.api import (
    QueryRequest,
    QueryResponse,
    ChatRequest,
    ChatResponse,
    UploadResult,
    UploadResponse,
    SourceSearchRequest,
    SourceSearchResponse,
    Source,
    StatsResponse,
    SessionCreateRequest,
    SessionResponse,
    MessageResponse,
    HealthResponse,
)
from models.conversation import ChatSession
from models.query import QueryResult
from services.blob_store import BlobStore, BlobNotFoundError
from services.conversation_manager import SessionManager, SessionNotFoundError
from services.document_store import DocumentStore
from services.llm_client import GenerationBackend, LLMClientError, create_generation_backend
from services.rag_service import RAGService, IngestionError

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="PDF Knowledge Base",
    description="Question answering grounded in uploaded PDF documents",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
generation_backend: GenerationBackend = None
document_store: DocumentStore = None
blob_store: BlobStore = None
session_manager: SessionManager = None
rag_service: RAGService = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global generation_backend, document_store, blob_store, session_manager, rag_service

    setup_logging(LOG_LEVEL)
    logger.info("Initializing PDF Knowledge Base services...")

    try:
        generation_backend = create_generation_backend(LLM_PROVIDER)
        logger.info(f"Initialized generation backend: {LLM_PROVIDER}")

        document_store = DocumentStore()
        blob_store = BlobStore(client=document_store.client)
        session_manager = SessionManager(client=document_store.client)

        rag_service = RAGService(
            backend=generation_backend,
            document_store=document_store,
            blob_store=blob_store
        )
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _llm_error_response(e: LLMClientError) -> HTTPException:
    logger.error(f"LLM client error: {e.error.message}")
    return HTTPException(
        status_code=503,
        detail={
            "error": {
                "code": e.error.code,
                "message": e.error.message,
                "details": e.error.details
            }
        }
    )


def _to_query_response(result: QueryResult) -> QueryResponse:
    return QueryResponse(
        answer=result.answer,
        sources=result.sources,
        confidence=result.confidence,
        context=result.context
    )


def _to_session_response(session: ChatSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        title=session.title,
        created_at=session.created_at.isoformat(),
        updated_at=session.updated_at.isoformat(),
        messages=[
            MessageResponse(
                role=m.role,
                content=m.content,
                sources=m.sources,
                confidence=m.confidence,
                created_at=m.created_at.isoformat() if m.created_at else None
            )
            for m in session.messages
        ]
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "PDF Knowledge Base API"}


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Detailed health check of the stores and the generation backend."""
    store_health = "healthy" if document_store.health_check() else "unhealthy"
    blob_health = "healthy" if blob_store.health_check(DOCUMENTS_BUCKET) else "unhealthy"
    llm_health = "healthy" if generation_backend.health_check() else "unhealthy"

    overall = "healthy" if store_health == "healthy" and blob_health == "healthy" else "degraded"
    return HealthResponse(
        status=overall,
        services={
            "database": store_health,
            "storage": blob_health,
            "llm": {"provider": LLM_PROVIDER, "model": generation_backend.model_name, "status": llm_health}
        }
    )


@app.post("/chat", response_model=ChatResponse)
def chat_endpoint(request: ChatRequest) -> ChatResponse:
    """Send a raw message to the generation backend."""
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    try:
        text = generation_backend.generate(request.message)
    except LLMClientError as e:
        raise _llm_error_response(e)

    return ChatResponse(response=text, model=generation_backend.model_name)


@app.post("/upload", response_model=UploadResponse)
def upload_endpoint(files: List[UploadFile] = File(...)) -> UploadResponse:
    """
    Upload and ingest PDF files.

    Each file is validated and ingested independently; failures are reported
    per file and do not abort the batch.
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")

    logger.info(f"Processing {len(files)} files")
    results: List[UploadResult] = []

    for upload in files:
        filename = upload.filename or ""

        if not filename.lower().endswith(".pdf"):
            results.append(UploadResult(filename=filename, status="error", message="Only PDF files are supported"))
            continue

        too_large = upload.size is not None and upload.size > MAX_UPLOAD_BYTES
        # Size may be unknown; never read more than one byte past the limit
        data = b"" if too_large else upload.file.read(MAX_UPLOAD_BYTES + 1)
        if too_large or len(data) > MAX_UPLOAD_BYTES:
            results.append(UploadResult(filename=filename, status="error", message="File too large (max 100MB)"))
            continue

        try:
            document = rag_service.ingest(filename, data)
        except IngestionError as e:
            logger.error(f"Failed to process PDF {filename}: {e}")
            results.append(UploadResult(
                filename=filename, status="error", message=str(e), document_id=e.document_id
            ))
            continue

        results.append(UploadResult(
            filename=filename,
            status="success",
            message="PDF processed successfully",
            document_id=document.document_id
        ))

    return UploadResponse(message="Upload processing completed", results=results)


@app.post("/query", response_model=QueryResponse)
def query_endpoint(request: QueryRequest) -> QueryResponse:
    """
    Answer a question grounded in the uploaded documents.

    Raises:
        HTTPException: 400 for an empty question, 503 for generation
            backend failures, 500 for anything else
    """
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")

    try:
        result = rag_service.query(request.question)
    except LLMClientError as e:
        raise _llm_error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error processing query: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to process query: {str(e)}")

    return _to_query_response(result)


@app.get("/stats", response_model=StatsResponse)
def stats_endpoint() -> StatsResponse:
    """Document and chunk counts."""
    try:
        return StatsResponse(**rag_service.get_stats())
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=f"Failed to get document stats: {str(e)}")


@app.post("/search-sources", response_model=SourceSearchResponse)
def search_sources_endpoint(request: SourceSearchRequest) -> SourceSearchResponse:
    """Find which documents contain a topic."""
    if not request.query or not request.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")

    try:
        matches = rag_service.search_sources(request.query)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=f"Failed to get documents: {str(e)}")

    sources = [Source(**vars(match)) for match in matches]
    return SourceSearchResponse(query=request.query, sources=sources, count=len(sources))


@app.post("/sessions", response_model=SessionResponse)
def create_session_endpoint(request: SessionCreateRequest) -> SessionResponse:
    """Create a chat session."""
    try:
        return _to_session_response(session_manager.create_session(request.title))
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/sessions", response_model=List[SessionResponse])
def list_sessions_endpoint(limit: int = 50, offset: int = 0) -> List[SessionResponse]:
    """List chat sessions."""
    try:
        return [_to_session_response(s) for s in session_manager.list_sessions(limit, offset)]
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session_endpoint(session_id: str) -> SessionResponse:
    """Get a chat session with its transcript."""
    try:
        return _to_session_response(session_manager.get_session(session_id))
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


@app.put("/sessions/{session_id}")
def rename_session_endpoint(session_id: str, request: SessionCreateRequest):
    """Rename a chat session."""
    try:
        session_manager.rename_session(session_id, request.title)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session updated"}


@app.delete("/sessions/{session_id}")
def delete_session_endpoint(session_id: str):
    """Delete a chat session and its messages."""
    try:
        session_manager.delete_session(session_id)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": "Session deleted"}


@app.post("/sessions/{session_id}/chat", response_model=QueryResponse)
def session_chat_endpoint(session_id: str, request: ChatRequest) -> QueryResponse:
    """Answer a question inside a session, recording both sides of the exchange."""
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    try:
        session_manager.add_message(session_id, "user", request.message)
    except RuntimeError as e:
        logger.warning(f"Failed to store user message: {e}")

    try:
        result = rag_service.query(request.message)
    except LLMClientError as e:
        raise _llm_error_response(e)
    except Exception as e:
        logger.error(f"Unexpected error processing session query: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to process query: {str(e)}")

    try:
        session_manager.add_message(session_id, "assistant", result.answer, result.sources, result.confidence)
    except RuntimeError as e:
        logger.warning(f"Failed to store assistant message: {e}")

    return _to_query_response(result)


@app.delete("/flush")
def flush_endpoint():
    """Delete all documents, chunks, queries, sessions and stored files."""
    try:
        session_manager.flush()
        rag_service.flush()
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=f"Failed to flush data: {str(e)}")
    return {"message": "All data has been successfully cleared"}


@app.get("/files/{document_id}/{filename}")
def download_file_endpoint(document_id: str, filename: str) -> Response:
    """Download an uploaded PDF."""
    try:
        data = rag_service.get_file(document_id, filename)
    except BlobNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")

    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting PDF Knowledge Base API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
