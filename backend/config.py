"""Configuration management for the PDF Knowledge Base service."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Supabase (relational store + blob storage)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
DOCUMENTS_BUCKET = os.getenv("DOCUMENTS_BUCKET", "documents")

# Server Configuration
PORT = int(os.getenv("PORT", "8090"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS Configuration
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Generation backend
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama").lower()
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "localhost")
OLLAMA_PORT = int(os.getenv("OLLAMA_PORT", "11434"))
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2:3b")
OLLAMA_TIMEOUT = float(os.getenv("OLLAMA_TIMEOUT", "120"))
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
MAX_OUTPUT_TOKENS = int(os.getenv("MAX_OUTPUT_TOKENS", "500"))

# Response language ("en" is the reference language)
DEFAULT_LANGUAGE = "en"
APP_LANGUAGE = os.getenv("APP_LANGUAGE", DEFAULT_LANGUAGE).lower()

# Upload limits
MAX_UPLOAD_BYTES = 100 * 1024 * 1024

# Chunking Configuration
CHUNK_SIZE = 1000  # characters
CHUNK_OVERLAP = 200  # characters, approximated as CHUNK_OVERLAP // 10 words
MIN_CHUNK_LENGTH = 50  # characters

# Retrieval Configuration
CONTEXT_RELEVANCE_FLOOR = 0.2
SOURCE_RELEVANCE_FLOOR = 0.1
PRIMARY_TOP_N = 3
FALLBACK_TOP_N = 8
TRANSLATION_TOP_N = 3
MAX_SOURCES = 5
MAX_CONTEXT_CHARS = 12000
CHUNK_FETCH_LIMIT = 50
SOURCE_SEARCH_CHUNK_LIMIT = 100
DOCUMENT_FETCH_LIMIT = 50
CHUNK_FETCH_WORKERS = 4
SNIPPET_LENGTH = 200
SOURCE_SEARCH_PAGE_SIZE = 1000  # documents per page; source search scans every page

# Storage Configuration
STORAGE_LIST_PAGE_SIZE = 100  # Supabase Storage returns at most one page per list call
