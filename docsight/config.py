# docsight/config.py
"""
Configuration for the DocSight document intelligence service.

This file centralizes all tunable parameters for ingestion, analysis,
retrieval and storage. Deployment-specific values come from the
environment; everything else is a constant.
"""

import os


# ========== STORAGE ==========

STORAGE_DIR = os.getenv("DOCSIGHT_STORAGE_DIR", "storage")

DOCUMENTS_FILENAME = "documents.json"
QUESTION_QUEUE_FILENAME = "question_queue.json"
UPLOADS_DIRNAME = "uploads"
MIND_MAPS_DIRNAME = "mindmaps"
VECTOR_DIRNAME = "vectors"

LOG_DIR = os.getenv("DOCSIGHT_LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

APP_VERSION = "1.0.0"
API_PREFIX = "/api"

# Comma separated origin list
CORS_ORIGINS = [o.strip() for o in os.getenv("DOCSIGHT_CORS_ORIGINS", "*").split(",") if o.strip()]


# ========== DOCUMENT PROCESSING ==========

CHUNK_SIZE = 500  # words per chunk
CHUNK_OVERLAP = 100  # overlap between chunks to preserve context

MAX_FILE_SIZE_MB = 10
ALLOWED_FILE_EXTENSIONS = [".pdf", ".txt", ".md"]

MAX_DOCUMENT_CHARACTERS = 500_000
MAX_HTML_PAGES = 10
MAX_CHUNKS_PER_DOCUMENT = 1000

# Prefix lengths sent to the LLM for each analysis call
SUMMARY_INPUT_CHARS = 4000
TOPICS_INPUT_CHARS = 2000
ENTITIES_INPUT_CHARS = 2000
SENTIMENT_INPUT_CHARS = 1000

MAX_TEXT_EXCERPTS = 5

INGESTION_MAX_RETRIES = 3
INGESTION_RETRY_DELAY = 2


# ========== CONFIDENCE THRESHOLDS ==========

# Below these a field is flagged for human review
SUMMARY_CONFIDENCE_THRESHOLD = 0.8
TOPICS_CONFIDENCE_THRESHOLD = 0.7
ENTITIES_CONFIDENCE_THRESHOLD = 0.75
SENTIMENT_CONFIDENCE_THRESHOLD = 0.6
OVERALL_CONFIDENCE_THRESHOLD = 0.75


# ========== EMBEDDING CONFIGURATION ==========

EMBEDDING_MODEL = "text-embedding-3-small"  # 1536 dimensions
# Alternative: "text-embedding-3-large" (3072 dimensions, slower, better quality)


# ========== RETRIEVAL CONFIGURATION ==========

TOP_K = 5

SIMILARITY_THRESHOLD = 0.65
# - Below this threshold → refuse to answer
# - Above this threshold → generate answer


# ========== VECTOR DATABASE ==========

# Without QDRANT_URL the local FAISS index is the only vector store
QDRANT_URL = os.getenv("QDRANT_URL")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_COLLECTION = os.getenv("QDRANT_COLLECTION", "docsight_chunks")


# ========== LLM CONFIGURATION ==========

LLM_MODEL = "gpt-4o-mini"
GEMINI_MODEL = "gemini-1.5-flash"
LOCAL_MODEL = "google/flan-t5-base"

LLM_TEMPERATURE = 0.2
LLM_MAX_TOKENS = 800


# ========== CONCEPT GRAPHS ==========

MAX_CONCEPT_NODES = 300
CONCEPT_GRAPH_INPUT_CHARS = 12000
ASSISTANT_INPUT_CHARS = 8000

MIND_MAP_CATEGORIES = [
    "Cost Saving",
    "Efficiency Improvement",
    "Technology Advancement",
    "Employee Training",
    "Process Optimization",
    "Risk Management",
    "Customer Experience",
    "Innovation",
    "Sustainability",
    "Quality Improvement",
]


# ========== WEB ANALYSIS ==========

WEB_REQUEST_TIMEOUT = 30
WEB_PDF_MAX_CHARACTERS = 50_000
WEB_HTML_MAX_CHARACTERS = 30_000
WEB_MAX_IMAGES = 20

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. Per-field confidence thresholds (0.8 / 0.7 / 0.75 / 0.6):
   - Summaries are what users read first, so they get the strictest bar
   - Sentiment is coarse and rarely wrong in a harmful way, so it is loosest

2. Truncated LLM inputs (4000 / 2000 / 2000 / 1000 chars):
   - Keeps the four parallel analysis calls cheap and fast
   - Limitation: long documents are characterized by their opening

3. JSON file store (not a database):
   - Trade-off: zero setup, human-readable, easy to back up
   - Limitation: whole-file rewrites, single process only

4. FAISS locally, Qdrant when configured:
   - Trade-off: works offline and in tests without a vector service
   - Limitation: the local index is per-instance
"""
