# docsight/api/dependencies.py

"""
Shared services for the API routers.

Stores are cheap and built eagerly. The LLM client, embedder and vector
store touch external services, so they are built on first use. Tests
replace the whole container through ``app.dependency_overrides``.
"""

import logging
import threading
from typing import Callable, Optional, TypeVar

from fastapi import HTTPException, Request

from docsight.config import QDRANT_URL, STORAGE_DIR
from docsight.llm.multi_model_client import MultiModelLLMClient
from docsight.memory.embedder import Embedder
from docsight.memory.qdrant_client import QdrantVectorDB
from docsight.memory.vector_store import VectorStore
from docsight.models import DocumentRecord
from docsight.storage.document_store import DocumentStore
from docsight.storage.mind_map_store import MindMapStore
from docsight.storage.question_queue import QuestionQueue


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceContainer:

    def __init__(
        self,
        storage_dir: str = STORAGE_DIR,
        llm_client=None,
        embedder=None,
        vector_store=None,
    ):

        self.storage_dir = storage_dir

        self.documents = DocumentStore(storage_dir)
        self.mind_maps = MindMapStore(storage_dir)
        self.question_queue = QuestionQueue(storage_dir)

        self._llm_client = llm_client
        self._embedder = embedder
        self._vector_store = vector_store

        self._lock = threading.Lock()

    @property
    def llm_client(self):

        with self._lock:
            if self._llm_client is None:
                self._llm_client = MultiModelLLMClient()

        return self._llm_client

    @property
    def embedder(self):

        with self._lock:
            if self._embedder is None:
                self._embedder = Embedder()

        return self._embedder

    @property
    def vector_store(self):

        embedder = self.embedder

        with self._lock:

            if self._vector_store is None:

                dim = embedder.get_dimension()

                qdrant = QdrantVectorDB(dim) if QDRANT_URL else None

                self._vector_store = VectorStore(dim, self.storage_dir, qdrant=qdrant)

        return self._vector_store


_services: Optional[ServiceContainer] = None
_services_lock = threading.Lock()


def get_services() -> ServiceContainer:

    global _services

    with _services_lock:
        if _services is None:
            _services = ServiceContainer()

    return _services


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def require_document(services: ServiceContainer, document_id: str) -> DocumentRecord:

    document = services.documents.get(document_id)

    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")

    return document


def call_llm(operation: str, fn: Callable[..., T], *args, **kwargs) -> T:
    """Run an LLM-backed call, turning provider failures into HTTP 502."""

    try:
        return fn(*args, **kwargs)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            "LLM operation failed",
            extra={"operation": operation, "error": str(e), "error_type": type(e).__name__},
        )
        raise HTTPException(status_code=502, detail=f"{operation} failed: {e}")
