import json
import logging
import os
import threading
from typing import Dict, List, Optional

import faiss
import numpy as np

from docsight.config import STORAGE_DIR, TOP_K, VECTOR_DIRNAME
from docsight.memory.qdrant_client import QdrantVectorDB


logger = logging.getLogger(__name__)


class VectorStore:
    """
    Chunk embeddings for every vectorized document.

    A FAISS inner-product index on disk is always maintained. When a
    Qdrant backend is supplied every write is mirrored to it and it
    answers queries; the FAISS index answers when Qdrant is absent or a
    Qdrant query fails.
    """

    _INDEX_FILENAME = "faiss.index"
    _METADATA_FILENAME = "metadata.json"

    def __init__(
        self,
        dim: int,
        storage_dir: str = STORAGE_DIR,
        qdrant: Optional[QdrantVectorDB] = None,
    ):

        if dim <= 0:
            raise ValueError("Embedding dimension must be positive")

        self._dim = dim
        self._chunks: List[Dict] = []
        self._doc_chunk_count: Dict[str, int] = {}
        self._index = None
        self._qdrant = qdrant

        self._lock = threading.Lock()

        directory = os.path.join(storage_dir, VECTOR_DIRNAME)
        os.makedirs(directory, exist_ok=True)

        self._index_path = os.path.join(directory, self._INDEX_FILENAME)
        self._metadata_path = os.path.join(directory, self._METADATA_FILENAME)

        self._load_from_disk()

        if self._index is None or self._index.d != dim:
            self._index = faiss.IndexFlatIP(dim)
            self._chunks = []
            self._doc_chunk_count = {}

        if not self._chunks and self._qdrant is not None:
            self._rebuild_from_qdrant()

        logger.info(
            "VectorStore initialized",
            extra={
                "dimension": dim,
                "chunks": len(self._chunks),
                "documents": len(self._doc_chunk_count),
                "backend": self.backend,
            },
        )

    @property
    def backend(self) -> str:
        return "qdrant" if self._qdrant is not None else "faiss"

    # ============================================================
    # PERSISTENCE
    # ============================================================

    def _load_from_disk(self):

        if os.path.exists(self._index_path):

            try:
                self._index = faiss.read_index(self._index_path)
            except RuntimeError as e:
                logger.warning("FAISS index unreadable", extra={"error": str(e)})
                self._index = None

        if os.path.exists(self._metadata_path):

            try:

                with open(self._metadata_path, "r") as f:
                    data = json.load(f)

                self._chunks = data.get("chunks", [])
                self._doc_chunk_count = data.get("doc_chunk_count", {})

            except (OSError, ValueError) as e:
                logger.warning("Vector metadata unreadable", extra={"error": str(e)})

        # Index and metadata must describe the same vectors
        if self._index is not None and self._index.ntotal != len(self._chunks):
            logger.warning(
                "FAISS index and metadata out of sync, resetting",
                extra={"vectors": self._index.ntotal, "chunks": len(self._chunks)},
            )
            self._index = None

    def _save_to_disk(self):

        faiss.write_index(self._index, self._index_path)

        with open(self._metadata_path, "w") as f:
            json.dump(
                {
                    "chunks": self._chunks,
                    "doc_chunk_count": self._doc_chunk_count,
                },
                f,
            )

    def _rebuild_from_qdrant(self):

        logger.info("Rebuilding local index from Qdrant")

        try:

            vectors = []

            for point in self._qdrant.scroll_all():

                vectors.append(np.array(point["vector"], dtype="float32"))

                self._chunks.append({
                    "text": point["text"],
                    "doc_id": point["doc_id"],
                    "chunk_idx": point["chunk_idx"],
                })

                self._doc_chunk_count[point["doc_id"]] = (
                    self._doc_chunk_count.get(point["doc_id"], 0) + 1
                )

            if vectors:
                self._index.add(self._normalize(np.vstack(vectors)))

            self._save_to_disk()

        except Exception as e:

            logger.error(
                "Qdrant rebuild failed",
                extra={"error": str(e)},
                exc_info=True,
            )

            self._index = faiss.IndexFlatIP(self._dim)
            self._chunks = []
            self._doc_chunk_count = {}

    # ============================================================
    # HELPERS
    # ============================================================

    def _ensure_numpy(self, embeddings) -> np.ndarray:

        if isinstance(embeddings, list):
            embeddings = np.array(embeddings, dtype="float32")

        if embeddings.ndim == 1:
            embeddings = embeddings.reshape(1, -1)

        return embeddings.astype("float32")

    def _normalize(self, vectors: np.ndarray) -> np.ndarray:

        norms = np.linalg.norm(vectors, axis=1, keepdims=True)

        return vectors / np.clip(norms, 1e-10, None)

    # ============================================================
    # WRITES
    # ============================================================

    def add(self, embeddings, chunks: List[str], doc_id: str):

        embeddings = self._normalize(self._ensure_numpy(embeddings))

        if len(embeddings) != len(chunks):
            raise ValueError(
                f"Embedding count ({len(embeddings)}) does not match chunk count ({len(chunks)})"
            )

        with self._lock:

            if self._qdrant is not None:
                self._qdrant.upsert(embeddings, chunks, doc_id)

            self._index.add(embeddings)

            for i, chunk in enumerate(chunks):
                self._chunks.append({"text": chunk, "doc_id": doc_id, "chunk_idx": i})

            self._doc_chunk_count[doc_id] = (
                self._doc_chunk_count.get(doc_id, 0) + len(chunks)
            )

            self._save_to_disk()

        logger.info(
            "Chunks indexed",
            extra={"doc_id": doc_id, "chunks": len(chunks), "backend": self.backend},
        )

    def delete_document(self, doc_id: str) -> bool:

        with self._lock:

            if doc_id not in self._doc_chunk_count:

                logger.warning(
                    "Delete requested for unknown document",
                    extra={"doc_id": doc_id},
                )

                return False

            if self._qdrant is not None:
                self._qdrant.delete_document(doc_id)

            keep = [i for i, chunk in enumerate(self._chunks) if chunk["doc_id"] != doc_id]

            new_index = faiss.IndexFlatIP(self._dim)

            if keep:
                new_index.add(np.vstack([self._index.reconstruct(i) for i in keep]))

            self._index = new_index
            self._chunks = [self._chunks[i] for i in keep]

            del self._doc_chunk_count[doc_id]

            self._save_to_disk()

        logger.info("Document vectors deleted", extra={"doc_id": doc_id})

        return True

    # ============================================================
    # READS
    # ============================================================

    def query(self, embedding, top_k: int = TOP_K, doc_id: Optional[str] = None) -> List[Dict]:

        embedding = self._normalize(self._ensure_numpy(embedding))

        if self._qdrant is not None:

            try:
                return self._qdrant.query(embedding[0], top_k, doc_id)
            except Exception as e:
                logger.warning(
                    "Qdrant query failed, using local index",
                    extra={"error": str(e)},
                )

        return self._query_local(embedding, top_k, doc_id)

    def _query_local(self, embedding: np.ndarray, top_k: int, doc_id: Optional[str]) -> List[Dict]:

        with self._lock:

            if self._index.ntotal == 0:
                return []

            # A filtered query has to see every vector to find the doc's best chunks
            k = self._index.ntotal if doc_id else min(top_k, self._index.ntotal)

            scores, indices = self._index.search(embedding, k)

            results = []

            for score, idx in zip(scores[0], indices[0]):

                if idx < 0:
                    continue

                chunk = self._chunks[idx]

                if doc_id and chunk["doc_id"] != doc_id:
                    continue

                results.append({
                    "text": chunk["text"],
                    "doc_id": chunk["doc_id"],
                    "chunk_idx": chunk["chunk_idx"],
                    "similarity_score": float(score),
                })

                if len(results) >= top_k:
                    break

        return results

    def has_document(self, doc_id: str) -> bool:
        return doc_id in self._doc_chunk_count

    def get_stats(self):

        return {
            "total_chunks": len(self._chunks),
            "total_vectors": self._index.ntotal,
            "documents": dict(self._doc_chunk_count),
            "backend": self.backend,
        }
