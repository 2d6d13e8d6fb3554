# docsight/memory/embedder.py

"""
OpenAI embedding wrapper.

Output is always a float32 numpy array with L2-normalized rows, so inner
product in the vector index equals cosine similarity.
"""

import logging
from typing import List, Optional

import numpy as np
from openai import OpenAI

from docsight.config import (
    EMBEDDING_MODEL,
    MAX_CHUNKS_PER_DOCUMENT,
)

logger = logging.getLogger(__name__)

DEFAULT_EMBED_BATCH_SIZE = 32

MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


def normalize_rows(vectors: np.ndarray) -> np.ndarray:

    norms = np.linalg.norm(vectors, axis=1, keepdims=True)

    # Zero vectors stay zero instead of becoming NaN
    norms[norms == 0] = 1.0

    return vectors / norms


class Embedder:

    def __init__(self, model: str = EMBEDDING_MODEL, client: Optional[OpenAI] = None):

        if model not in MODEL_DIMENSIONS:
            raise ValueError(f"Unsupported embedding model: {model}")

        self.model = model
        self._dimension = MODEL_DIMENSIONS[model]

        # Deferred so the service can start without an API key
        self._client = client

        logger.info(
            "Embedder configured",
            extra={"model": model, "dimension": self._dimension},
        )

    @property
    def client(self) -> OpenAI:

        if self._client is None:
            self._client = OpenAI()

        return self._client

    def embed(
        self,
        texts: List[str],
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE
    ) -> np.ndarray:

        if not texts:

            logger.warning("Empty embedding request")

            return np.empty((0, self._dimension), dtype="float32")

        if len(texts) > MAX_CHUNKS_PER_DOCUMENT:

            raise ValueError(
                f"Chunk count exceeds MAX_CHUNKS_PER_DOCUMENT "
                f"({MAX_CHUNKS_PER_DOCUMENT})"
            )

        logger.info(
            "Embedding started",
            extra={"chunks": len(texts), "batch_size": batch_size},
        )

        batches = []

        try:

            for start in range(0, len(texts), batch_size):

                response = self.client.embeddings.create(
                    model=self.model,
                    input=texts[start:start + batch_size],
                )

                batches.append(
                    np.array([item.embedding for item in response.data], dtype="float32")
                )

        except Exception as e:

            logger.error("Embedding generation failed", extra={"error": str(e)})

            raise RuntimeError(f"Embedding generation failed: {e}")

        embeddings = normalize_rows(np.vstack(batches))

        logger.info(
            "Embedding completed",
            extra={"chunks": len(texts), "shape": embeddings.shape},
        )

        return embeddings

    def get_dimension(self) -> int:
        return self._dimension

    def health_check(self) -> dict:

        return {
            "model": self.model,
            "dimension": self._dimension,
            "provider": "openai",
        }
