import logging
import uuid
from typing import Dict, Iterator, List, Optional

import numpy as np
from qdrant_client import QdrantClient
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from docsight.config import (
    QDRANT_API_KEY,
    QDRANT_COLLECTION,
    QDRANT_URL,
)

logger = logging.getLogger(__name__)


def _doc_filter(doc_id: str) -> Filter:

    return Filter(
        must=[FieldCondition(key="doc_id", match=MatchValue(value=doc_id))]
    )


class QdrantVectorDB:
    """
    Qdrant collection holding one point per chunk.

    Payload: ``text``, ``doc_id``, ``chunk_idx``. ``doc_id`` carries a
    keyword index so filtered queries and deletes stay cheap.
    """

    def __init__(
        self,
        dim: int,
        url: Optional[str] = QDRANT_URL,
        api_key: Optional[str] = QDRANT_API_KEY,
        collection: str = QDRANT_COLLECTION,
    ):

        self._dim = dim

        self._client = QdrantClient(
            url=url,
            api_key=api_key,
            timeout=60.0,
        )

        self._collection = collection

        self._ensure_collection()

        logger.info(
            "Qdrant client initialized",
            extra={"collection": collection, "dimension": dim},
        )

    def _ensure_collection(self):

        if not self._client.collection_exists(self._collection):

            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=VectorParams(
                    size=self._dim,
                    distance=Distance.COSINE,
                ),
            )

            logger.info(
                "Qdrant collection created",
                extra={"collection": self._collection},
            )

        try:

            self._client.create_payload_index(
                collection_name=self._collection,
                field_name="doc_id",
                field_schema=PayloadSchemaType.KEYWORD,
            )

        except Exception as e:
            # Raised when the index already exists
            logger.debug(
                "Payload index already exists or skipped",
                extra={"error": str(e)},
            )

    # ============================================================
    # WRITES
    # ============================================================

    def upsert(self, embeddings: np.ndarray, chunks: List[str], doc_id: str):

        points = [
            PointStruct(
                id=str(uuid.uuid4()),
                vector=vector.tolist(),
                payload={"text": chunk, "doc_id": doc_id, "chunk_idx": i},
            )
            for i, (vector, chunk) in enumerate(zip(embeddings, chunks))
        ]

        self._client.upsert(collection_name=self._collection, points=points)

    def delete_document(self, doc_id: str):

        self._client.delete(
            collection_name=self._collection,
            points_selector=FilterSelector(filter=_doc_filter(doc_id)),
        )

    # ============================================================
    # READS
    # ============================================================

    def query(self, vector: np.ndarray, top_k: int, doc_id: Optional[str] = None) -> List[Dict]:

        response = self._client.query_points(
            collection_name=self._collection,
            query=vector.tolist(),
            query_filter=_doc_filter(doc_id) if doc_id else None,
            limit=top_k,
            with_payload=True,
        )

        results = []

        for point in response.points:

            payload = point.payload or {}

            results.append({
                "text": payload.get("text"),
                "doc_id": payload.get("doc_id"),
                "chunk_idx": payload.get("chunk_idx"),
                "similarity_score": float(point.score),
            })

        return results

    def scroll_all(self, batch_size: int = 100) -> Iterator[Dict]:
        """Yield every stored point with its vector, for rebuilding a local index."""

        offset = None

        while True:

            points, offset = self._client.scroll(
                collection_name=self._collection,
                limit=batch_size,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )

            for point in points:

                payload = point.payload or {}

                if payload.get("text") is None or payload.get("doc_id") is None:
                    continue

                yield {
                    "vector": point.vector,
                    "text": payload["text"],
                    "doc_id": payload["doc_id"],
                    "chunk_idx": payload.get("chunk_idx"),
                }

            if offset is None or not points:
                break

    def health_check(self):

        return self._client.get_collections()
