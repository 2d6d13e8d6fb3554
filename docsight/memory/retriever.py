# docsight/memory/retriever.py
import logging
from typing import Dict, List, Optional

from docsight.config import TOP_K

logger = logging.getLogger(__name__)


def retrieve(
    question: str,
    embedder,
    store,
    top_k: int = TOP_K,
    doc_id: Optional[str] = None
) -> List[Dict]:
    """
    Retrieve the top-k chunks most similar to ``question``.

    Results are dicts with ``text``, ``doc_id``, ``chunk_idx`` and
    ``similarity_score``, best first. ``doc_id`` restricts the search to
    one document.
    """

    query_embedding = embedder.embed([question])

    results = store.query(
        embedding=query_embedding,
        top_k=top_k,
        doc_id=doc_id
    )

    logger.info(
        "Retrieval complete",
        extra={
            "doc_id": doc_id,
            "chunks_retrieved": len(results),
            "top_score": results[0]["similarity_score"] if results else None,
        },
    )

    return results
