# docsight/memory/chunker.py

import logging
from typing import List

from docsight.config import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    MAX_CHUNKS_PER_DOCUMENT,
    MAX_DOCUMENT_CHARACTERS,
)

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token count: one token is about 0.75 words."""

    if not text:
        return 0

    return round(len(text.split()) / 0.75)


def chunk_text(
    text: str,
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[str]:
    """
    Split text into overlapping word windows.

    Windows are ``size`` words long and start every ``size - overlap``
    words. Output is capped at MAX_CHUNKS_PER_DOCUMENT so a single huge
    document cannot exhaust the embedding budget.
    """

    if size <= 0:
        raise ValueError(f"Invalid chunk size: {size}")

    if overlap < 0 or overlap >= size:
        raise ValueError(
            f"Overlap must be in [0, size) (overlap={overlap}, size={size})"
        )

    if not text or not text.strip():
        logger.warning("Chunking skipped: empty text")
        return []

    if len(text) > MAX_DOCUMENT_CHARACTERS:
        logger.warning(
            "Text exceeds max character limit, truncating",
            extra={
                "original_length": len(text),
                "max_allowed": MAX_DOCUMENT_CHARACTERS,
            },
        )
        text = text[:MAX_DOCUMENT_CHARACTERS]

    words = text.split()

    step = size - overlap

    chunks = []

    for start in range(0, len(words), step):

        chunks.append(" ".join(words[start:start + size]))

        # The last window already reached the end of the text
        if start + size >= len(words):
            break

        if len(chunks) >= MAX_CHUNKS_PER_DOCUMENT:
            logger.warning(
                "Chunk limit reached, remaining text not indexed",
                extra={"max_chunks": MAX_CHUNKS_PER_DOCUMENT},
            )
            break

    logger.info(
        "Chunking completed",
        extra={
            "total_words": len(words),
            "chunk_size": size,
            "overlap": overlap,
            "chunks_created": len(chunks),
        },
    )

    return chunks
