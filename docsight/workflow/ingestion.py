# docsight/workflow/ingestion.py

"""
Document ingestion.

loader → analyzer → (review gate) → chunker → embedder → vector_store

A document whose analysis is confident enough is vectorized straight
away and marked ``processed``. Anything else is stored as
``pending_validation`` and waits for a reviewer to approve it.
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Optional

from docsight.config import INGESTION_MAX_RETRIES, INGESTION_RETRY_DELAY
from docsight.memory.chunker import chunk_text
from docsight.memory.loader import load_text
from docsight.memory.metadata import extract_document_metadata
from docsight.models import DocumentRecord
from docsight.workflow.analyzer import (
    analyze_document,
    generate_text_excerpts,
    requires_human_validation,
)


logger = logging.getLogger(__name__)


def generate_document_id(prefix: str = "doc") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def load_text_with_retry(source: str) -> str:

    last_error: Optional[Exception] = None

    for attempt in range(1, INGESTION_MAX_RETRIES + 1):

        try:

            logger.info(
                "Loading document",
                extra={"source": source, "attempt": attempt},
            )

            text = load_text(source)

            if text:
                return text

            last_error = ValueError(f"No text extracted from {source}")

        except Exception as e:

            last_error = e

            logger.warning(
                "Document load failed",
                extra={"source": source, "attempt": attempt, "error": str(e)},
            )

        if attempt < INGESTION_MAX_RETRIES:
            time.sleep(INGESTION_RETRY_DELAY)

    raise last_error


def vectorize_document(record: DocumentRecord, embedder, vector_store) -> int:
    """Chunk, embed and index ``record.content``; replaces any earlier vectors."""

    chunks = chunk_text(record.content)

    if not chunks:
        record.chunks_indexed = 0
        return 0

    embeddings = embedder.embed(chunks)

    if vector_store.has_document(record.id):
        vector_store.delete_document(record.id)

    vector_store.add(embeddings=embeddings, chunks=chunks, doc_id=record.id)

    record.chunks_indexed = len(chunks)

    return len(chunks)


def ingest_text(
    text: str,
    filename: str,
    services,
    document_id: Optional[str] = None,
    size: Optional[int] = None,
    source_type: str = "upload",
    url: Optional[str] = None,
) -> DocumentRecord:
    """
    Analyze ``text`` and persist it as a new document record.

    Vectorization failures on the auto-approve path are logged and leave
    ``chunks_indexed`` at 0; chat then falls back to the summary.
    """

    now = datetime.utcnow().isoformat()

    analysis, questions = analyze_document(text, services.llm_client)

    needs_validation = requires_human_validation(analysis, questions)

    record = DocumentRecord(
        id=document_id or generate_document_id(),
        filename=filename,
        size=len(text) if size is None else size,
        upload_date=now,
        source_type=source_type,
        url=url,
        status="pending_validation" if needs_validation else "processed",
        analysis=analysis,
        questions=questions,
        text_excerpts=generate_text_excerpts(text, analysis),
        content=text,
        metadata=extract_document_metadata(text, analysis),
        created_at=now,
    )

    if not needs_validation:

        try:

            vectorize_document(record, services.embedder, services.vector_store)

        except Exception as e:

            logger.error(
                "Vectorization failed, document kept without index",
                extra={"document_id": record.id, "error": str(e)},
            )

    services.documents.save(record)

    logger.info(
        "Document ingestion complete",
        extra={
            "document_id": record.id,
            "status": record.status,
            "chunks": record.chunks_indexed,
        },
    )

    return record
