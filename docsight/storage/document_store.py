# docsight/storage/document_store.py

"""
Persistent document store.

All records live in one JSON array (``documents.json``). Every write
rewrites the whole file under a process-local lock; there is no
cross-process coordination.
"""

import json
import logging
import os
import threading
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

from docsight.config import DOCUMENTS_FILENAME, STORAGE_DIR, UPLOADS_DIRNAME
from docsight.models import DocumentRecord, DocumentStats, DocumentSummary, TopicCount


logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.utcnow().isoformat()


def _directory_size(path: str) -> Dict[str, int]:

    total = 0
    files = 0

    if not os.path.isdir(path):
        return {"files": 0, "bytes": 0}

    for entry in os.scandir(path):
        if entry.is_file():
            files += 1
            total += entry.stat().st_size

    return {"files": files, "bytes": total}


def to_summary(record: DocumentRecord) -> DocumentSummary:

    return DocumentSummary(
        id=record.id,
        filename=record.filename,
        size=record.size,
        upload_date=record.upload_date,
        source_type=record.source_type,
        status=record.status,
        human_reviewed=record.human_reviewed,
        summary=record.analysis.summary.text,
        topics=record.analysis.topics.items,
        overall_confidence=record.analysis.overall_confidence,
        chunks_indexed=record.chunks_indexed,
    )


class DocumentStore:

    def __init__(self, storage_dir: str = STORAGE_DIR):

        self.storage_dir = storage_dir
        self.path = os.path.join(storage_dir, DOCUMENTS_FILENAME)
        self.uploads_dir = os.path.join(storage_dir, UPLOADS_DIRNAME)

        self._lock = threading.Lock()

        os.makedirs(self.uploads_dir, exist_ok=True)

    # ============================================================
    # FILE IO
    # ============================================================

    def _read(self) -> List[dict]:

        if not os.path.exists(self.path):
            return []

        try:

            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)

        except (OSError, ValueError) as e:

            logger.error(
                "Document store unreadable, treating as empty",
                extra={"path": self.path, "error": str(e)},
            )

            return []

        if not isinstance(data, list):

            logger.error(
                "Document store has unexpected shape, treating as empty",
                extra={"path": self.path},
            )

            return []

        return data

    def _write(self, records: List[dict]):

        os.makedirs(self.storage_dir, exist_ok=True)

        tmp_path = f"{self.path}.tmp"

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2)

        os.replace(tmp_path, self.path)

    # ============================================================
    # READS
    # ============================================================

    def load_all(self) -> List[DocumentRecord]:

        records = []

        for raw in self._read():

            try:
                records.append(DocumentRecord(**raw))
            except (TypeError, ValueError) as e:
                logger.warning(
                    "Skipping malformed document record",
                    extra={"document_id": raw.get("id") if isinstance(raw, dict) else None,
                           "error": str(e)},
                )

        return records

    def list_documents(self) -> List[DocumentRecord]:
        """All documents, newest first."""

        return sorted(
            self.load_all(),
            key=lambda r: r.created_at or r.upload_date or "",
            reverse=True,
        )

    def get(self, document_id: str) -> Optional[DocumentRecord]:

        for record in self.load_all():
            if record.id == document_id:
                return record

        return None

    def search(self, query: str) -> List[DocumentRecord]:

        needle = (query or "").strip().lower()

        if not needle:
            return self.list_documents()

        matches = []

        for record in self.list_documents():

            haystacks = [record.filename, record.analysis.summary.text]
            haystacks.extend(record.analysis.topics.items)

            if any(needle in (text or "").lower() for text in haystacks):
                matches.append(record)

        return matches

    def stats(self) -> DocumentStats:

        records = self.load_all()

        topic_counts: Counter = Counter()

        for record in records:
            topic_counts.update(record.analysis.topics.items)

        confidence_total = 0.0

        for record in records:

            analysis = record.analysis

            confidence_total += (
                analysis.summary.confidence
                + analysis.topics.confidence
                + analysis.entities.confidence
                + analysis.sentiment.confidence
            ) / 4

        average_confidence = confidence_total / len(records) if records else 0.0

        documents_bytes = os.path.getsize(self.path) if os.path.exists(self.path) else 0

        return DocumentStats(
            total_documents=len(records),
            pending_validation=sum(1 for r in records if r.status == "pending_validation"),
            processed=sum(1 for r in records if r.status == "processed"),
            human_reviewed=sum(1 for r in records if r.human_reviewed),
            popular_topics=[
                TopicCount(topic=topic, count=count)
                for topic, count in topic_counts.most_common(10)
            ],
            average_confidence=round(average_confidence, 4),
            storage={
                "documents_file_bytes": documents_bytes,
                "uploads": _directory_size(self.uploads_dir),
                "location": os.path.abspath(self.storage_dir),
            },
        )

    # ============================================================
    # WRITES
    # ============================================================

    def save(self, record: DocumentRecord) -> DocumentRecord:
        """Insert or replace by id. Stamps ``updated_at``."""

        now = utc_now()

        record.updated_at = now

        if not record.created_at:
            record.created_at = now

        with self._lock:

            records = self._read()

            payload = record.dict()

            for index, existing in enumerate(records):
                if isinstance(existing, dict) and existing.get("id") == record.id:
                    records[index] = payload
                    break
            else:
                records.append(payload)

            self._write(records)

        logger.info(
            "Document saved",
            extra={"document_id": record.id, "status": record.status},
        )

        return record

    def delete(self, document_id: str) -> bool:

        with self._lock:

            records = self._read()

            remaining = [
                r for r in records
                if not (isinstance(r, dict) and r.get("id") == document_id)
            ]

            if len(remaining) == len(records):
                return False

            self._write(remaining)

        self.delete_uploaded_files(document_id)

        logger.info("Document deleted", extra={"document_id": document_id})

        return True

    # ============================================================
    # UPLOADED FILES
    # ============================================================

    def save_uploaded_file(self, document_id: str, filename: str, content: bytes) -> str:

        extension = os.path.splitext(filename or "")[1].lower()

        path = os.path.join(self.uploads_dir, f"{document_id}{extension}")

        with open(path, "wb") as buffer:
            buffer.write(content)

        return path

    def delete_uploaded_files(self, document_id: str):

        if not os.path.isdir(self.uploads_dir):
            return

        for entry in os.scandir(self.uploads_dir):

            if entry.is_file() and os.path.splitext(entry.name)[0] == document_id:

                try:
                    os.remove(entry.path)
                except OSError as e:
                    logger.warning(
                        "Uploaded file removal failed",
                        extra={"document_id": document_id, "error": str(e)},
                    )
