# docsight/storage/question_queue.py

import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from docsight.config import QUESTION_QUEUE_FILENAME, STORAGE_DIR
from docsight.models import QueueItem


logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}


class QuestionQueue:
    """Reviewer questions waiting for answers, persisted as a JSON array."""

    def __init__(self, storage_dir: str = STORAGE_DIR):

        self.storage_dir = storage_dir
        self.path = os.path.join(storage_dir, QUESTION_QUEUE_FILENAME)

        self._lock = threading.Lock()

    def _read(self) -> List[QueueItem]:

        if not os.path.exists(self.path):
            return []

        try:

            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)

        except (OSError, ValueError) as e:

            logger.error(
                "Question queue unreadable, treating as empty",
                extra={"path": self.path, "error": str(e)},
            )

            return []

        if not isinstance(data, list):

            logger.error(
                "Question queue has unexpected shape, treating as empty",
                extra={"path": self.path},
            )

            return []

        items = []

        for raw in data:

            try:
                items.append(QueueItem(**raw))
            except (TypeError, ValueError) as e:
                logger.warning(
                    "Skipping malformed queue item",
                    extra={"queue_id": raw.get("id") if isinstance(raw, dict) else None,
                           "error": str(e)},
                )

        return items

    def _write(self, items: List[QueueItem]):

        os.makedirs(self.storage_dir, exist_ok=True)

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([item.dict() for item in items], f, indent=2)

    def add(self, document_id: str, questions: List[str], priority: str = "medium") -> QueueItem:

        item = QueueItem(
            id=f"q_{uuid.uuid4().hex[:12]}",
            document_id=document_id,
            questions=questions,
            priority=priority,
            created_at=datetime.utcnow().isoformat(),
        )

        with self._lock:

            items = self._read()
            items.append(item)

            self._write(items)

        logger.info(
            "Questions queued",
            extra={"queue_id": item.id, "document_id": document_id, "priority": priority},
        )

        return item

    def pending(self) -> List[QueueItem]:
        """Pending items, highest priority first, newest first within a priority."""

        items = [item for item in self._read() if item.status == "pending"]

        items.sort(key=lambda item: item.created_at, reverse=True)
        items.sort(key=lambda item: PRIORITY_ORDER.get(item.priority, 0), reverse=True)

        return items

    def answer(self, queue_id: str, answers: Dict[str, str]) -> Optional[QueueItem]:

        with self._lock:

            items = self._read()

            for item in items:

                if item.id != queue_id:
                    continue

                item.answers = answers
                item.status = "answered"
                item.answered_at = datetime.utcnow().isoformat()

                self._write(items)

                logger.info("Queue item answered", extra={"queue_id": queue_id})

                return item

        return None
