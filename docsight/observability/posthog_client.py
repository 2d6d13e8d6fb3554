# docsight/observability/posthog_client.py

"""
PostHog product analytics.

Every public method is fire-and-forget: tracking failures are logged and
swallowed so analytics can never break an API request. Without
POSTHOG_API_KEY the client is a no-op.
"""

import os
import logging
from typing import Optional, Dict, Any

from posthog import Posthog


logger = logging.getLogger(__name__)


class PostHogClient:

    def __init__(self, api_key: Optional[str] = None, host: Optional[str] = None):

        self._enabled = False
        self._client: Optional[Posthog] = None

        api_key = api_key or os.getenv("POSTHOG_API_KEY")
        host = host or os.getenv("POSTHOG_HOST", "https://app.posthog.com")

        if not api_key:
            logger.info("PostHog disabled: POSTHOG_API_KEY not set")
            return

        try:

            self._client = Posthog(
                project_api_key=api_key,
                host=host,
                timeout=5,
                flush_interval=1,
            )

            self._enabled = True

            logger.info("PostHog client initialized", extra={"host": host})

        except Exception as e:

            logger.error(
                "PostHog initialization failed",
                extra={"error": str(e)},
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _track(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={"event": event, "error": str(e)},
            )

    def identify_request(self, distinct_id: str, properties: Optional[Dict[str, Any]] = None):

        if not self._enabled or not self._client:
            return

        try:

            self._client.identify(
                distinct_id=distinct_id,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning("PostHog identify failed", extra={"error": str(e)})

    def track_document_upload(
        self,
        distinct_id: str,
        document_id: str,
        filename: str,
        size: int,
        status: str,
        latency: float,
    ):

        self._track(
            distinct_id,
            "document_uploaded",
            {
                "document_id": document_id,
                "filename": filename,
                "size": size,
                "status": status,
                "latency_seconds": latency,
            },
        )

    def track_analysis(
        self,
        distinct_id: str,
        document_id: str,
        overall_confidence: float,
        needs_validation: bool,
    ):

        self._track(
            distinct_id,
            "document_analyzed",
            {
                "document_id": document_id,
                "overall_confidence": overall_confidence,
                "needs_validation": needs_validation,
            },
        )

    def track_question(
        self,
        distinct_id: str,
        document_id: Optional[str],
        question: str,
        latency: float,
        refused: bool,
    ):

        self._track(
            distinct_id,
            "question_asked",
            {
                "document_id": document_id,
                "question_length": len(question),
                "latency_seconds": latency,
                "refused": refused,
            },
        )

    def track_review(self, distinct_id: str, document_id: str, action: str):

        self._track(
            distinct_id,
            "analysis_reviewed",
            {"document_id": document_id, "action": action},
        )

    def track_mind_map(self, distinct_id: str, mind_map_id: str, documents: int, concepts: int):

        self._track(
            distinct_id,
            "mind_map_generated",
            {
                "mind_map_id": mind_map_id,
                "documents": documents,
                "concepts": concepts,
            },
        )

    def track_reasoning_chain(self, distinct_id: str, found: bool, length: int):

        self._track(
            distinct_id,
            "reasoning_chain_requested",
            {"found": found, "path_length": length},
        )

    def track_error(
        self,
        distinct_id: str,
        error_type: str,
        error_message: str,
        endpoint: str,
    ):

        self._track(
            distinct_id,
            "system_error",
            {
                "error_type": error_type,
                "error_message": error_message,
                "endpoint": endpoint,
            },
        )


posthog_client = PostHogClient()
