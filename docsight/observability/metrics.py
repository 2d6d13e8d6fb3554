import json
import logging
import os
import threading
from typing import Dict, List, Optional

from docsight.config import STORAGE_DIR


logger = logging.getLogger(__name__)

METRICS_FILENAME = "metrics.json"

# Bounded so the metrics file does not grow forever
MAX_LATENCY_SAMPLES = 5000


class MetricsTracker:
    """
    Request counters and latency history persisted to a JSON file.

    Counters are kept per endpoint as well as globally, so the front-end
    can show which operations (analysis, chat, mind maps) are slow.
    """

    def __init__(self, storage_dir: str = STORAGE_DIR):

        self._lock = threading.Lock()
        self._path = os.path.join(storage_dir, METRICS_FILENAME)

        self._metrics = self._empty()

        self._load()

    @staticmethod
    def _empty() -> Dict:

        return {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_latency": 0.0,
            "avg_latency": 0.0,
            "latencies": [],
            "endpoints": {},
        }

    def _load(self):

        if not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r") as f:
                data = json.load(f)

            metrics = self._empty()
            metrics.update(data)

            self._metrics = metrics

        except (OSError, ValueError) as e:

            logger.warning(
                "Metrics file unreadable, starting fresh",
                extra={"path": self._path, "error": str(e)},
            )

    def _save(self):

        try:

            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)

            with open(self._path, "w") as f:
                json.dump(self._metrics, f, indent=2)

        except OSError as e:

            logger.warning(
                "Metrics save failed",
                extra={"path": self._path, "error": str(e)},
            )

    def _endpoint(self, endpoint: Optional[str]) -> Optional[Dict]:

        if not endpoint:
            return None

        return self._metrics["endpoints"].setdefault(
            endpoint,
            {"requests": 0, "failures": 0, "total_latency": 0.0},
        )

    def record_success(self, latency: float, endpoint: Optional[str] = None):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["total_requests"]
            )

            latencies = self._metrics["latencies"]
            latencies.append(latency)
            del latencies[:-MAX_LATENCY_SAMPLES]

            stats = self._endpoint(endpoint)
            if stats is not None:
                stats["requests"] += 1
                stats["total_latency"] += latency

            self._save()

    def record_failure(self, endpoint: Optional[str] = None):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

            stats = self._endpoint(endpoint)
            if stats is not None:
                stats["requests"] += 1
                stats["failures"] += 1

            self._save()

    def get_latency_percentile(self, percentile: float) -> float:

        latencies: List[float] = self._metrics.get("latencies", [])

        if not latencies:
            return 0.0

        sorted_latencies = sorted(latencies)

        index = int(len(sorted_latencies) * percentile / 100)
        index = min(index, len(sorted_latencies) - 1)

        return sorted_latencies[index]

    def get_metrics(self) -> Dict:

        with self._lock:

            summary = {
                key: value
                for key, value in self._metrics.items()
                if key != "latencies"
            }

        summary["p50_latency"] = self.get_latency_percentile(50)
        summary["p95_latency"] = self.get_latency_percentile(95)

        return summary


metrics_tracker = MetricsTracker()
