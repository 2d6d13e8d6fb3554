import logging
import json
import os
import sys
from datetime import datetime, timezone

from docsight.config import LOG_DIR


SERVICE_NAME = "docsight"

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno",
    "pathname", "filename", "module", "exc_info",
    "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread",
    "threadName", "processName", "process", "message",
    "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per log line.

    Custom fields passed with ``extra=`` are copied to the top level;
    a field that collides with a built-in key is kept as ``extra_<key>``.
    Values that are not JSON serializable are rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():

            if key.startswith("_") or key in _RESERVED_ATTRS:
                continue

            if key in log_data:
                log_data[f"extra_{key}"] = value
            else:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", log_dir: str = LOG_DIR, to_file: bool = True):

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    if to_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, "app.log"))
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # Silence noisy libs
    for noisy in ("urllib3", "httpx", "openai", "httpcore", "qdrant_client", "posthog"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_operation_start(logger, request_id, operation, **kwargs):

    logger.info(
        f"{operation}_started",
        extra={"request_id": request_id, "operation": operation, **kwargs},
    )


def log_operation_complete(logger, request_id, operation, latency_seconds, **kwargs):

    logger.info(
        f"{operation}_completed",
        extra={
            "request_id": request_id,
            "operation": operation,
            "latency_seconds": round(latency_seconds, 3),
            **kwargs,
        },
    )


def log_operation_error(logger, request_id, operation, error, **kwargs):

    logger.error(
        f"{operation}_failed",
        extra={
            "request_id": request_id,
            "operation": operation,
            "error": str(error),
            "error_type": type(error).__name__,
            **kwargs,
        },
        exc_info=True,
    )
