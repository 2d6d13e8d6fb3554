# docsight/main.py
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import os
import time
import uuid

from docsight.api import ai, documents, health, metadata, mindmap, upload, validation, web
from docsight.api.dependencies import get_request_id
from docsight.config import API_PREFIX, APP_VERSION, CORS_ORIGINS, LOG_DIR, LOG_LEVEL
from docsight.observability.logger import setup_logging, get_logger
from docsight.observability.metrics import metrics_tracker
from docsight.observability.posthog_client import posthog_client

# Logging is configured before any router module logs
setup_logging(log_level=LOG_LEVEL, log_dir=LOG_DIR)
logger = get_logger(__name__)

ROUTERS = (health, upload, documents, ai, validation, mindmap, web, metadata)

app = FastAPI(
    title="DocSight API",
    description="Document understanding with human validation, concept graphs and reasoning chains",
    version=APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in ROUTERS:
    app.include_router(module.router, prefix=API_PREFIX)


def report_exception(request_id: str, path: str, exc: Exception, event: str, **fields):

    logger.error(
        event,
        extra={
            "request_id": request_id,
            "path": path,
            "error": str(exc),
            "error_type": type(exc).__name__,
            **fields,
        },
        exc_info=True,
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        endpoint=path,
    )


def route_endpoint(request: Request) -> str:
    """Metrics key for a request: the matched route template, not the concrete path."""

    route = request.scope.get("route")
    template = getattr(route, "path", None) or "unmatched"

    return f"{request.method} {template}"


@app.middleware("http")
async def request_context(request: Request, call_next):
    """
    Attach a request id, time the request and feed the per-endpoint metrics.

    5xx responses count as failures even when a handler produced them.
    """

    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    path = request.url.path

    posthog_client.identify_request(
        distinct_id=request_id,
        properties={"entry_point": path, "method": request.method},
    )

    logger.info(
        "request_started",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "client_ip": request.client.host if request.client else None,
        },
    )

    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        metrics_tracker.record_failure(route_endpoint(request))
        report_exception(
            request_id, path, e, "request_failed",
            latency_seconds=round(time.time() - start_time, 3),
        )
        raise

    latency = time.time() - start_time
    endpoint = route_endpoint(request)

    if response.status_code >= 500:
        metrics_tracker.record_failure(endpoint)
    else:
        metrics_tracker.record_success(latency, endpoint)

    logger.info(
        "request_completed",
        extra={
            "request_id": request_id,
            "endpoint": endpoint,
            "status_code": response.status_code,
            "latency_seconds": round(latency, 3),
        },
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():

    providers = [name for name in ("OPENAI_API_KEY", "GEMINI_API_KEY") if os.getenv(name)]

    logger.info(
        "application_startup",
        extra={
            "version": APP_VERSION,
            "configured_keys": providers,
            "analytics_enabled": posthog_client.enabled,
        },
    )

    if not providers:
        logger.warning(
            "missing_api_key",
            extra={
                "warning_detail":
                "Neither OPENAI_API_KEY nor GEMINI_API_KEY is set. "
                "Analysis falls back to the local model and embeddings are unavailable."
            },
        )


@app.on_event("shutdown")
async def shutdown_event():

    logger.info("application_shutdown")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):

    request_id = get_request_id(request)

    report_exception(request_id, request.url.path, exc, "unhandled_exception")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal error occurred. Please try again.",
            "request_id": request_id,
            "error_type": type(exc).__name__,
        },
    )


@app.get("/")
async def root():

    return {
        "message": "DocSight API",
        "version": APP_VERSION,
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
        "metrics": f"{API_PREFIX}/metrics",
        "routers": [module.router.prefix or "/" for module in ROUTERS],
    }
