# docsight/api/health.py
import logging

from fastapi import APIRouter, Depends

from docsight.api.dependencies import ServiceContainer, get_services
from docsight.models import HealthResponse
from docsight.observability.metrics import metrics_tracker


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(services: ServiceContainer = Depends(get_services)):

    status = "healthy"

    try:

        stats = services.vector_store.get_stats()

    except Exception as e:

        logger.error("Vector store unavailable", extra={"error": str(e)})

        stats = {"total_chunks": 0, "total_vectors": 0, "backend": "unavailable"}
        status = "degraded"

    return HealthResponse(
        status=status,
        total_documents=len(services.documents.load_all()),
        total_chunks=stats["total_chunks"],
        total_vectors=stats["total_vectors"],
        llm=services.llm_client.get_usage_stats(),
        vector_backend=stats["backend"],
    )


@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
