# docsight/api/documents.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from docsight.api.dependencies import (
    ServiceContainer,
    get_request_id,
    get_services,
    require_document,
)
from docsight.memory.metadata import refresh_document_metadata
from docsight.models import (
    DeleteDocumentResponse,
    DocumentResponse,
    ListDocumentsResponse,
    SearchDocumentsResponse,
    StatsResponse,
    UpdateAnalysisRequest,
)
from docsight.observability.posthog_client import posthog_client
from docsight.storage.document_store import to_summary
from docsight.workflow.analyzer import apply_review_flags


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=ListDocumentsResponse)
def list_documents(services: ServiceContainer = Depends(get_services)):

    documents = [to_summary(r) for r in services.documents.list_documents()]

    return ListDocumentsResponse(documents=documents, total=len(documents))


@router.get("/search", response_model=SearchDocumentsResponse)
def search_documents(
    query: str = Query("", max_length=500),
    services: ServiceContainer = Depends(get_services),
):

    documents = [to_summary(r) for r in services.documents.search(query)]

    return SearchDocumentsResponse(documents=documents, total=len(documents), query=query)


@router.get("/stats", response_model=StatsResponse)
def document_stats(services: ServiceContainer = Depends(get_services)):

    return StatsResponse(stats=services.documents.stats())


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(document_id: str, services: ServiceContainer = Depends(get_services)):

    return DocumentResponse(document=require_document(services, document_id))


@router.put("/{document_id}", response_model=DocumentResponse)
def update_document_analysis(
    document_id: str,
    payload: UpdateAnalysisRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    record = require_document(services, document_id)

    record.analysis = apply_review_flags(payload.analysis)
    record.human_reviewed = payload.human_reviewed
    record.metadata = refresh_document_metadata(record.content, record.analysis, record.metadata)

    services.documents.save(record)

    posthog_client.track_review(
        distinct_id=get_request_id(request),
        document_id=document_id,
        action="analysis_edited",
    )

    return DocumentResponse(document=record, message="Document analysis updated successfully")


@router.delete("/{document_id}", response_model=DeleteDocumentResponse)
def delete_document(document_id: str, services: ServiceContainer = Depends(get_services)):

    record = require_document(services, document_id)

    if record.chunks_indexed:

        try:
            services.vector_store.delete_document(document_id)
        except Exception as e:
            logger.error(
                "Vector deletion failed",
                extra={"document_id": document_id, "error": str(e)},
            )
            raise HTTPException(status_code=502, detail=f"Vector deletion failed: {e}")

    services.documents.delete(document_id)

    return DeleteDocumentResponse(
        success=True,
        document_id=document_id,
        message="Deleted",
    )
