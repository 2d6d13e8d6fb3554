# docsight/api/validation.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from docsight.api.dependencies import (
    ServiceContainer,
    get_request_id,
    get_services,
    require_document,
)
from docsight.memory.metadata import refresh_document_metadata
from docsight.models import (
    AnswerQueueRequest,
    PendingDocument,
    QueueQuestionsRequest,
    ValidationUpdateRequest,
)
from docsight.observability.posthog_client import posthog_client
from docsight.storage.document_store import utc_now
from docsight.workflow.analyzer import apply_review_flags, low_confidence_areas
from docsight.workflow.ingestion import vectorize_document


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/validation", tags=["validation"])

REVIEW_STATUSES = ("pending_validation", "user_validated")


@router.get("/pending")
def pending_documents(services: ServiceContainer = Depends(get_services)):

    documents = [
        PendingDocument(
            id=r.id,
            filename=r.filename,
            status=r.status,
            created_at=r.created_at,
            questions_count=len(r.questions),
            confidence_issues=low_confidence_areas(r.analysis),
        )
        for r in services.documents.list_documents()
        if r.status in REVIEW_STATUSES
    ]

    return {"success": True, "documents": documents, "total": len(documents)}


@router.get("/document/{document_id}")
def validation_document(document_id: str, services: ServiceContainer = Depends(get_services)):

    record = require_document(services, document_id)

    return {
        "success": True,
        "document": record,
        "confidence_issues": low_confidence_areas(record.analysis),
    }


@router.put("/document/{document_id}")
def submit_validation(
    document_id: str,
    payload: ValidationUpdateRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    record = require_document(services, document_id)

    if payload.summary is not None:
        record.analysis.summary = payload.summary
    if payload.topics is not None:
        record.analysis.topics = payload.topics
    if payload.entities is not None:
        record.analysis.entities = payload.entities
    if payload.sentiment is not None:
        record.analysis.sentiment = payload.sentiment

    record.analysis = apply_review_flags(record.analysis)

    record.question_answers = payload.question_answers
    record.user_comments = payload.user_comments
    record.status = "user_validated"
    record.validated_at = utc_now()
    record.human_reviewed = True
    record.metadata = refresh_document_metadata(record.content, record.analysis, record.metadata)

    services.documents.save(record)

    posthog_client.track_review(
        distinct_id=get_request_id(request),
        document_id=document_id,
        action="validated",
    )

    return {
        "success": True,
        "document": record,
        "message": "Validation saved. Approve the document to index it.",
    }


@router.post("/document/{document_id}/approve")
def approve_document(
    document_id: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    record = require_document(services, document_id)

    if record.status != "user_validated":
        raise HTTPException(
            status_code=400,
            detail=f"Document must be validated before approval (status: {record.status})",
        )

    try:

        vectorize_document(record, services.embedder, services.vector_store)

    except Exception as e:

        logger.error(
            "Vectorization failed on approval",
            extra={"document_id": document_id, "error": str(e)},
        )

        raise HTTPException(status_code=502, detail=f"Vectorization failed: {e}")

    record.status = "processed"

    services.documents.save(record)

    posthog_client.track_review(
        distinct_id=get_request_id(request),
        document_id=document_id,
        action="approved",
    )

    return {
        "success": True,
        "document_id": document_id,
        "status": record.status,
        "chunks_indexed": record.chunks_indexed,
    }


@router.post("/document/{document_id}/questions")
def queue_questions(
    document_id: str,
    payload: QueueQuestionsRequest,
    services: ServiceContainer = Depends(get_services),
):

    require_document(services, document_id)

    item = services.question_queue.add(document_id, payload.questions, payload.priority)

    return {"success": True, "item": item}


@router.get("/questions")
def pending_questions(services: ServiceContainer = Depends(get_services)):

    items = services.question_queue.pending()

    return {"success": True, "items": items, "total": len(items)}


@router.put("/questions/{queue_id}/answer")
def answer_questions(
    queue_id: str,
    payload: AnswerQueueRequest,
    services: ServiceContainer = Depends(get_services),
):

    item = services.question_queue.answer(queue_id, payload.answers)

    if item is None:
        raise HTTPException(status_code=404, detail="Queue item not found")

    return {"success": True, "item": item}
