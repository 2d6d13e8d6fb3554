# docsight/api/upload.py
import logging
import os
import time

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from docsight.api.dependencies import ServiceContainer, get_request_id, get_services
from docsight.config import ALLOWED_FILE_EXTENSIONS, MAX_FILE_SIZE_MB
from docsight.memory.loader import load_text
from docsight.models import UploadResponse
from docsight.observability.logger import (
    log_operation_complete,
    log_operation_error,
    log_operation_start,
)
from docsight.observability.posthog_client import posthog_client
from docsight.workflow.ingestion import generate_document_id, ingest_text, load_text_with_retry


logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])

REVIEW_STEPS = [
    "Review the analysis for accuracy",
    "Edit any incorrect information",
    "Answer the clarifying questions",
    "Approve the document for indexing",
]

PROCESSED_STEPS = [
    "Ask questions about the document",
    "Explore its concept graph",
]


def validate_file_size(content: bytes):

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {size_mb:.2f}MB (max {MAX_FILE_SIZE_MB}MB)",
        )


def validate_extension(filename: str) -> str:

    extension = os.path.splitext(filename or "")[1].lower()

    if extension not in ALLOWED_FILE_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{extension or filename}'. "
                   f"Allowed: {', '.join(ALLOWED_FILE_EXTENSIONS)}",
        )

    return extension


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    request: Request,
    file: UploadFile = File(None),
    url: str = Form(None),
    services: ServiceContainer = Depends(get_services),
):

    if not file and not url:
        raise HTTPException(status_code=400, detail="Provide file or URL")

    request_id = get_request_id(request)
    document_id = generate_document_id()
    start_time = time.time()

    log_operation_start(logger, request_id, "upload", source=url or file.filename)

    saved_path = None

    if url:

        url = url.strip()

        if not url.startswith(("http://", "https://")):
            raise HTTPException(status_code=400, detail="URL must start with http:// or https://")

        filename = url

        try:
            text = await run_in_threadpool(load_text_with_retry, url)
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"Could not load URL: {e}")

        size = len(text)

    else:

        validate_extension(file.filename)

        file_bytes = await file.read()

        validate_file_size(file_bytes)

        if not file_bytes:
            raise HTTPException(status_code=400, detail="Uploaded file is empty")

        filename = file.filename
        size = len(file_bytes)

        saved_path = services.documents.save_uploaded_file(document_id, filename, file_bytes)

        try:
            text = await run_in_threadpool(load_text, saved_path)
        except Exception as e:
            services.documents.delete_uploaded_files(document_id)
            raise HTTPException(status_code=400, detail=f"Could not read file: {e}")

    if not text or not text.strip():
        if saved_path:
            services.documents.delete_uploaded_files(document_id)
        raise HTTPException(status_code=400, detail="No text extracted")

    try:

        record = await run_in_threadpool(
            ingest_text,
            text,
            filename,
            services,
            document_id=document_id,
            size=size,
        )

    except Exception as e:

        log_operation_error(logger, request_id, "upload", e, document_id=document_id)

        if saved_path:
            services.documents.delete_uploaded_files(document_id)

        raise HTTPException(status_code=502, detail=f"Document analysis failed: {e}")

    requires_review = record.status == "pending_validation"

    latency = time.time() - start_time

    log_operation_complete(
        logger,
        request_id,
        "upload",
        latency,
        document_id=record.id,
        status=record.status,
    )

    posthog_client.track_document_upload(
        distinct_id=request_id,
        document_id=record.id,
        filename=filename,
        size=size,
        status=record.status,
        latency=latency,
    )

    posthog_client.track_analysis(
        distinct_id=request_id,
        document_id=record.id,
        overall_confidence=record.analysis.overall_confidence,
        needs_validation=requires_review,
    )

    return UploadResponse(
        status=record.status,
        requires_review=requires_review,
        document=record,
        next_steps=REVIEW_STEPS if requires_review else PROCESSED_STEPS,
    )
