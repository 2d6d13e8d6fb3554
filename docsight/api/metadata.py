# docsight/api/metadata.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from docsight.api.dependencies import ServiceContainer, get_services, require_document
from docsight.memory.metadata import get_topic_details, query_metadata_for_context
from docsight.models import DocumentRecord, MetadataQueryRequest


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metadata/documents", tags=["metadata"])


def require_metadata(record: DocumentRecord) -> Dict[str, Any]:

    if not record.metadata:
        raise HTTPException(status_code=404, detail="Metadata not found for this document")

    return record.metadata


@router.get("/{document_id}/metadata")
def document_metadata(document_id: str, services: ServiceContainer = Depends(get_services)):

    record = require_document(services, document_id)

    return {"success": True, "document_id": document_id, "metadata": require_metadata(record)}


@router.get("/{document_id}/tokens")
def document_tokens(document_id: str, services: ServiceContainer = Depends(get_services)):

    metadata = require_metadata(require_document(services, document_id))

    return {
        "success": True,
        "document_id": document_id,
        "tokens": metadata.get("tokens", {}),
        "tags": metadata.get("tags", []),
    }


@router.get("/{document_id}/structure")
def document_structure(document_id: str, services: ServiceContainer = Depends(get_services)):

    metadata = require_metadata(require_document(services, document_id))

    return {
        "success": True,
        "document_id": document_id,
        "structure": metadata.get("structure", {}),
        "content": {
            k: v for k, v in metadata.get("content", {}).items()
            if k in ("text_length", "word_count")
        },
    }


@router.get("/{document_id}/index")
def document_index(document_id: str, services: ServiceContainer = Depends(get_services)):

    metadata = require_metadata(require_document(services, document_id))

    return {"success": True, "document_id": document_id, "index": metadata.get("index", {})}


@router.post("/{document_id}/metadata/query")
def query_document_metadata(
    document_id: str,
    payload: MetadataQueryRequest,
    services: ServiceContainer = Depends(get_services),
):

    metadata = require_metadata(require_document(services, document_id))

    results = query_metadata_for_context(metadata, payload.query, payload.limit)

    return {"success": True, "document_id": document_id, "query": payload.query, "results": results}


@router.get("/{document_id}/topics/{topic}")
def topic_details(document_id: str, topic: str, services: ServiceContainer = Depends(get_services)):

    record = require_document(services, document_id)

    details = get_topic_details(require_metadata(record), topic, record.content)

    return {"success": True, "document_id": document_id, "details": details}
