# docsight/api/mindmap.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from docsight.api.dependencies import ServiceContainer, call_llm, get_request_id, get_services
from docsight.models import AnalyzeFactorRequest, CategorizeRequest
from docsight.observability.posthog_client import posthog_client
from docsight.workflow.mind_map import analyze_factor, categorize_and_generate


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mindmap", tags=["mindmap"])


@router.get("/documents")
def mind_map_documents(services: ServiceContainer = Depends(get_services)):
    """Documents available for categorization."""

    documents = [
        {
            "id": r.id,
            "title": r.filename,
            "summary": r.analysis.summary.text,
            "topics": r.analysis.topics.items,
            "has_concept_graph": r.concept_graph is not None,
            "created_at": r.created_at,
        }
        for r in services.documents.list_documents()
    ]

    return {"success": True, "documents": documents, "total": len(documents)}


@router.get("/saved")
def saved_mind_maps(services: ServiceContainer = Depends(get_services)):

    mind_maps = services.mind_maps.list()

    return {"success": True, "mind_maps": mind_maps, "total": len(mind_maps)}


@router.get("/saved/{mind_map_id}")
def saved_mind_map(mind_map_id: str, services: ServiceContainer = Depends(get_services)):

    mind_map = services.mind_maps.get(mind_map_id)

    if mind_map is None:
        raise HTTPException(status_code=404, detail="Mind map not found")

    return {"success": True, "mind_map": mind_map}


@router.post("/categorize")
def categorize_documents(
    payload: CategorizeRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    documents = []
    missing = []

    for document_id in payload.document_ids:

        record = services.documents.get(document_id)

        if record is None:
            missing.append(document_id)
        else:
            documents.append(record)

    if missing:
        raise HTTPException(status_code=404, detail=f"Documents not found: {', '.join(missing)}")

    result = call_llm(
        "Categorization",
        categorize_and_generate,
        documents,
        services.llm_client,
        services.mind_maps,
    )

    posthog_client.track_mind_map(
        distinct_id=get_request_id(request),
        mind_map_id=result["id"],
        documents=len(documents),
        concepts=result["metadata"]["total_concepts"],
    )

    return {"success": True, "mind_map": result}


@router.post("/analyze-factor")
def analyze_concept_factor(
    payload: AnalyzeFactorRequest,
    services: ServiceContainer = Depends(get_services),
):

    analysis = call_llm(
        "Factor analysis",
        analyze_factor,
        payload.concept,
        payload.factor_key,
        payload.factor_value,
        payload.category,
        payload.relationships,
        payload.all_concepts,
        services.llm_client,
    )

    return {"success": True, "factor": payload.factor_key, "analysis": analysis}
