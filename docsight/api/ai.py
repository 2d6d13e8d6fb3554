# docsight/api/ai.py
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request

from docsight.api.dependencies import (
    ServiceContainer,
    call_llm,
    get_request_id,
    get_services,
    require_document,
)
from docsight.graph.concept_graph import (
    describe_chain,
    extract_concept_graph,
    find_reasoning_chain,
)
from docsight.memory.metadata import format_metadata_context, query_metadata_for_context
from docsight.memory.retriever import retrieve
from docsight.models import (
    AskRequest,
    AskResponse,
    ClarifyRequest,
    DocumentRecord,
    DocumentRequest,
    ExplainRequest,
    InsightsRequest,
    ReasoningChainRequest,
    ReasoningChainResponse,
    SectionExplainRequest,
    TextRequest,
)
from docsight.observability.posthog_client import posthog_client
from docsight.workflow import assistant
from docsight.workflow.document_qa import answer_from_summaries, answer_question
from docsight.workflow.mind_map import build_document_mind_map


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


def summary_context(record: DocumentRecord) -> dict:

    return {
        "filename": record.filename,
        "summary": record.analysis.summary.text,
        "topics": record.analysis.topics.items,
        "confidence": record.analysis.overall_confidence,
    }


def resolve_text(payload: TextRequest, services: ServiceContainer) -> str:

    if payload.text and payload.text.strip():
        return payload.text

    if payload.document_id:
        return require_document(services, payload.document_id).content

    raise HTTPException(status_code=400, detail="Provide text or document_id")


# ============================================================
# ASK QUESTION
# ============================================================

@router.post("/ask", response_model=AskResponse)
def ask_question(
    payload: AskRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    start_time = time.time()

    if payload.mode == "all":

        records = services.documents.list_documents()

        result = answer_from_summaries(
            payload.question,
            [summary_context(r) for r in records],
            services.llm_client,
        )

    else:

        if not payload.document_id:
            raise HTTPException(status_code=400, detail="document_id is required in single mode")

        record = require_document(services, payload.document_id)

        if record.chunks_indexed and services.vector_store.has_document(record.id):

            def retrieve_fn(question: str, top_k: int):

                return retrieve(
                    question=question,
                    embedder=services.embedder,
                    store=services.vector_store,
                    top_k=top_k,
                    doc_id=record.id,
                )

            extra_context = None

            if record.metadata:
                extra_context = format_metadata_context(
                    query_metadata_for_context(record.metadata, payload.question)
                )

            result = answer_question(
                question=payload.question,
                document_id=record.id,
                retrieve_fn=retrieve_fn,
                llm_client=services.llm_client,
                extra_context=extra_context,
            )

        else:

            result = answer_from_summaries(
                payload.question,
                [summary_context(record)],
                services.llm_client,
                document_id=record.id,
            )

    posthog_client.track_question(
        distinct_id=get_request_id(request),
        document_id=payload.document_id,
        question=payload.question,
        latency=time.time() - start_time,
        refused=result["refused"],
    )

    return AskResponse(**result)


# ============================================================
# ASSISTANT
# ============================================================

@router.post("/insights")
def insights(payload: InsightsRequest, services: ServiceContainer = Depends(get_services)):

    if payload.analysis is not None:
        analysis = payload.analysis
    elif payload.document_id:
        analysis = require_document(services, payload.document_id).analysis
    else:
        raise HTTPException(status_code=400, detail="Provide analysis or document_id")

    text = call_llm("Insight generation", assistant.generate_insights, analysis, services.llm_client)

    return {"success": True, "insights": text}


@router.post("/clarify")
def clarify(payload: ClarifyRequest, services: ServiceContainer = Depends(get_services)):

    text = call_llm(
        "Clarification", assistant.clarify_text, payload.text, payload.context, services.llm_client
    )

    return {"success": True, "clarification": text}


@router.post("/explain")
def explain(payload: ExplainRequest, services: ServiceContainer = Depends(get_services)):

    text = call_llm("Explanation", assistant.explain_analysis_section, payload.section, services.llm_client)

    return {"success": True, "explanation": text}


@router.post("/section-explain")
def section_explain(payload: SectionExplainRequest, services: ServiceContainer = Depends(get_services)):

    record = require_document(services, payload.document_id)

    text = call_llm(
        "Section explanation",
        assistant.explain_document_section,
        record.analysis.summary.text,
        payload.section_title,
        payload.section_text,
        services.llm_client,
    )

    return {"success": True, "section_title": payload.section_title, "explanation": text}


@router.post("/actionable-steps")
def actionable_steps(payload: TextRequest, services: ServiceContainer = Depends(get_services)):

    text = resolve_text(payload, services)

    steps = call_llm("Actionable steps", assistant.actionable_steps, text, services.llm_client)

    return {"success": True, "steps": steps}


@router.post("/mermaid-graph")
def mermaid_graph(payload: TextRequest, services: ServiceContainer = Depends(get_services)):

    text = resolve_text(payload, services)

    code = call_llm("Mermaid graph", assistant.mermaid_graph, text, services.llm_client)

    return {"success": True, "mermaid": code}


@router.post("/doe-factors")
def doe_factors(payload: TextRequest, services: ServiceContainer = Depends(get_services)):

    text = resolve_text(payload, services)

    factors = call_llm("DOE factor extraction", assistant.doe_factors, text, services.llm_client)

    return {"success": True, "factors": factors}


# ============================================================
# CONCEPT GRAPHS
# ============================================================

@router.post("/concept-graph")
def concept_graph(payload: TextRequest, services: ServiceContainer = Depends(get_services)):

    record = None

    if payload.text and payload.text.strip():
        text = payload.text
    elif payload.document_id:
        record = require_document(services, payload.document_id)
        text = record.content
    else:
        raise HTTPException(status_code=400, detail="Provide text or document_id")

    graph = call_llm("Concept extraction", extract_concept_graph, text, services.llm_client)

    if record is not None:
        record.concept_graph = graph
        services.documents.save(record)

    return {"success": True, "document_id": payload.document_id, "graph": graph}


@router.post("/mind-map")
def document_mind_map(
    payload: DocumentRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    record = require_document(services, payload.document_id)

    mind_map, graph = call_llm(
        "Mind map generation",
        build_document_mind_map,
        record,
        services.llm_client,
        services.mind_maps,
    )

    services.documents.save(record)

    posthog_client.track_mind_map(
        distinct_id=get_request_id(request),
        mind_map_id=mind_map["id"],
        documents=1,
        concepts=len(graph.nodes),
    )

    return {"success": True, "mind_map_id": mind_map["id"], "graph": graph}


@router.post("/reasoning-chain", response_model=ReasoningChainResponse)
def reasoning_chain(
    payload: ReasoningChainRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    if payload.graph is not None:
        graph = payload.graph
    elif payload.document_id:
        graph = require_document(services, payload.document_id).concept_graph
        if graph is None:
            raise HTTPException(
                status_code=400,
                detail="Document has no concept graph yet. Generate one first.",
            )
    else:
        raise HTTPException(status_code=400, detail="Provide graph or document_id")

    path = find_reasoning_chain(graph, payload.source, payload.target)

    posthog_client.track_reasoning_chain(
        distinct_id=get_request_id(request),
        found=bool(path),
        length=len(path),
    )

    if not path:
        return ReasoningChainResponse(
            found=False,
            path=[],
            steps=[],
            message=f"No path found between {payload.source} and {payload.target}",
        )

    if len(path) == 1:
        message = f"{path[0]} is both the source and the target"
    else:
        message = "Reasoning chain: " + " -> ".join(path)

    return ReasoningChainResponse(
        found=True,
        path=path,
        steps=describe_chain(graph, path),
        message=message,
    )


# ============================================================
# STATUS
# ============================================================

@router.get("/status")
def ai_status(services: ServiceContainer = Depends(get_services)):

    providers = services.llm_client.get_usage_stats()

    return {"success": True, "available": any(providers.values()), "providers": providers}


@router.get("/models")
def ai_models(services: ServiceContainer = Depends(get_services)):

    return {"success": True, "models": services.llm_client.list_models()}
