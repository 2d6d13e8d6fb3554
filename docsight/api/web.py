# docsight/api/web.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from docsight.api.dependencies import ServiceContainer, call_llm, get_services
from docsight.models import WebAnalyzeRequest
from docsight.web.scraper import WebAnalysisError, analyze_url
from docsight.workflow.ingestion import generate_document_id, ingest_text


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/web", tags=["web"])


@router.post("/analyze")
def analyze_web_page(payload: WebAnalyzeRequest, services: ServiceContainer = Depends(get_services)):

    try:

        result = analyze_url(payload.url, services.llm_client)

    except WebAnalysisError as e:

        logger.error("Web analysis failed", extra={"url": payload.url, "error": str(e)})

        raise HTTPException(status_code=502, detail=str(e))

    except Exception as e:

        logger.error("Web analysis LLM failure", extra={"url": payload.url, "error": str(e)})

        raise HTTPException(status_code=502, detail=f"Web analysis failed: {e}")

    if result["blocked"]:
        raise HTTPException(status_code=403, detail=result["summary"])

    document_id = None

    if payload.save_to_history:

        record = call_llm(
            "Document analysis",
            ingest_text,
            result["text_content"],
            result["title"],
            services,
            document_id=generate_document_id("web"),
            source_type="web",
            url=payload.url,
        )

        record.metadata = dict(record.metadata or {})
        record.metadata["web"] = {
            "source": result["source"],
            "summary": result["summary"],
            "image_analysis": result["image_analysis"],
            "scholarly_data": result["scholarly_data"],
            "images": result["images"],
        }

        services.documents.save(record)

        document_id = record.id

    return {"success": True, "document_id": document_id, "result": result}
