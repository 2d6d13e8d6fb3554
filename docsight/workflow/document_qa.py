# docsight/workflow/document_qa.py
import logging
from typing import Callable, Dict, List, Optional

from docsight.config import SIMILARITY_THRESHOLD, TOP_K
from docsight.prompts.prompt_builder import build_document_prompt, build_summaries_prompt
from docsight.prompts.system_prompts import DOCUMENT_QA_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

ERROR_ANSWER = "I encountered an error while processing your question. Please try again."


def _score(value: float) -> float:
    # Inner products of normalized float32 vectors can drift just past [0, 1]
    return max(0.0, min(1.0, float(value)))


def answer_question(
    question: str,
    document_id: Optional[str],
    retrieve_fn: Callable,
    llm_client,
    top_k: int = TOP_K,
    extra_context: Optional[str] = None,
) -> Dict:
    """
    Answer a question using retrieval-augmented generation with confidence-based refusal.
    """
    context_chunks = retrieve_fn(question, top_k)

    if not context_chunks:
        return {
            "answer": "I don't have any information in the document to answer this question.",
            "document_id": document_id,
            "confidence_score": 0.0,
            "refused": True,
            "sources_used": 0,
            "reasoning": "No relevant context found in document"
        }

    top_similarity = _score(context_chunks[0].get("similarity_score", 0.0))

    if top_similarity < SIMILARITY_THRESHOLD:
        return {
            "answer": f"I don't have enough confident information in the document to answer this question. The most relevant content has only {top_similarity:.2%} confidence, which is below the {SIMILARITY_THRESHOLD:.0%} threshold.",
            "document_id": document_id,
            "confidence_score": top_similarity,
            "refused": True,
            "sources_used": len(context_chunks),
            "reasoning": f"Top similarity score ({top_similarity:.3f}) below threshold ({SIMILARITY_THRESHOLD})"
        }

    prompt = build_document_prompt(question, context_chunks, extra_context)

    try:
        answer = llm_client.generate(prompt, system_prompt=DOCUMENT_QA_SYSTEM_PROMPT)
    except Exception as e:
        logger.error("Answer generation failed", extra={"document_id": document_id, "error": str(e)})
        return {
            "answer": ERROR_ANSWER,
            "document_id": document_id,
            "confidence_score": top_similarity,
            "refused": True,
            "sources_used": len(context_chunks),
            "reasoning": f"LLM generation failed: {str(e)}"
        }

    return {
        "answer": answer,
        "document_id": document_id,
        "confidence_score": top_similarity,
        "refused": False,
        "sources_used": len(context_chunks),
        "reasoning": None
    }


def answer_from_summaries(
    question: str,
    documents: List[Dict],
    llm_client,
    document_id: Optional[str] = None,
) -> Dict:
    """
    Answer from document summaries and topics instead of indexed chunks.

    ``documents`` are dicts with ``filename``, ``summary``, ``topics`` and
    ``confidence``. The confidence score is the mean analysis confidence
    of the documents consulted.
    """
    if not documents:
        return {
            "answer": "There are no documents to answer from yet. Upload a document first.",
            "document_id": document_id,
            "confidence_score": 0.0,
            "refused": True,
            "sources_used": 0,
            "reasoning": "No documents available"
        }

    confidence = _score(
        sum(d.get("confidence", 0.0) for d in documents) / len(documents)
    )

    prompt = build_summaries_prompt(question, documents)

    try:
        answer = llm_client.generate(prompt, system_prompt=DOCUMENT_QA_SYSTEM_PROMPT)
    except Exception as e:
        logger.error("Summary answer generation failed", extra={"error": str(e)})
        return {
            "answer": ERROR_ANSWER,
            "document_id": document_id,
            "confidence_score": confidence,
            "refused": True,
            "sources_used": len(documents),
            "reasoning": f"LLM generation failed: {str(e)}"
        }

    return {
        "answer": answer,
        "document_id": document_id,
        "confidence_score": confidence,
        "refused": False,
        "sources_used": len(documents),
        "reasoning": "Answered from document summaries and topics"
    }
