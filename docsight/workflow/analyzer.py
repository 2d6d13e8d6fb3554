# docsight/workflow/analyzer.py

"""
Document analysis with per-field confidence scoring.

Four independent LLM calls (summary, topics, entities, sentiment) run in
parallel. Each asks for JSON carrying its own confidence score. Output
that cannot be parsed, or a provider failure, degrades to a fixed
low-confidence placeholder so a human reviewer will look at it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Tuple

from docsight.config import (
    ENTITIES_CONFIDENCE_THRESHOLD,
    ENTITIES_INPUT_CHARS,
    MAX_TEXT_EXCERPTS,
    OVERALL_CONFIDENCE_THRESHOLD,
    SENTIMENT_CONFIDENCE_THRESHOLD,
    SENTIMENT_INPUT_CHARS,
    SUMMARY_CONFIDENCE_THRESHOLD,
    SUMMARY_INPUT_CHARS,
    TOPICS_CONFIDENCE_THRESHOLD,
    TOPICS_INPUT_CHARS,
)
from docsight.llm.json_utils import clamp_confidence, parse_llm_list, parse_llm_object
from docsight.models import (
    Analysis,
    EntitiesField,
    Entity,
    SentimentField,
    SummaryField,
    TextExcerpt,
    TopicsField,
)
from docsight.prompts.prompt_builder import (
    build_clarifying_questions_prompt,
    build_entities_prompt,
    build_sentiment_prompt,
    build_summary_prompt,
    build_topics_prompt,
)


logger = logging.getLogger(__name__)

SENTIMENT_VALUES = ("positive", "negative", "neutral")

SUMMARY_FALLBACK_CONFIDENCE = 0.5
TOPICS_FALLBACK_CONFIDENCE = 0.3
ENTITIES_FALLBACK_CONFIDENCE = 0.4
SENTIMENT_FALLBACK_CONFIDENCE = 0.5


# ============================================================
# FIELD PARSERS
# ============================================================

def parse_summary(response: str) -> SummaryField:

    result = parse_llm_object(response)

    if not result or not isinstance(result.get("summary"), str):
        return SummaryField(
            text=response or "",
            confidence=SUMMARY_FALLBACK_CONFIDENCE,
            reasoning="Could not parse confidence score",
        )

    return SummaryField(
        text=result["summary"].strip(),
        confidence=clamp_confidence(result.get("confidence"), SUMMARY_FALLBACK_CONFIDENCE),
        reasoning=result.get("reasoning"),
    )


def parse_topics(response: str) -> TopicsField:

    result = parse_llm_object(response)

    if not result or not isinstance(result.get("topics"), list):
        return TopicsField(
            items=[],
            confidence=TOPICS_FALLBACK_CONFIDENCE,
            reasoning="Could not extract topics reliably",
        )

    items = [str(t).strip() for t in result["topics"] if str(t).strip()]

    return TopicsField(
        items=items,
        confidence=clamp_confidence(result.get("confidence"), TOPICS_FALLBACK_CONFIDENCE),
        reasoning=result.get("reasoning"),
    )


def parse_entities(response: str) -> EntitiesField:

    result = parse_llm_object(response)

    if not result or not isinstance(result.get("entities"), list):
        return EntitiesField(
            items=[],
            confidence=ENTITIES_FALLBACK_CONFIDENCE,
            reasoning="Could not reliably identify entities",
        )

    items = []

    for raw in result["entities"]:

        if isinstance(raw, str):
            raw = {"name": raw}

        if not isinstance(raw, dict) or not str(raw.get("name") or "").strip():
            continue

        confidence = raw.get("confidence")

        items.append(
            Entity(
                name=str(raw["name"]).strip(),
                type=str(raw.get("type") or "entity"),
                confidence=None if confidence is None else clamp_confidence(confidence, 0.0),
            )
        )

    overall = result.get("overall_confidence", result.get("confidence"))

    return EntitiesField(
        items=items,
        confidence=clamp_confidence(overall, ENTITIES_FALLBACK_CONFIDENCE),
        reasoning="Based on context clarity and proper noun identification",
    )


def parse_sentiment(response: str) -> SentimentField:

    result = parse_llm_object(response)

    if not result or not isinstance(result.get("sentiment"), str):
        return SentimentField(
            value="neutral",
            confidence=SENTIMENT_FALLBACK_CONFIDENCE,
            indicators=["Unable to determine clear sentiment"],
        )

    value = result["sentiment"].strip().lower()

    if value not in SENTIMENT_VALUES:
        value = "neutral"

    indicators = result.get("indicators")

    if not isinstance(indicators, list):
        indicators = []

    return SentimentField(
        value=value,
        confidence=clamp_confidence(result.get("confidence"), SENTIMENT_FALLBACK_CONFIDENCE),
        indicators=[str(i) for i in indicators],
    )


def _failed_field(name: str):

    if name == "summary":
        return SummaryField(
            text="",
            confidence=SUMMARY_FALLBACK_CONFIDENCE,
            reasoning="Summary generation failed",
        )

    if name == "topics":
        return parse_topics("")

    if name == "entities":
        return parse_entities("")

    return parse_sentiment("")


# ============================================================
# CONFIDENCE
# ============================================================

def apply_review_flags(analysis: Analysis) -> Analysis:

    analysis.summary.needs_review = analysis.summary.confidence < SUMMARY_CONFIDENCE_THRESHOLD
    analysis.topics.needs_review = analysis.topics.confidence < TOPICS_CONFIDENCE_THRESHOLD
    analysis.entities.needs_review = analysis.entities.confidence < ENTITIES_CONFIDENCE_THRESHOLD
    analysis.sentiment.needs_review = analysis.sentiment.confidence < SENTIMENT_CONFIDENCE_THRESHOLD

    analysis.overall_confidence = round(
        (
            analysis.summary.confidence
            + analysis.topics.confidence
            + analysis.entities.confidence
            + analysis.sentiment.confidence
        ) / 4,
        4,
    )

    return analysis


def low_confidence_areas(analysis: Analysis) -> List[str]:

    areas = []

    if analysis.summary.confidence < SUMMARY_CONFIDENCE_THRESHOLD:
        areas.append("summary")
    if analysis.topics.confidence < TOPICS_CONFIDENCE_THRESHOLD:
        areas.append("topics")
    if analysis.entities.confidence < ENTITIES_CONFIDENCE_THRESHOLD:
        areas.append("entities")
    if analysis.sentiment.confidence < SENTIMENT_CONFIDENCE_THRESHOLD:
        areas.append("sentiment")

    return areas


def requires_human_validation(analysis: Analysis, questions: List[str]) -> bool:

    return (
        bool(low_confidence_areas(analysis))
        or analysis.overall_confidence < OVERALL_CONFIDENCE_THRESHOLD
        or len(questions) > 0
    )


# ============================================================
# CLARIFYING QUESTIONS
# ============================================================

def generate_clarifying_questions(text: str, analysis: Analysis, llm_client) -> List[str]:

    areas = low_confidence_areas(analysis)

    if not areas:
        return []

    fallback = [
        f"The analysis has uncertainty in: {', '.join(areas)}. Please review these areas."
    ]

    prompt = build_clarifying_questions_prompt(text[:1000], areas, analysis.dict())

    try:
        response = llm_client.generate(prompt, max_tokens=200)
    except Exception as e:
        logger.warning("Clarifying question generation failed", extra={"error": str(e)})
        return fallback

    questions = parse_llm_list(response)

    if not questions:
        return fallback

    cleaned = [str(q).strip() for q in questions if str(q).strip()]

    return cleaned[:3] or fallback


# ============================================================
# ANALYSIS
# ============================================================

def analyze_document(text: str, llm_client) -> Tuple[Analysis, List[str]]:
    """
    Run the four analysis calls in parallel, then ask for clarifying
    questions on low-confidence fields.

    Returns ``(analysis, questions)``.
    """

    calls: Dict[str, Tuple[str, Callable[[str], Any]]] = {
        "summary": (build_summary_prompt(text[:SUMMARY_INPUT_CHARS]), parse_summary),
        "topics": (build_topics_prompt(text[:TOPICS_INPUT_CHARS]), parse_topics),
        "entities": (build_entities_prompt(text[:ENTITIES_INPUT_CHARS]), parse_entities),
        "sentiment": (build_sentiment_prompt(text[:SENTIMENT_INPUT_CHARS]), parse_sentiment),
    }

    fields: Dict[str, Any] = {}

    with ThreadPoolExecutor(max_workers=len(calls)) as executor:

        futures = {
            name: executor.submit(llm_client.generate, prompt)
            for name, (prompt, _) in calls.items()
        }

        for name, future in futures.items():

            parser = calls[name][1]

            try:
                fields[name] = parser(future.result())
            except Exception as e:
                logger.warning(
                    "Analysis call failed, using placeholder",
                    extra={"field": name, "error": str(e)},
                )
                fields[name] = _failed_field(name)

    analysis = apply_review_flags(Analysis(**fields))

    questions = generate_clarifying_questions(text, analysis, llm_client)

    logger.info(
        "Document analysis complete",
        extra={
            "overall_confidence": analysis.overall_confidence,
            "questions": len(questions),
        },
    )

    return analysis, questions


# ============================================================
# EXCERPTS
# ============================================================

def _excerpt(text: str, needle: str, radius: int):

    if not needle:
        return None

    index = text.lower().find(needle.lower())

    if index == -1:
        return None

    start = max(0, index - radius)
    end = min(len(text), index + len(needle) + radius)

    return f"...{text[start:end]}..."


def generate_text_excerpts(text: str, analysis: Analysis) -> List[TextExcerpt]:
    """Context snippets around entities (+/-50 chars) then topics (+/-100)."""

    excerpts: List[TextExcerpt] = []

    for entity in analysis.entities.items:

        snippet = _excerpt(text, entity.name, 50)

        if snippet:
            excerpts.append(
                TextExcerpt(type="entity", label=entity.name, text=snippet, highlight=entity.name)
            )

    for topic in analysis.topics.items:

        snippet = _excerpt(text, topic, 100)

        if snippet:
            excerpts.append(
                TextExcerpt(type="topic", label=topic, text=snippet, highlight=topic)
            )

    return excerpts[:MAX_TEXT_EXCERPTS]
