# tests/test_analyzer.py
import json

import pytest

from conftest import (
    CLARIFY_MARKER,
    ENTITIES_MARKER,
    SENTIMENT_MARKER,
    SOLAR_TEXT,
    SUMMARY_MARKER,
    TOPICS_MARKER,
    FakeLLM,
)
from docsight.llm.json_utils import clamp_confidence, parse_llm_list, parse_llm_object
from docsight.models import Analysis, Entity, EntitiesField, TopicsField
from docsight.workflow.analyzer import (
    analyze_document,
    apply_review_flags,
    generate_clarifying_questions,
    generate_text_excerpts,
    low_confidence_areas,
    parse_entities,
    parse_sentiment,
    parse_summary,
    parse_topics,
    requires_human_validation,
)


class TestFieldParsers:
    """Unparsable LLM output degrades to fixed low-confidence placeholders."""

    def test_summary_fallback_keeps_raw_text(self):
        field = parse_summary("Just prose, no JSON here.")

        assert field.text == "Just prose, no JSON here."
        assert field.confidence == 0.5

    def test_topics_fallback(self):
        field = parse_topics("nope")

        assert field.items == []
        assert field.confidence == 0.3

    def test_entities_fallback(self):
        field = parse_entities("nope")

        assert field.items == []
        assert field.confidence == 0.4

    def test_sentiment_fallback(self):
        field = parse_sentiment("nope")

        assert field.value == "neutral"
        assert field.confidence == 0.5
        assert field.indicators == ["Unable to determine clear sentiment"]

    def test_unknown_sentiment_becomes_neutral(self):
        field = parse_sentiment(json.dumps({"sentiment": "ecstatic", "confidence": 0.9}))

        assert field.value == "neutral"
        assert field.confidence == 0.9

    def test_entities_accept_plain_strings(self):
        field = parse_entities(json.dumps({"entities": ["Acme", {"name": ""}], "confidence": 0.8}))

        assert [e.name for e in field.items] == ["Acme"]
        assert field.items[0].type == "entity"
        assert field.confidence == 0.8

    def test_confidence_clamped(self):
        assert parse_summary(json.dumps({"summary": "x", "confidence": 7})).confidence == 0.07
        assert parse_summary(json.dumps({"summary": "x", "confidence": -1})).confidence == 0.0
        assert parse_summary(json.dumps({"summary": "x", "confidence": 500})).confidence == 1.0
        assert parse_summary(json.dumps({"summary": "x", "confidence": "high"})).confidence == 0.5


class TestJsonHelpers:

    def test_object_inside_prose(self):
        assert parse_llm_object('Sure! {"a": 1} Hope that helps.') == {"a": 1}

    def test_list_unwrapped_from_single_key_object(self):
        assert parse_llm_list('{"questions": ["Q1?", "Q2?"]}') == ["Q1?", "Q2?"]

    def test_non_json_returns_none(self):
        assert parse_llm_object("no json") is None
        assert parse_llm_list("") is None

    def test_clamp_nan_uses_default(self):
        assert clamp_confidence(float("nan"), 0.4) == 0.4
        assert clamp_confidence(85, 0.0) == pytest.approx(0.85)


class TestConfidenceFlags:

    def test_thresholds_per_field(self):
        analysis = Analysis()
        analysis.summary.confidence = 0.79
        analysis.topics.confidence = 0.7
        analysis.entities.confidence = 0.75
        analysis.sentiment.confidence = 0.59

        analysis = apply_review_flags(analysis)

        assert analysis.summary.needs_review is True
        assert analysis.topics.needs_review is False
        assert analysis.entities.needs_review is False
        assert analysis.sentiment.needs_review is True
        assert low_confidence_areas(analysis) == ["summary", "sentiment"]
        assert analysis.overall_confidence == pytest.approx((0.79 + 0.7 + 0.75 + 0.59) / 4)

    def test_validation_required_on_low_overall(self):
        analysis = Analysis()
        for field in (analysis.summary, analysis.topics, analysis.entities, analysis.sentiment):
            field.confidence = 0.9
        analysis = apply_review_flags(analysis)

        assert requires_human_validation(analysis, []) is False
        assert requires_human_validation(analysis, ["Anything?"]) is True

        analysis.overall_confidence = 0.7

        assert requires_human_validation(analysis, []) is True


class TestClarifyingQuestions:

    def test_no_questions_when_confident(self):
        analysis = Analysis()
        for field in (analysis.summary, analysis.topics, analysis.entities, analysis.sentiment):
            field.confidence = 0.95
        llm = FakeLLM()

        assert generate_clarifying_questions("text", analysis, llm) == []
        assert llm.calls == []

    def test_questions_capped_at_three(self):
        llm = FakeLLM({CLARIFY_MARKER: '["One?", "Two?", "Three?", "Four?"]'})

        questions = generate_clarifying_questions("text", Analysis(), llm)

        assert questions == ["One?", "Two?", "Three?"]

    def test_unparsable_questions_fall_back(self):
        llm = FakeLLM({CLARIFY_MARKER: "I have no questions."})

        questions = generate_clarifying_questions("text", Analysis(), llm)

        assert len(questions) == 1
        assert "summary, topics, entities, sentiment" in questions[0]


class TestAnalyzeDocument:

    def test_confident_analysis(self):
        llm = FakeLLM()

        analysis, questions = analyze_document(SOLAR_TEXT, llm)

        assert analysis.summary.text.startswith("Solar panels")
        assert analysis.topics.items == ["solar energy", "electricity"]
        assert analysis.entities.items[0].name == "Acme Solar"
        assert analysis.sentiment.value == "positive"
        assert questions == []
        assert requires_human_validation(analysis, questions) is False
        assert len(llm.calls) == 4

    def test_unparsable_fields_use_placeholders(self):
        llm = FakeLLM({
            SUMMARY_MARKER: "A plain summary.",
            TOPICS_MARKER: "garbage",
            ENTITIES_MARKER: "garbage",
            SENTIMENT_MARKER: "garbage",
            CLARIFY_MARKER: '["Is the summary right?", "Which topics matter?"]',
        })

        analysis, questions = analyze_document(SOLAR_TEXT, llm)

        assert analysis.summary.text == "A plain summary."
        assert analysis.summary.confidence == 0.5
        assert analysis.topics.confidence == 0.3
        assert analysis.entities.confidence == 0.4
        assert analysis.sentiment.confidence == 0.5
        assert analysis.summary.needs_review is True
        assert questions == ["Is the summary right?", "Which topics matter?"]
        assert requires_human_validation(analysis, questions) is True

    def test_provider_error_yields_placeholder(self):
        llm = FakeLLM({SUMMARY_MARKER: RuntimeError("provider down")})

        analysis, questions = analyze_document(SOLAR_TEXT, llm)

        assert analysis.summary.text == ""
        assert analysis.summary.confidence == 0.5
        assert analysis.topics.items == ["solar energy", "electricity"]
        assert questions


class TestTextExcerpts:

    def test_entities_then_topics(self):
        analysis = Analysis(
            entities=EntitiesField(items=[Entity(name="Acme Solar")]),
            topics=TopicsField(items=["electricity", "not in text"]),
        )

        excerpts = generate_text_excerpts(SOLAR_TEXT, analysis)

        assert [e.type for e in excerpts] == ["entity", "topic"]
        assert excerpts[0].highlight == "Acme Solar"
        assert excerpts[0].text.startswith("...")
        assert "electricity" in excerpts[1].text

    def test_capped_at_five(self):
        analysis = Analysis(
            topics=TopicsField(items=["solar", "panels", "sunlight", "electricity", "homes", "bills"]),
        )

        assert len(generate_text_excerpts(SOLAR_TEXT, analysis)) == 5

    def test_empty_names_ignored(self):
        analysis = Analysis(topics=TopicsField(items=[""]))

        assert generate_text_excerpts(SOLAR_TEXT, analysis) == []
