# tests/test_metadata.py
import pytest

from docsight.memory.metadata import (
    count_mentions,
    extract_document_metadata,
    format_metadata_context,
    get_topic_details,
    query_metadata_for_context,
    refresh_document_metadata,
)
from docsight.models import Analysis, Entity, EntitiesField, SentimentField, TopicsField


TEXT = (
    "OVERVIEW\n"
    "Solar panels convert sunlight. Solar is clean.\n"
    "\n"
    "Costs:\n"
    "Panels cost less every year.\n"
)


@pytest.fixture
def analysis():
    return Analysis(
        topics=TopicsField(items=["solar", "costs"]),
        entities=EntitiesField(items=[Entity(name="Acme", type="Organization")]),
        sentiment=SentimentField(value="positive"),
    )


@pytest.fixture
def metadata(analysis):
    return extract_document_metadata(TEXT, analysis)


class TestExtraction:

    def test_content_statistics(self, metadata):
        content = metadata["content"]

        assert content["word_count"] == len(TEXT.split())
        assert len(content["sentences"]) == 3
        assert len(content["paragraphs"]) == 2

    def test_sections_and_headings(self, metadata):
        structure = metadata["structure"]

        assert [s["title"] for s in structure["sections"]] == ["OVERVIEW", "Costs:"]
        assert structure["sections"][1]["content"] == "Panels cost less every year."
        assert [(h["text"], h["level"]) for h in structure["headings"]] == [
            ("OVERVIEW", 1),
            ("Costs:", 2),
        ]

    def test_key_phrases_ordered_by_frequency(self, metadata):
        phrases = metadata["structure"]["key_phrases"]

        assert [(p["phrase"], p["frequency"]) for p in phrases] == [("solar", 2), ("costs", 1)]

    def test_tags_weighted_by_kind(self, metadata):
        weights = {(t["tag"], t["category"]): t["weight"] for t in metadata["tags"]}

        assert weights == {
            ("solar", "topic"): 1.0,
            ("costs", "topic"): 1.0,
            ("Acme", "organization"): 0.8,
            ("positive", "sentiment"): 0.5,
        }

    def test_tokens_and_index(self, metadata):
        assert metadata["tokens"]["sentiment"]["token"] == "positive"
        assert metadata["tokens"]["topics"][0]["token"] == "solar"
        assert metadata["index"]["sample_index"]["solar"] == [1, 5]
        assert "is" not in metadata["index"]["sample_index"]

    def test_empty_text(self, analysis):
        metadata = extract_document_metadata("", analysis)

        assert metadata["content"]["word_count"] == 0
        assert metadata["structure"]["sections"] == []


class TestQueries:

    def test_query_matches_sections_topics_and_phrases(self, metadata):
        results = query_metadata_for_context(metadata, "Solar")

        assert [s["title"] for s in results["relevant_sections"]] == ["OVERVIEW"]
        assert results["relevant_topics"] == ["solar"]
        assert [p["phrase"] for p in results["relevant_phrases"]] == ["solar"]
        assert results["relevant_entities"] == []

    def test_query_limit(self, metadata):
        results = query_metadata_for_context(metadata, "s", limit=1)

        assert len(results["relevant_topics"]) == 1

    def test_format_context(self, metadata):
        context = format_metadata_context(query_metadata_for_context(metadata, "solar"))

        assert "Section 'OVERVIEW'" in context
        assert "Key phrase: solar (mentioned 2 times)" in context

    def test_format_context_without_matches(self, metadata):
        assert format_metadata_context(query_metadata_for_context(metadata, "hydrogen")) is None

    def test_topic_details(self, metadata):
        details = get_topic_details(metadata, "solar", TEXT)

        assert details["mentioned"] == 2
        evidence = details["supporting_evidence"]

        assert len(evidence) == 2
        assert evidence[0].endswith("Solar panels convert sunlight.")
        assert evidence[1] == "Solar is clean."
        assert details["related_topics"] == ["costs"]
        assert details["related_entities"] == ["Acme"]

    def test_count_mentions_whole_words(self):
        assert count_mentions("solar solaris Solar", "solar") == 2
        assert count_mentions("text", "  ") == 0


class TestRefresh:

    def test_refresh_keeps_web_entry(self, metadata, analysis):
        previous = dict(metadata, web={"summary": "Page summary", "images": []})
        analysis.topics.items = ["panels"]

        refreshed = refresh_document_metadata(TEXT, analysis, previous)

        assert refreshed["web"] == {"summary": "Page summary", "images": []}
        assert refreshed["analysis"]["topics"] == ["panels"]

    def test_refresh_without_previous(self, analysis):
        refreshed = refresh_document_metadata(TEXT, analysis, None)

        assert "web" not in refreshed
        assert refreshed["content"]["word_count"] == len(TEXT.split())
