# tests/test_mind_map.py
import json

from conftest import (
    CATEGORIZE_MARKER,
    CATEGORY_MAP_MARKER,
    CATEGORY_RELATIONSHIPS_MARKER,
    CONCEPT_MARKER,
    FakeLLM,
)
from docsight.models import (
    Analysis,
    ConceptGraph,
    ConceptNode,
    DocumentRecord,
    Entity,
    EntitiesField,
    SummaryField,
)
from docsight.storage.mind_map_store import MindMapStore
from docsight.workflow.mind_map import (
    analyze_factor,
    build_document_mind_map,
    categorize_and_generate,
    categorize_document,
    existing_concepts,
)


def make_document(doc_id, filename, entities=()):
    return DocumentRecord(
        id=doc_id,
        filename=filename,
        upload_date="2024-01-01T00:00:00",
        content="Solar panels convert sunlight into electricity.",
        analysis=Analysis(
            summary=SummaryField(text=f"Summary of {filename}", confidence=0.9),
            entities=EntitiesField(items=[Entity(name=e) for e in entities], confidence=0.9),
        ),
    )


def categorize_by_title(prompt):
    if "Document Title: solar.txt" in prompt:
        return json.dumps({
            "primaryCategory": "Sustainability",
            "secondaryCategories": ["Cost Saving", "Sustainability", "Innovation"],
            "categoriesWithConcepts": {
                "Sustainability": {"relevance": 90, "concepts": ["Sunlight"], "reasoning": "Clean energy"},
            },
        })
    if "Document Title: training.txt" in prompt:
        return json.dumps({"primaryCategory": "Employee Training", "secondaryCategories": []})
    return "not json"


CATEGORY_MAP = json.dumps({
    "centralConcept": {"name": "Hub", "description": "center"},
    "concepts": [{"name": "Hub"}, {"name": "Spoke"}],
    "relationships": [{"from": "Hub", "to": "Spoke", "type": "leads-to"}],
})

CATEGORY_LINKS = json.dumps({
    "relationships": [
        {"fromCategory": "Sustainability", "toCategory": "Cost Saving", "relationshipType": "enables"},
        {"fromCategory": "Sustainability", "toCategory": "Unknown", "relationshipType": "enables"},
    ]
})


class TestDocumentMindMap:

    def test_builds_graph_and_persists(self, tmp_path):
        store = MindMapStore(str(tmp_path))
        document = make_document("doc_1", "solar.txt")

        mind_map, graph = build_document_mind_map(document, FakeLLM(), store)

        assert mind_map["id"].startswith("mindmap_")
        assert mind_map["type"] == "document"
        assert mind_map["document_ids"] == ["doc_1"]
        assert document.concept_graph == graph
        assert store.get(mind_map["id"])["graph"]["nodes"][0]["id"] == "Sunlight"


class TestCategorization:

    def test_unparsable_output_is_uncategorized(self):
        llm = FakeLLM({CATEGORIZE_MARKER: "I am not sure."})

        result = categorize_document(make_document("doc_1", "x.txt"), llm)

        assert result["primary_category"] == "Uncategorized"
        assert result["secondary_categories"] == []

    def test_provider_error_is_uncategorized(self):
        llm = FakeLLM({CATEGORIZE_MARKER: RuntimeError("down")})

        assert categorize_document(make_document("doc_1", "x.txt"), llm)["primary_category"] == "Uncategorized"

    def test_secondary_excludes_primary_and_duplicates(self):
        llm = FakeLLM({CATEGORIZE_MARKER: categorize_by_title})

        result = categorize_document(make_document("doc_1", "solar.txt"), llm)

        assert result["primary_category"] == "Sustainability"
        assert result["secondary_categories"] == ["Cost Saving", "Innovation"]

    def test_existing_concepts_merge_graph_and_entities(self):
        document = make_document("doc_1", "solar.txt", entities=["sunlight", "Acme"])
        document.concept_graph = ConceptGraph(nodes=[ConceptNode(id="Sunlight", name="Sunlight")])

        names = [c["name"] for c in existing_concepts(document)]

        assert names == ["Sunlight", "Acme"]

    def test_categorize_and_generate(self, tmp_path):
        store = MindMapStore(str(tmp_path))
        llm = FakeLLM({
            CATEGORIZE_MARKER: categorize_by_title,
            CATEGORY_MAP_MARKER: CATEGORY_MAP,
            CATEGORY_RELATIONSHIPS_MARKER: CATEGORY_LINKS,
        })
        documents = [
            make_document("doc_1", "solar.txt", entities=["Acme"]),
            make_document("doc_2", "training.txt"),
        ]

        result = categorize_and_generate(documents, llm, store)

        assert result["type"] == "multi-document-categorization"
        assert result["total_documents"] == 2
        assert result["categories"] == [
            "Sustainability", "Cost Saving", "Innovation", "Employee Training",
        ]
        assert result["category_groups"]["Sustainability"] == ["doc_1"]
        assert result["category_groups"]["Employee Training"] == ["doc_2"]
        assert set(result["category_mind_maps"]) == set(result["categories"])
        assert result["category_mind_maps"]["Sustainability"]["graph"]["edges"][0]["source"] == "Hub"
        assert len(result["category_relationships"]) == 1
        assert store.get(result["id"])["total_documents"] == 2

        # existing analysis is reused, no concept re-extraction
        assert llm.calls_matching(CONCEPT_MARKER) == []
        assert len(llm.calls_matching(CATEGORIZE_MARKER)) == 2
        assert len(llm.calls_matching(CATEGORY_RELATIONSHIPS_MARKER)) == 1

    def test_single_category_skips_relationships(self, tmp_path):
        llm = FakeLLM({
            CATEGORIZE_MARKER: json.dumps({"primaryCategory": "Innovation"}),
            CATEGORY_MAP_MARKER: CATEGORY_MAP,
        })

        result = categorize_and_generate([make_document("doc_1", "a.txt")], llm, MindMapStore(str(tmp_path)))

        assert result["categories"] == ["Innovation"]
        assert result["category_relationships"] == []
        assert llm.calls_matching(CATEGORY_RELATIONSHIPS_MARKER) == []

    def test_failed_category_map_is_omitted(self, tmp_path):
        llm = FakeLLM({
            CATEGORIZE_MARKER: json.dumps({"primaryCategory": "Innovation"}),
            CATEGORY_MAP_MARKER: "no json",
        })

        result = categorize_and_generate([make_document("doc_1", "a.txt")], llm, MindMapStore(str(tmp_path)))

        assert result["category_mind_maps"] == {}
        assert result["category_groups"] == {"Innovation": ["doc_1"]}


class TestFactorAnalysis:

    def test_returns_llm_text(self):
        llm = FakeLLM(default="Cost drives adoption.")

        text = analyze_factor(
            {"name": "Solar Panel"}, "cost", 1200, "Cost Saving", [], [{"name": "Solar Panel"}], llm,
        )

        assert text == "Cost drives adoption."
        assert "Solar Panel" in llm.calls[0]
