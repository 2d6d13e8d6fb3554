# docsight/workflow/mind_map.py

"""
Mind maps for single documents and for categorized document sets.

Category mind maps are built from concepts already extracted for each
document (concept graph nodes and analysis entities); documents are not
re-analyzed.
"""

import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Tuple

from docsight.config import MIND_MAP_CATEGORIES
from docsight.graph.concept_graph import extract_concept_graph, normalize_concept_graph
from docsight.llm.json_utils import parse_llm_object
from docsight.models import ConceptGraph, DocumentRecord
from docsight.prompts.prompt_builder import (
    build_categorization_prompt,
    build_category_mind_map_prompt,
    build_category_relationships_prompt,
    build_factor_prompt,
)
from docsight.prompts.system_prompts import CATEGORIZATION_SYSTEM_PROMPT


logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
MAX_SECONDARY_CATEGORIES = 3


def new_mind_map_id() -> str:
    return f"mindmap_{uuid.uuid4().hex[:12]}"


# ============================================================
# SINGLE DOCUMENT
# ============================================================

def build_document_mind_map(document: DocumentRecord, llm_client, mind_map_store) -> Tuple[Dict[str, Any], ConceptGraph]:
    """
    Extract a concept graph for ``document`` and persist it as a mind map.

    The graph is also attached to the record; saving the record is left
    to the caller.
    """

    graph = extract_concept_graph(document.content, llm_client)

    document.concept_graph = graph

    mind_map = {
        "id": new_mind_map_id(),
        "type": "document",
        "created_at": datetime.utcnow().isoformat(),
        "document_ids": [document.id],
        "document_titles": [document.filename],
        "categories": [],
        "graph": graph.dict(),
    }

    mind_map_store.save(mind_map)

    return mind_map, graph


# ============================================================
# CATEGORIZATION
# ============================================================

def existing_concepts(document: DocumentRecord) -> List[Dict[str, Any]]:

    concepts = []
    seen = set()

    if document.concept_graph:
        for node in document.concept_graph.nodes:
            concepts.append({"name": node.name, "type": node.type, "definition": node.definition})
            seen.add(node.name.lower())

    for entity in document.analysis.entities.items:
        if entity.name.lower() not in seen:
            concepts.append({"name": entity.name, "type": entity.type, "definition": ""})
            seen.add(entity.name.lower())

    return concepts


def existing_relationships(document: DocumentRecord) -> List[Dict[str, Any]]:

    if not document.concept_graph:
        return []

    return [edge.dict() for edge in document.concept_graph.edges]


def categorize_document(document: DocumentRecord, llm_client) -> Dict[str, Any]:

    uncategorized = {
        "primary_category": UNCATEGORIZED,
        "secondary_categories": [],
        "categories_with_concepts": {},
    }

    prompt = build_categorization_prompt(
        MIND_MAP_CATEGORIES,
        document.filename,
        document.analysis.summary.text,
        existing_concepts(document),
        document.analysis.topics.items,
    )

    try:
        response = llm_client.generate(prompt, system_prompt=CATEGORIZATION_SYSTEM_PROMPT, max_tokens=500)
    except Exception as e:
        logger.warning("Categorization failed", extra={"document_id": document.id, "error": str(e)})
        return uncategorized

    result = parse_llm_object(response)

    if not result or not isinstance(result.get("primaryCategory"), str) or not result["primaryCategory"].strip():
        logger.warning("Could not categorize document", extra={"document_id": document.id})
        return uncategorized

    primary = result["primaryCategory"].strip()

    secondary = []

    for category in result.get("secondaryCategories") or []:
        if isinstance(category, str) and category.strip() and category.strip() != primary:
            if category.strip() not in secondary:
                secondary.append(category.strip())

    with_concepts = result.get("categoriesWithConcepts")

    return {
        "primary_category": primary,
        "secondary_categories": secondary[:MAX_SECONDARY_CATEGORIES],
        "categories_with_concepts": with_concepts if isinstance(with_concepts, dict) else {},
    }


def _category_mind_map(category: str, members: List[Dict[str, Any]], llm_client):

    concepts = []
    relationships = []

    for member in members:
        concepts.extend(dict(c, source_title=member["title"]) for c in member["concepts"])
        relationships.extend(member["relationships"])

    documents = []

    for member in members:

        detail = member["categorization"]["categories_with_concepts"].get(category)

        documents.append(
            {
                "title": member["title"],
                "reasoning": detail.get("reasoning") if isinstance(detail, dict) else None,
                "concepts": member["concepts"],
            }
        )

    prompt = build_category_mind_map_prompt(category, documents, concepts, relationships)

    try:
        response = llm_client.generate(prompt, system_prompt=CATEGORIZATION_SYSTEM_PROMPT, max_tokens=1500)
    except Exception as e:
        logger.warning("Category mind map failed", extra={"category": category, "error": str(e)})
        return None

    result = parse_llm_object(response)

    if result is None:
        logger.warning("Category mind map unparsable", extra={"category": category})
        return None

    return {
        "category": category,
        "central_concept": result.get("centralConcept"),
        "concepts": [c for c in result.get("concepts") or [] if isinstance(c, dict)],
        "relationships": [r for r in result.get("relationships") or [] if isinstance(r, dict)],
        "graph": normalize_concept_graph(result).dict(),
        "document_count": len(members),
        "documents": [{"id": m["id"], "title": m["title"]} for m in members],
        "total_extracted_concepts": len(concepts),
        "total_extracted_relationships": len(relationships),
    }


def _category_relationships(category_maps: Dict[str, Dict], llm_client) -> List[Dict[str, Any]]:

    if len(category_maps) < 2:
        return []

    prompt = build_category_relationships_prompt(category_maps)

    try:
        response = llm_client.generate(prompt, system_prompt=CATEGORIZATION_SYSTEM_PROMPT)
    except Exception as e:
        logger.warning("Category relationship analysis failed", extra={"error": str(e)})
        return []

    result = parse_llm_object(response) or {}

    known = set(category_maps)

    return [
        r for r in result.get("relationships") or []
        if isinstance(r, dict) and r.get("fromCategory") in known and r.get("toCategory") in known
    ]


def categorize_and_generate(documents: List[DocumentRecord], llm_client, mind_map_store) -> Dict[str, Any]:
    """
    Categorize documents, build one mind map per category and persist the result.

    A document joins the group of its primary category and of each
    secondary category.
    """

    members = []

    for document in documents:

        categorization = categorize_document(document, llm_client)

        members.append(
            {
                "id": document.id,
                "title": document.filename,
                "summary": document.analysis.summary.text,
                "categorization": categorization,
                "concepts": existing_concepts(document),
                "relationships": existing_relationships(document),
            }
        )

        logger.info(
            "Document categorized",
            extra={"document_id": document.id, "category": categorization["primary_category"]},
        )

    groups: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()

    for member in members:

        categorization = member["categorization"]

        for category in [categorization["primary_category"]] + categorization["secondary_categories"]:
            groups.setdefault(category, []).append(member)

    category_maps: Dict[str, Dict[str, Any]] = {}

    for category, group in groups.items():

        mind_map = _category_mind_map(category, group, llm_client)

        if mind_map is not None:
            category_maps[category] = mind_map

    category_relationships = _category_relationships(category_maps, llm_client)

    result = {
        "id": new_mind_map_id(),
        "type": "multi-document-categorization",
        "created_at": datetime.utcnow().isoformat(),
        "total_documents": len(documents),
        "document_ids": [d.id for d in documents],
        "document_titles": [d.filename for d in documents],
        "categorized_documents": [
            {"id": m["id"], "title": m["title"], "categorization": m["categorization"]}
            for m in members
        ],
        "categories": list(groups),
        "category_groups": {
            category: [m["id"] for m in group] for category, group in groups.items()
        },
        "category_mind_maps": category_maps,
        "category_relationships": category_relationships,
        "metadata": {
            "total_concepts": sum(len(m["concepts"]) for m in category_maps.values()),
            "total_relationships": sum(len(m["relationships"]) for m in category_maps.values())
            + len(category_relationships),
            "categories_count": len(groups),
        },
    }

    mind_map_store.save(result)

    return result


# ============================================================
# FACTOR ANALYSIS
# ============================================================

def analyze_factor(
    concept: Dict[str, Any],
    factor_key: str,
    factor_value: Any,
    category: str,
    relationships: List[Dict[str, Any]],
    all_concepts: List[Dict[str, Any]],
    llm_client,
) -> str:

    prompt = build_factor_prompt(
        concept,
        factor_key,
        factor_value,
        category,
        relationships,
        all_concepts,
    )

    return llm_client.generate(prompt, max_tokens=300, temperature=0.7)
