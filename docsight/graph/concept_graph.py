# docsight/graph/concept_graph.py

"""
Concept graphs: LLM extraction, normalization and reasoning chains.

A reasoning chain is the shortest path between two concepts when every
relationship is treated as an undirected link. Paths are found with a
plain breadth-first search; neighbours are visited in edge order so the
same graph always yields the same chain.
"""

import logging
from collections import deque
from typing import Any, Dict, List, Optional

from docsight.config import CONCEPT_GRAPH_INPUT_CHARS, MAX_CONCEPT_NODES
from docsight.llm.json_utils import parse_llm_object
from docsight.models import ConceptEdge, ConceptGraph, ConceptNode, ReasoningStep
from docsight.prompts.prompt_builder import build_concept_graph_prompt
from docsight.prompts.system_prompts import DOCUMENT_ANALYST_SYSTEM_PROMPT


logger = logging.getLogger(__name__)


# ============================================================
# REASONING CHAINS
# ============================================================

def build_adjacency(graph: ConceptGraph) -> Dict[str, List[str]]:

    adjacency: Dict[str, List[str]] = {node.id: [] for node in graph.nodes}

    for edge in graph.edges:

        adjacency.setdefault(edge.source, []).append(edge.target)
        adjacency.setdefault(edge.target, []).append(edge.source)

    return adjacency


def resolve_node_id(graph: ConceptGraph, name: str) -> Optional[str]:
    """Match a user-supplied concept name to a node id, ignoring case."""

    wanted = (name or "").strip().lower()

    if not wanted:
        return None

    for node in graph.nodes:
        if node.id.lower() == wanted or node.name.lower() == wanted:
            return node.id

    return None


def find_reasoning_chain(graph: ConceptGraph, source: str, target: str) -> List[str]:
    """
    Shortest undirected path from ``source`` to ``target``.

    Returns the node ids along the path, ``[source]`` when both ends are
    the same node, and ``[]`` when either end is unknown or no path exists.
    """

    source_id = resolve_node_id(graph, source)
    target_id = resolve_node_id(graph, target)

    if source_id is None or target_id is None:
        return []

    if source_id == target_id:
        return [source_id]

    adjacency = build_adjacency(graph)

    visited = {source_id}
    queue = deque([[source_id]])

    while queue:

        path = queue.popleft()

        for neighbour in adjacency.get(path[-1], []):

            if neighbour in visited:
                continue

            if neighbour == target_id:
                return path + [neighbour]

            visited.add(neighbour)
            queue.append(path + [neighbour])

    return []


def describe_chain(graph: ConceptGraph, path: List[str]) -> List[ReasoningStep]:

    steps: List[ReasoningStep] = []

    for current, following in zip(path, path[1:]):

        relationship = "related"

        for edge in graph.edges:

            if (edge.source, edge.target) in ((current, following), (following, current)):
                relationship = edge.type
                break

        steps.append(
            ReasoningStep(source=current, target=following, relationship=relationship)
        )

    return steps


# ============================================================
# NORMALIZATION
# ============================================================

def _clean(value: Any) -> str:

    if value is None:
        return ""

    return str(value).strip()


def normalize_concept_graph(raw: Optional[Dict[str, Any]]) -> ConceptGraph:
    """
    Reshape loosely structured LLM output into a ConceptGraph.

    Accepts ``concepts`` or ``nodes`` for the node list and
    ``relationships`` or ``edges`` for the edge list, with endpoints named
    ``from``/``to`` or ``source``/``target``. Node ids are the trimmed
    concept names; duplicates (ignoring case) keep the first occurrence.
    Edges pointing at unknown concepts are dropped.
    """

    if not isinstance(raw, dict):
        return ConceptGraph()

    raw_nodes = raw.get("concepts") or raw.get("nodes") or []
    raw_edges = raw.get("relationships") or raw.get("edges") or []

    nodes: List[ConceptNode] = []
    canonical: Dict[str, str] = {}

    for item in raw_nodes:

        if len(nodes) >= MAX_CONCEPT_NODES:
            break

        if isinstance(item, str):
            item = {"name": item}

        if not isinstance(item, dict):
            continue

        name = _clean(item.get("name") or item.get("id") or item.get("label"))

        if not name or name.lower() in canonical:
            continue

        # LLMs sometimes reference concepts by their own ids in edges
        raw_id = _clean(item.get("id"))

        canonical[name.lower()] = name

        if raw_id and raw_id.lower() not in canonical:
            canonical[raw_id.lower()] = name

        nodes.append(
            ConceptNode(
                id=name,
                name=name,
                type=_clean(item.get("type")) or "supporting",
                definition=_clean(item.get("definition") or item.get("description")),
            )
        )

    edges: List[ConceptEdge] = []
    seen = set()

    for item in raw_edges:

        if not isinstance(item, dict):
            continue

        source = canonical.get(_clean(item.get("from") or item.get("source")).lower())
        target = canonical.get(_clean(item.get("to") or item.get("target")).lower())

        if source is None or target is None or source == target:
            continue

        edge_type = _clean(item.get("type")) or "related"

        key = (source, target, edge_type.lower())

        if key in seen:
            continue

        seen.add(key)

        edges.append(
            ConceptEdge(
                source=source,
                target=target,
                type=edge_type,
                description=_clean(item.get("description")),
                evidence=_clean(item.get("evidence")),
            )
        )

    return ConceptGraph(nodes=nodes, edges=edges)


# ============================================================
# EXTRACTION
# ============================================================

def extract_concept_graph(text: str, llm_client) -> ConceptGraph:

    if not text or not text.strip():
        return ConceptGraph()

    prompt = build_concept_graph_prompt(text[:CONCEPT_GRAPH_INPUT_CHARS])

    response = llm_client.generate(
        prompt,
        system_prompt=DOCUMENT_ANALYST_SYSTEM_PROMPT,
        max_tokens=1500,
    )

    graph = normalize_concept_graph(parse_llm_object(response))

    if not graph.nodes:
        logger.warning(
            "Concept graph extraction returned no concepts",
            extra={"response_length": len(response or "")},
        )

    logger.info(
        "Concept graph extracted",
        extra={"nodes": len(graph.nodes), "edges": len(graph.edges)},
    )

    return graph
