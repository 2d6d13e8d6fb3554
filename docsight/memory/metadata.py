# docsight/memory/metadata.py

"""
Structural metadata for a document.

Computed locally from the extracted text plus the LLM analysis, then
stored on the document record. Chat uses it to add section and key-phrase
context that chunk retrieval can miss.
"""

import re
from collections import Counter
from typing import Any, Dict, List, Optional

from docsight.models import Analysis


_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n+")
_WORD_RE = re.compile(r"\b\w+\b")

MAX_HEADING_LENGTH = 100
MAX_KEY_PHRASES = 20
MAX_TOP_TOKENS = 50
MAX_INDEXED_WORDS = 100

# Stored alongside the extracted metadata by web analysis
PRESERVED_METADATA_KEYS = ("web",)


# ============================================================
# CONTENT
# ============================================================

def extract_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_RE.findall(text) if s.strip()]


def extract_paragraphs(text: str) -> List[Dict[str, Any]]:

    paragraphs = [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()]

    return [
        {
            "id": idx,
            "text": paragraph,
            "length": len(paragraph),
            "sentences": len([s for s in re.split(r"[.!?]+", paragraph) if s.strip()]),
        }
        for idx, paragraph in enumerate(paragraphs)
    ]


# ============================================================
# STRUCTURE
# ============================================================

def _looks_like_heading(lines: List[str], idx: int) -> bool:

    line = lines[idx].strip()

    if not line or len(line) >= MAX_HEADING_LENGTH:
        return False

    has_letters = any(c.isalpha() for c in line)

    return (
        (has_letters and line.upper() == line)
        or line.endswith(":")
        or line.startswith("#")
        or (idx > 0 and not lines[idx - 1].strip())
    )


def extract_sections(text: str) -> List[Dict[str, Any]]:
    """Split text at heading-like lines; each section keeps its body text."""

    lines = text.split("\n")

    sections = []
    title: Optional[str] = None
    body: List[str] = []

    def flush():
        if title is not None and body:
            content = " ".join(body).strip()
            sections.append({"title": title, "content": content, "content_length": len(content)})

    for idx, line in enumerate(lines):

        if _looks_like_heading(lines, idx):
            flush()
            title = line.strip().lstrip("#").strip()
            body = []
        elif line.strip():
            body.append(line.strip())

    flush()

    return sections


def heading_level(text: str) -> int:

    if text.startswith("#"):
        return min(len(text) - len(text.lstrip("#")), 3)

    if any(c.isalpha() for c in text) and text.upper() == text:
        return 1

    if len(text) < 50:
        return 2

    return 3


def extract_headings(text: str) -> List[Dict[str, Any]]:

    lines = text.split("\n")

    headings = []

    for idx, line in enumerate(lines[:-1]):

        stripped = line.strip()

        if not stripped or len(stripped) >= MAX_HEADING_LENGTH:
            continue

        # A heading is a short line directly followed by content
        if lines[idx + 1].strip() and _looks_like_heading(lines, idx):
            headings.append(
                {
                    "text": stripped.lstrip("#").strip(),
                    "level": heading_level(stripped),
                    "position": idx,
                }
            )

    return headings


def count_mentions(text: str, phrase: str) -> int:

    if not phrase.strip():
        return 0

    pattern = r"\b" + re.escape(phrase.strip()) + r"\b"

    return len(re.findall(pattern, text, flags=re.IGNORECASE))


def extract_key_phrases(text: str, topics: List[str]) -> List[Dict[str, Any]]:

    phrases = []

    for topic in topics:

        frequency = count_mentions(text, topic)

        if frequency:
            phrases.append({"phrase": topic, "frequency": frequency, "importance": "high"})

    phrases.sort(key=lambda p: p["frequency"], reverse=True)

    return phrases[:MAX_KEY_PHRASES]


# ============================================================
# TOKENS, TAGS, INDEX
# ============================================================

def tokenize_text(text: str) -> Dict[str, Any]:

    words = [w.lower() for w in _WORD_RE.findall(text)]

    counts = Counter(words)

    return {
        "total_tokens": len(words),
        "unique_tokens": len(counts),
        "average_token_length": round(sum(len(w) for w in words) / len(words), 2) if words else 0.0,
        "top_tokens": [
            {"token": token, "frequency": frequency}
            for token, frequency in counts.most_common(MAX_TOP_TOKENS)
        ],
    }


def generate_tokens(text: str, analysis: Analysis) -> Dict[str, Any]:

    return {
        "content": tokenize_text(text),
        "entities": [
            {"token": e.name, "type": e.type or "ENTITY", "importance": "high"}
            for e in analysis.entities.items
        ],
        "topics": [
            {"token": t, "type": "TOPIC", "importance": "high"}
            for t in analysis.topics.items
        ],
        "sentiment": {
            "token": analysis.sentiment.value or "neutral",
            "type": "SENTIMENT",
            "importance": "medium",
        },
    }


def extract_metadata_tags(analysis: Analysis) -> List[Dict[str, Any]]:

    tags = [{"tag": t, "category": "topic", "weight": 1.0} for t in analysis.topics.items]

    tags.extend(
        {"tag": e.name, "category": (e.type or "entity").lower(), "weight": 0.8}
        for e in analysis.entities.items
    )

    if analysis.sentiment.value:
        tags.append({"tag": analysis.sentiment.value, "category": "sentiment", "weight": 0.5})

    return tags


def create_search_index(text: str) -> Dict[str, Any]:
    """Word positions for words longer than two characters, most frequent first."""

    positions: Dict[str, List[int]] = {}

    for position, word in enumerate(w.lower() for w in _WORD_RE.findall(text)):
        if len(word) > 2:
            positions.setdefault(word, []).append(position)

    ranked = sorted(positions.items(), key=lambda item: len(item[1]), reverse=True)

    return {
        "total_indexed_words": len(positions),
        "sample_index": dict(ranked[:MAX_INDEXED_WORDS]),
    }


# ============================================================
# PUBLIC API
# ============================================================

def extract_document_metadata(text: str, analysis: Analysis) -> Dict[str, Any]:

    text = text or ""

    return {
        "content": {
            "text_length": len(text),
            "word_count": len(text.split()),
            "sentences": extract_sentences(text),
            "paragraphs": extract_paragraphs(text),
        },
        "analysis": {
            "summary": analysis.summary.text,
            "topics": list(analysis.topics.items),
            "entities": [e.dict() for e in analysis.entities.items],
            "sentiment": analysis.sentiment.value,
        },
        "structure": {
            "sections": extract_sections(text),
            "headings": extract_headings(text),
            "key_phrases": extract_key_phrases(text, analysis.topics.items),
        },
        "tokens": generate_tokens(text, analysis),
        "tags": extract_metadata_tags(analysis),
        "index": create_search_index(text),
    }


def refresh_document_metadata(
    text: str,
    analysis: Analysis,
    previous: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Rebuild metadata after an edit, carrying over entries not derived from the text."""

    metadata = extract_document_metadata(text, analysis)

    for key in PRESERVED_METADATA_KEYS:
        if previous and key in previous:
            metadata[key] = previous[key]

    return metadata


def query_metadata_for_context(metadata: Dict[str, Any], query: str, limit: int = 5) -> Dict[str, List]:

    needle = (query or "").strip().lower()

    structure = metadata.get("structure", {})
    analysis = metadata.get("analysis", {})

    return {
        "relevant_sections": [
            s for s in structure.get("sections", [])
            if needle in s.get("content", "").lower() or needle in s.get("title", "").lower()
        ][:limit],
        "relevant_topics": [
            t for t in analysis.get("topics", []) if needle in t.lower()
        ][:limit],
        "relevant_entities": [
            e for e in analysis.get("entities", []) if needle in e.get("name", "").lower()
        ][:limit],
        "relevant_phrases": [
            p for p in structure.get("key_phrases", []) if needle in p.get("phrase", "").lower()
        ][:limit],
    }


def get_topic_details(metadata: Dict[str, Any], topic: str, text: str = "") -> Dict[str, Any]:

    needle = topic.strip().lower()

    content = metadata.get("content", {})
    structure = metadata.get("structure", {})
    analysis = metadata.get("analysis", {})

    return {
        "topic": topic,
        "mentioned": count_mentions(text, topic) if text else 0,
        "relevant_sections": [
            {"title": s["title"], "preview": s["content"][:200] + "..."}
            for s in structure.get("sections", [])
            if needle in s.get("content", "").lower()
        ],
        "supporting_evidence": [
            s for s in content.get("sentences", []) if needle in s.lower()
        ][:5],
        "related_entities": [e.get("name") for e in analysis.get("entities", [])[:5]],
        "related_topics": [
            t for t in analysis.get("topics", []) if t.lower() != needle
        ][:5],
    }


def format_metadata_context(results: Dict[str, List]) -> Optional[str]:
    """Render query results as prompt context; None when nothing matched."""

    lines = []

    for section in results.get("relevant_sections", []):
        lines.append(f"Section '{section['title']}': {section['content'][:500]}")

    for phrase in results.get("relevant_phrases", []):
        lines.append(f"Key phrase: {phrase['phrase']} (mentioned {phrase['frequency']} times)")

    if results.get("relevant_topics"):
        lines.append(f"Topics: {', '.join(results['relevant_topics'])}")

    if results.get("relevant_entities"):
        lines.append(
            "Entities: " + ", ".join(e.get("name", "") for e in results["relevant_entities"])
        )

    return "\n".join(lines) or None
