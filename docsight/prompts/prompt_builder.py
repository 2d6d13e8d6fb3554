# docsight/prompts/prompt_builder.py

import json
from typing import Any, Dict, List, Optional

from docsight.prompts.system_prompts import REFUSAL_MESSAGE


# ============================================================
# DOCUMENT ANALYSIS
# ============================================================

def build_summary_prompt(text: str) -> str:

    prompt = f"""
Summarize the document below in 2-3 sentences. Then rate your confidence
(0.0-1.0) based on:
- Text clarity and completeness
- Ability to identify main themes
- Document structure quality

Return JSON: {{"summary": "text", "confidence": 0.85, "reasoning": "why this confidence level"}}

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_topics_prompt(text: str) -> str:

    prompt = f"""
Extract 3-5 main topics from the document below. Rate confidence based on:
- Topic clarity in the text
- Frequency of topic-related terms
- Context strength

Return JSON: {{"topics": ["topic1", "topic2"], "confidence": 0.90, "reasoning": "explanation"}}

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_entities_prompt(text: str) -> str:

    prompt = f"""
Extract named entities (people, organizations, locations) from the document
below. Rate confidence based on:
- Entity name clarity
- Context providing entity type
- Proper noun identification certainty

Return JSON: {{"entities": [{{"name": "John", "type": "person", "confidence": 0.95}}], "overall_confidence": 0.85}}

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_sentiment_prompt(text: str) -> str:

    prompt = f"""
Analyze the sentiment of the document below. Consider:
- Clear emotional indicators
- Consistent tone throughout
- Context ambiguity

Return JSON: {{"sentiment": "positive|negative|neutral", "confidence": 0.80, "indicators": ["excited language", "growth terms"]}}

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_clarifying_questions_prompt(
    excerpt: str,
    low_confidence_areas: List[str],
    analysis: Dict[str, Any],
) -> str:

    prompt = f"""
The analysis has low confidence in these areas: {", ".join(low_confidence_areas)}.
Generate 2-3 specific questions that would help a human reviewer clarify
these uncertainties.

Return a JSON array: ["Question 1?", "Question 2?"]

DOCUMENT EXCERPT:
{excerpt}

LOW CONFIDENCE ANALYSIS:
{json.dumps(analysis, indent=2, default=str)}
"""

    return prompt.strip()


# ============================================================
# QUESTION ANSWERING
# ============================================================

def build_document_prompt(
    question: str,
    context_chunks: List[Dict],
    extra_context: Optional[str] = None,
) -> str:
    """
    Build the grounded Q&A prompt from retrieved chunks.

    ``extra_context`` carries metadata snippets (headings, key phrases)
    matched against the question.
    """

    context_block = "\n\n".join(
        f"[Context {i+1} | Confidence: {chunk['similarity_score']:.3f}]\n{chunk['text']}"
        for i, chunk in enumerate(context_chunks)
    )

    if extra_context:
        context_block = f"{context_block}\n\n[Document metadata]\n{extra_context}"

    prompt = f"""
DOCUMENT CONTEXT:
----------------
{context_block}
----------------

QUESTION:
{question}

INSTRUCTIONS:

Answer using ONLY the DOCUMENT CONTEXT above.

You MAY combine information from multiple context sections.

If the answer does not exist in the context, say:
"{REFUSAL_MESSAGE}"

FINAL ANSWER:
"""

    return prompt.strip()


def build_summaries_prompt(question: str, documents: List[Dict]) -> str:
    """Prompt over document summaries and topics, used when no chunks are indexed."""

    if len(documents) == 1:
        header = ""
    else:
        header = f"You have access to {len(documents)} documents. Here's the information:\n\n"

    blocks = []

    for i, doc in enumerate(documents, start=1):

        lines = [f"Document {i}: {doc.get('filename', 'Untitled')}"]

        if doc.get("summary"):
            lines.append(f"Summary: {doc['summary']}")

        if doc.get("topics"):
            lines.append(f"Topics: {', '.join(doc['topics'])}")

        blocks.append("\n".join(lines))

    context_text = header + "\n\n".join(blocks)

    prompt = f"""
Based on the following information, please answer the user's question
accurately and helpfully.

{context_text}

User Question: {question}
"""

    return prompt.strip()


# ============================================================
# CONCEPT GRAPHS
# ============================================================

def build_concept_graph_prompt(text: str) -> str:

    prompt = f"""
Identify the key concepts in the document below and how they relate.

Rules:
- 5-25 concepts, each a short noun phrase that appears in or is clearly
  implied by the text
- type is "main" for the document's central concepts, otherwise "supporting"
- every relationship must connect two concepts from your list
- evidence is a short quote or paraphrase from the text

Return JSON:
{{
  "concepts": [
    {{"name": "Concept", "type": "main|supporting", "definition": "one sentence"}}
  ],
  "relationships": [
    {{"from": "Concept A", "to": "Concept B", "type": "causes|supports|part-of|related-to|depends-on", "description": "how they relate", "evidence": "from the text"}}
  ]
}}

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_categorization_prompt(
    categories: List[str],
    title: str,
    summary: str,
    concepts: List[Dict],
    topics: List[str],
) -> str:

    category_lines = "\n".join(f"{i}. {c}" for i, c in enumerate(categories, start=1))

    concept_line = " | ".join(
        f"{c['name']} ({c.get('type') or 'concept'})" for c in concepts[:20]
    ) or "None extracted"

    topic_line = ", ".join(topics[:8]) or "None extracted"

    prompt = f"""
Analyze this document and categorize it into one or more of these categories:
{category_lines}

Document Title: {title}
Document Summary: {summary[:200]}

ALREADY EXTRACTED DATA (use this):
Entities & Concepts: {concept_line}
Topics: {topic_line}

Instructions:
1. Use the extracted entities and topics above to determine categories
2. Identify the PRIMARY category (only one)
3. Identify SECONDARY categories (0-3)
4. Map existing concepts to each category
5. Rate relevance (0-100)

Respond in JSON format:
{{
  "primaryCategory": "Category Name",
  "secondaryCategories": ["Category1", "Category2"],
  "categoriesWithConcepts": {{
    "Category Name": {{
      "relevance": 85,
      "concepts": ["concept1", "concept2"],
      "reasoning": "Brief explanation"
    }}
  }}
}}
"""

    return prompt.strip()


def build_category_mind_map_prompt(
    category: str,
    documents: List[Dict],
    concepts: List[Dict],
    relationships: List[Dict],
) -> str:

    document_block = "\n".join(
        f"Document {i}: {d['title']}\n"
        f"Categorization: {d.get('reasoning') or 'N/A'}\n"
        f"Extracted Concepts: {', '.join(c['name'] for c in d['concepts'][:10]) or 'None'}"
        for i, d in enumerate(documents, start=1)
    )

    concept_block = "\n".join(
        f"- {c['name']} ({c.get('type') or 'concept'}): "
        f"{(c.get('definition') or '')[:100]} [from {c.get('source_title', '')}]"
        for c in concepts[:50]
    ) or "None"

    relationship_block = "\n".join(
        f"- {r['source']} --[{r.get('type') or 'related-to'}]--> {r['target']}"
        for r in relationships[:30]
    ) or "None"

    prompt = f"""
Create a unified mind map for the "{category}" category using EXISTING
EXTRACTED DATA from these documents:

{document_block}

ALL EXTRACTED CONCEPTS AVAILABLE:
{concept_block}

EXISTING RELATIONSHIPS:
{relationship_block}

Instructions:
1. Use the EXISTING CONCEPTS above (don't create new ones)
2. Select 8-15 most relevant concepts for "{category}"
3. Use EXISTING RELATIONSHIPS where available
4. Add new relationships only if needed to connect concepts
5. Assign importance (1-10) based on relevance to {category}

Respond in JSON format:
{{
  "category": "{category}",
  "centralConcept": {{"name": "Central concept", "description": "Brief description"}},
  "concepts": [
    {{"name": "Exact name from extracted concepts", "description": "From extracted data", "type": "concept", "importance": 9}}
  ],
  "relationships": [
    {{"from": "Concept A", "to": "Concept B", "type": "parent-child|related-to|leads-to|depends-on", "description": "How they relate"}}
  ]
}}
"""

    return prompt.strip()


def build_category_relationships_prompt(category_maps: Dict[str, Dict]) -> str:

    blocks = "\n\n".join(
        f"Category: {category}\n"
        f"Key Concepts: {', '.join(c.get('name', '') for c in data.get('concepts', [])) or 'None'}\n"
        f"Documents: {', '.join(d['title'] for d in data.get('documents', []))}"
        for category, data in category_maps.items()
    )

    prompt = f"""
Analyze the relationships between these categories and their content:

{blocks}

Identify meaningful relationships between these categories. For example:
- "Cost Saving" might enable "Technology Advancement"
- "Employee Training" supports "Efficiency Improvement"

Respond with JSON:
{{
  "relationships": [
    {{
      "fromCategory": "Category A",
      "toCategory": "Category B",
      "relationshipType": "enables|supports|leads-to|depends-on|complements",
      "strength": 8,
      "description": "How they relate"
    }}
  ]
}}
"""

    return prompt.strip()


def build_factor_prompt(
    concept: Dict[str, Any],
    factor_key: str,
    factor_value: Any,
    category: str,
    relationships: List[Dict[str, Any]],
    all_concepts: List[Dict[str, Any]],
) -> str:

    name = concept.get("name", "")

    if isinstance(factor_value, (dict, list)):
        value = json.dumps(factor_value)
    else:
        value = factor_value

    related_lines = []

    for rel in relationships:

        source = rel.get("from") or rel.get("source")
        target = rel.get("to") or rel.get("target")

        if source == name:
            related_lines.append(f'- To "{target}": {rel.get("type", "")}')
        elif target == name:
            related_lines.append(f'- From "{source}": {rel.get("type", "")}')

    concept_lines = [
        f"- {c.get('name', '')}" + (f": {c['description']}" if c.get("description") else "")
        for c in all_concepts[:5]
    ]

    prompt = f"""
Analyze this factor from a mind map concept:

Concept: {name}
Category: {category}
Factor: {factor_key}
Value: {value}

Context:
- Description: {concept.get("description") or "N/A"}
- Type: {concept.get("type") or "N/A"}
- Importance: {concept.get("importance") or "N/A"}/10

Relationships to other concepts:
{chr(10).join(related_lines) or "None"}

Related concepts in this category:
{chr(10).join(concept_lines) or "None"}

Explain what this factor means for the concept, how it relates to the
category, and its significance. Keep the response to 3-5 sentences focused
on actionable insights.
"""

    return prompt.strip()


# ============================================================
# ASSISTANT
# ============================================================

def build_insights_prompt(summary: str, topics: List[str]) -> str:

    prompt = f"""
Analyze this document analysis and provide 3-5 key insights or suggestions
for improvement:

Summary: {summary or "No summary"}
Topics: {", ".join(topics) or "No topics"}

Please provide actionable insights.
"""

    return prompt.strip()


def build_clarify_prompt(text: str, context: Optional[str]) -> str:

    prompt = f"""
I need clarification about the following text from a document:

Text: "{text}"
Context: {context or "None"}

Please provide:
1. Why this might need clarification.
2. Possible alternative interpretations.
3. What additional information would help.
"""

    return prompt.strip()


def build_explain_prompt(section: str) -> str:

    prompt = f"""
Explain how the {section} section of a document analysis is generated.
Include:
1. Analysis techniques used.
2. Why this information is important.
3. How to improve the analysis.
"""

    return prompt.strip()


def build_section_explain_prompt(
    document_summary: str,
    section_title: str,
    section_text: str,
) -> str:

    prompt = f"""
A reader is looking at one section of a larger document.

DOCUMENT SUMMARY:
{document_summary or "Not available"}

SECTION TITLE:
{section_title}

SECTION TEXT:
{section_text}

Explain this section in plain language: what it says, why it matters for
the document as a whole, and any terms a newcomer would need defined.
"""

    return prompt.strip()


def build_actionable_steps_prompt(text: str) -> str:

    prompt = f"""
Read the document below and list the concrete actions a reader should take.
Return a numbered list of 3-10 short, imperative steps. Skip steps the
document does not support.

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_mermaid_prompt(text: str) -> str:

    prompt = f"""
Convert the main process or argument of the document below into Mermaid
flowchart code. Start with "graph TD". Use short node labels. Return ONLY
the Mermaid code with no markdown fences and no explanation.

DOCUMENT:
{text}
"""

    return prompt.strip()


def build_doe_factors_prompt(text: str) -> str:

    prompt = f"""
Identify the factors in the document below that could be varied in a
design-of-experiments study.

Return a JSON array:
[{{"name": "factor", "description": "what it controls", "levels": ["low", "high"], "unit": "optional"}}]

DOCUMENT:
{text}
"""

    return prompt.strip()


# ============================================================
# WEB ANALYSIS
# ============================================================

def build_web_summary_prompt(title: str, url: str, text: str) -> str:

    prompt = f"""
Analyze the web page below and write a structured summary with:
1. Main purpose of the page (one sentence)
2. Key points (3-7 bullets)
3. Notable facts, figures or claims

Title: {title}
URL: {url}

CONTENT:
{text}
"""

    return prompt.strip()


def build_image_analysis_prompt(title: str, images: List[Dict[str, str]]) -> str:

    image_lines = "\n".join(
        f"- {img.get('alt') or img.get('title') or 'untitled'} ({img['src']})"
        for img in images
    )

    prompt = f"""
The page "{title}" contains these images (alt text and source):

{image_lines}

Based on the descriptions, explain what the images likely show and how they
support the page's content. Keep it to one short paragraph.
"""

    return prompt.strip()


def build_scholarly_prompt(title: str, text: str) -> str:

    prompt = f"""
If the content below is a scholarly or technical publication, extract its
bibliographic data. Use null for anything not present.

Return JSON:
{{"title": "", "authors": [], "publication_date": null, "journal": null, "doi": null, "abstract": null, "keywords": []}}

Title: {title}

CONTENT:
{text}
"""

    return prompt.strip()
