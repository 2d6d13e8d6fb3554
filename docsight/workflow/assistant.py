# docsight/workflow/assistant.py

"""
Single-prompt assistant features.

Each function builds one prompt, makes one LLM call and returns the text
(or, for DOE factors, parsed JSON). Provider errors propagate to the
caller.
"""

import logging
from typing import Any, Dict, List, Optional

from docsight.config import ASSISTANT_INPUT_CHARS
from docsight.llm.json_utils import parse_llm_list, strip_code_fences
from docsight.models import Analysis
from docsight.prompts.prompt_builder import (
    build_actionable_steps_prompt,
    build_clarify_prompt,
    build_doe_factors_prompt,
    build_explain_prompt,
    build_insights_prompt,
    build_mermaid_prompt,
    build_section_explain_prompt,
)
from docsight.prompts.system_prompts import ASSISTANT_SYSTEM_PROMPT


logger = logging.getLogger(__name__)


def _ask(llm_client, prompt: str, max_tokens: int = 800) -> str:
    return llm_client.generate(prompt, system_prompt=ASSISTANT_SYSTEM_PROMPT, max_tokens=max_tokens)


def generate_insights(analysis: Analysis, llm_client) -> str:
    return _ask(llm_client, build_insights_prompt(analysis.summary.text, analysis.topics.items))


def clarify_text(text: str, context: Optional[str], llm_client) -> str:
    return _ask(llm_client, build_clarify_prompt(text, context))


def explain_analysis_section(section: str, llm_client) -> str:
    return _ask(llm_client, build_explain_prompt(section))


def explain_document_section(
    document_summary: str,
    section_title: str,
    section_text: str,
    llm_client,
) -> str:

    prompt = build_section_explain_prompt(
        document_summary,
        section_title,
        section_text[:ASSISTANT_INPUT_CHARS],
    )

    return _ask(llm_client, prompt)


def actionable_steps(text: str, llm_client) -> str:
    return _ask(llm_client, build_actionable_steps_prompt(text[:ASSISTANT_INPUT_CHARS]))


def mermaid_graph(text: str, llm_client) -> str:
    """Mermaid flowchart source; markdown fences are stripped."""

    response = _ask(llm_client, build_mermaid_prompt(text[:ASSISTANT_INPUT_CHARS]), max_tokens=1200)

    code = strip_code_fences(response)

    # Some models label the block with the language name
    if code.lower().startswith("mermaid"):
        code = code[len("mermaid"):].lstrip()

    return code


def doe_factors(text: str, llm_client) -> List[Dict[str, Any]]:
    """Design-of-experiments factors; empty when the response is not a JSON list."""

    response = _ask(llm_client, build_doe_factors_prompt(text[:ASSISTANT_INPUT_CHARS]))

    factors = parse_llm_list(response)

    if factors is None:
        logger.warning("DOE factor response was not a JSON list")
        return []

    return [f for f in factors if isinstance(f, dict) and f.get("name")]
