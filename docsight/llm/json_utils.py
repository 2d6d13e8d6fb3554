# docsight/llm/json_utils.py

"""
Helpers for reading JSON out of free-form LLM responses.

Models wrap JSON in markdown fences, prepend prose, or return something
that is not JSON at all. Callers get ``None`` back in that last case and
choose their own fallback.
"""

import json
import re
from typing import Any, Optional


_FENCE_RE = re.compile(r"```(?:json)?\s*|```", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_llm_json(text: Optional[str]) -> Optional[Any]:
    """
    Parse the first JSON object or array in ``text``.

    Tries the whole (fence-stripped) response first, then the outermost
    ``{...}`` span, then the outermost ``[...]`` span.
    """

    if not text:
        return None

    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned)
    except ValueError:
        pass

    for pattern in (_OBJECT_RE, _ARRAY_RE):

        match = pattern.search(cleaned)

        if not match:
            continue

        try:
            return json.loads(match.group(0))
        except ValueError:
            continue

    return None


def parse_llm_object(text: Optional[str]) -> Optional[dict]:

    parsed = parse_llm_json(text)

    return parsed if isinstance(parsed, dict) else None


def parse_llm_list(text: Optional[str]) -> Optional[list]:

    parsed = parse_llm_json(text)

    if isinstance(parsed, list):
        return parsed

    # Models sometimes wrap a list in a single-key object
    if isinstance(parsed, dict) and len(parsed) == 1:
        value = next(iter(parsed.values()))
        if isinstance(value, list):
            return value

    return None


def clamp_confidence(value: Any, default: float) -> float:
    """Coerce an LLM-reported confidence into [0, 1]."""

    try:
        score = float(value)
    except (TypeError, ValueError):
        return default

    if score != score:  # NaN
        return default

    # Some models answer on a 0-100 scale
    if 1.0 < score <= 100.0:
        score = score / 100.0

    return max(0.0, min(1.0, score))
