# tests/conftest.py
import json
import os
import re
import sys
import tempfile
import zlib

import numpy as np
import pytest

# Storage and log locations are read at import time
_TEST_ROOT = tempfile.mkdtemp(prefix="docsight-tests-")
os.environ.setdefault("DOCSIGHT_STORAGE_DIR", os.path.join(_TEST_ROOT, "storage"))
os.environ.setdefault("DOCSIGHT_LOG_DIR", os.path.join(_TEST_ROOT, "logs"))
os.environ.pop("POSTHOG_API_KEY", None)
os.environ.pop("QDRANT_URL", None)

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient

from docsight.api.dependencies import ServiceContainer, get_services
from docsight.main import app
from docsight.memory.vector_store import VectorStore


# ============================================================
# PROMPT MARKERS
# ============================================================

CLARIFY_MARKER = "Generate 2-3 specific questions"
SUMMARY_MARKER = "Summarize the document below"
TOPICS_MARKER = "Extract 3-5 main topics"
ENTITIES_MARKER = "Extract named entities"
SENTIMENT_MARKER = "Analyze the sentiment"
QA_MARKER = "DOCUMENT CONTEXT:"
SUMMARIES_MARKER = "Based on the following information"
CONCEPT_MARKER = "Identify the key concepts"
CATEGORIZE_MARKER = "categorize it into one or more"
CATEGORY_MAP_MARKER = "Create a unified mind map"
CATEGORY_RELATIONSHIPS_MARKER = "Analyze the relationships between these categories"


CONFIDENT_RESPONSES = {
    SUMMARY_MARKER: json.dumps({
        "summary": "Solar panels convert sunlight into electricity for homes.",
        "confidence": 0.92,
        "reasoning": "Clear and well structured text",
    }),
    TOPICS_MARKER: json.dumps({
        "topics": ["solar energy", "electricity"],
        "confidence": 0.9,
        "reasoning": "Topics are stated directly",
    }),
    ENTITIES_MARKER: json.dumps({
        "entities": [{"name": "Acme Solar", "type": "organization", "confidence": 0.95}],
        "overall_confidence": 0.9,
    }),
    SENTIMENT_MARKER: json.dumps({
        "sentiment": "positive",
        "confidence": 0.85,
        "indicators": ["optimistic outlook"],
    }),
    QA_MARKER: "Solar panels convert sunlight into electricity.",
    SUMMARIES_MARKER: "The documents describe solar energy.",
    CONCEPT_MARKER: json.dumps({
        "concepts": [
            {"name": "Sunlight", "type": "main", "definition": "Light from the sun"},
            {"name": "Solar Panel", "type": "main", "definition": "Converts light"},
            {"name": "Electricity", "type": "supporting", "definition": "Energy carrier"},
            {"name": "Battery", "type": "supporting", "definition": "Stores energy"},
        ],
        "relationships": [
            {"from": "Sunlight", "to": "Solar Panel", "type": "powers"},
            {"from": "Solar Panel", "to": "Electricity", "type": "produces"},
        ],
    }),
}

SOLAR_TEXT = (
    "Acme Solar installs solar panels on homes. "
    "Solar panels convert sunlight into electricity. "
    "The electricity powers lights and appliances, and solar energy lowers bills."
)


def make_pdf(*pages):
    """Build a minimal PDF with one Helvetica text line per page."""

    objects = ["<< /Type /Catalog /Pages 2 0 R >>", None, "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"]
    kids = []

    for text in pages:

        escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET"

        objects.append(f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream")
        objects.append(
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {len(objects)} 0 R >>"
        )
        kids.append(f"{len(objects)} 0 R")

    objects[1] = f"<< /Type /Pages /Kids [{' '.join(kids)}] /Count {len(kids)} >>"

    out = b"%PDF-1.4\n"
    offsets = []

    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_offset = len(out)

    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")

    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")

    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")

    return out


class FakeLLM:
    """
    Scripted stand-in for MultiModelLLMClient.

    ``responses`` maps a prompt substring to a reply string, an exception
    instance (raised) or a callable taking the prompt. The first matching
    marker wins; prompts that match nothing get ``default``.
    """

    def __init__(self, responses=None, default="OK"):
        self.responses = dict(CONFIDENT_RESPONSES)
        self.responses.update(responses or {})
        self.default = default
        self.calls = []

    def _lookup(self, prompt):

        if CLARIFY_MARKER in prompt:
            return self.responses.get(CLARIFY_MARKER, '["What does the document mainly cover?"]')

        for marker, reply in self.responses.items():
            if marker in prompt:
                return reply

        return self.default

    def generate(self, prompt, system_prompt=None, max_tokens=800, temperature=0.2):

        self.calls.append(prompt)

        reply = self._lookup(prompt)

        if isinstance(reply, Exception):
            raise reply

        if callable(reply):
            return reply(prompt)

        return reply

    def calls_matching(self, marker):
        return [p for p in self.calls if marker in p]

    def get_usage_stats(self):
        return {"openai_available": True, "gemini_available": False, "local_available": False}

    def list_models(self):
        return [{"provider": "openai", "model": "fake-model", "available": True}]


class FakeEmbedder:
    """Deterministic bag-of-words embeddings, L2-normalized."""

    def __init__(self, dim=64):
        self.dim = dim

    def _vector(self, text):

        vector = np.zeros(self.dim, dtype="float32")

        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(word.encode("utf-8")) % self.dim] += 1.0

        norm = np.linalg.norm(vector)

        return vector / norm if norm else vector

    def embed(self, texts, batch_size=100):

        if not texts:
            return np.empty((0, self.dim), dtype="float32")

        return np.vstack([self._vector(t) for t in texts]).astype("float32")

    def get_dimension(self):
        return self.dim


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def storage_dir(tmp_path):
    return str(tmp_path / "storage")


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def vector_store(storage_dir, fake_embedder):
    return VectorStore(fake_embedder.get_dimension(), storage_dir)


@pytest.fixture
def services(storage_dir, fake_llm, fake_embedder, vector_store):
    return ServiceContainer(
        storage_dir=storage_dir,
        llm_client=fake_llm,
        embedder=fake_embedder,
        vector_store=vector_store,
    )


@pytest.fixture
def client(services):
    """FastAPI test client wired to isolated storage and fake services."""

    app.dependency_overrides[get_services] = lambda: services

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def upload_text_document(client):
    """Upload a plain text document and return the response JSON."""

    def _upload(text=SOLAR_TEXT, filename="solar.txt"):
        response = client.post(
            "/api/upload",
            files={"file": (filename, text.encode("utf-8"), "text/plain")},
        )
        assert response.status_code == 200, f"Upload failed: {response.json()}"
        return response.json()

    return _upload
