# tests/test_loader.py
import io

import pytest

from conftest import make_pdf
from docsight.memory import loader
from docsight.memory.loader import load_pdf_text, load_text


class FakeResponse:

    def __init__(self, status_code=200, text="", content=b""):
        self.status_code = status_code
        self.text = text
        self.content = content


class TestPdfLoading:
    """PDF text extraction from files, streams and URLs."""

    def test_pdf_file(self, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(make_pdf("Solar panels convert sunlight.", "Batteries store energy."))

        text = load_text(str(path))

        assert "Solar panels convert sunlight." in text
        assert "Batteries store energy." in text

    def test_pdf_stream(self):
        text = load_pdf_text(io.BytesIO(make_pdf("Wind turbines spin.")))

        assert "Wind turbines spin." in text

    def test_pdf_url_is_parsed_not_crawled(self, monkeypatch):
        requested = []

        def fake_get(url, **kwargs):
            requested.append(url)
            return FakeResponse(content=make_pdf("Solar panels convert sunlight."))

        monkeypatch.setattr(loader.requests, "get", fake_get)

        def no_crawl(url, *args, **kwargs):
            raise AssertionError("PDF URLs must not go through the HTML crawler")

        monkeypatch.setattr(loader, "load_html_docs_recursive", no_crawl)

        text = load_text("https://example.com/papers/solar.pdf?version=2")

        assert "Solar panels convert sunlight." in text
        assert not text.startswith("%PDF")
        assert requested == ["https://example.com/papers/solar.pdf?version=2"]

    def test_pdf_url_http_error(self, monkeypatch):
        monkeypatch.setattr(loader.requests, "get", lambda url, **kwargs: FakeResponse(status_code=404))

        with pytest.raises(ValueError):
            load_text("https://example.com/missing.pdf")


class TestTextLoading:

    def test_plain_text_file(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\nSolar is clean.", encoding="utf-8")

        assert load_text(str(path)) == "# Notes\nSolar is clean."

    def test_unsupported_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_text(str(tmp_path / "slides.pptx"))
