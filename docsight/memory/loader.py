# docsight/memory/loader.py

"""
Text extraction for uploaded files and document URLs.

Pipeline:
loader → chunker → embedder → vector_store

Supports:
- PDF files and PDF URLs (pypdf)
- Plain text and markdown files
- Raw text / markdown URLs
- Static HTML pages (bounded same-domain crawl)
- JS-rendered pages (Playwright fallback)
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import BinaryIO, List, Union
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from playwright.sync_api import sync_playwright
from pypdf import PdfReader

from docsight.config import (
    BROWSER_USER_AGENT,
    MAX_DOCUMENT_CHARACTERS,
    MAX_HTML_PAGES,
    WEB_REQUEST_TIMEOUT,
)


logger = logging.getLogger(__name__)

# Playwright's sync API refuses to run on a thread with an event loop
PLAYWRIGHT_EXECUTOR = ThreadPoolExecutor(max_workers=2)

MIN_STATIC_TEXT_CHARS = 1500

TEXT_EXTENSIONS = (".txt", ".md", ".markdown")


# ============================================================
# SAFETY: CHARACTER LIMIT
# ============================================================

def enforce_character_limit(text: str, limit: int = MAX_DOCUMENT_CHARACTERS) -> str:

    if not text:
        return ""

    if len(text) > limit:
        return text[:limit]

    return text


# ============================================================
# FILE LOADERS
# ============================================================

def load_pdf_text(source: Union[str, BinaryIO]) -> str:
    """Extract text from a PDF path or binary stream."""

    reader = PdfReader(source)

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return enforce_character_limit("\n".join(parts))


def load_plain_text(file_path: str) -> str:

    with open(file_path, "r", encoding="utf-8", errors="replace") as f:
        return enforce_character_limit(f.read())


# ============================================================
# HTML
# ============================================================

def extract_clean_text(html: str) -> str:

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup([
        "script",
        "style",
        "nav",
        "footer",
        "header",
        "aside",
        "noscript"
    ]):
        tag.decompose()

    lines = (line.strip() for line in soup.get_text(separator="\n").splitlines())

    return "\n".join(line for line in lines if line)


def load_raw_text_url(source: str) -> str:

    resp = requests.get(
        source,
        timeout=WEB_REQUEST_TIMEOUT,
        headers={"User-Agent": BROWSER_USER_AGENT},
    )

    if resp.status_code != 200:
        raise ValueError(f"Failed to fetch {source}: HTTP {resp.status_code}")

    return enforce_character_limit(resp.text)


def load_pdf_url(source: str) -> str:

    resp = requests.get(
        source,
        timeout=WEB_REQUEST_TIMEOUT,
        headers={"User-Agent": BROWSER_USER_AGENT},
    )

    if resp.status_code != 200:
        raise ValueError(f"Failed to fetch {source}: HTTP {resp.status_code}")

    return load_pdf_text(io.BytesIO(resp.content))


def load_html_docs_recursive(base_url: str, max_pages: int = MAX_HTML_PAGES) -> str:
    """Breadth-first crawl of same-domain links starting at ``base_url``."""

    visited = set()

    queue: List[str] = [base_url]

    collected = []

    base_domain = urlparse(base_url).netloc

    total_chars = 0

    while queue and len(visited) < max_pages:

        url = queue.pop(0)

        if url in visited:
            continue

        visited.add(url)

        try:

            resp = requests.get(
                url,
                timeout=WEB_REQUEST_TIMEOUT,
                headers={"User-Agent": BROWSER_USER_AGENT},
            )

        except requests.RequestException as e:

            logger.warning("Crawl fetch failed", extra={"url": url, "error": str(e)})
            continue

        if resp.status_code != 200:
            continue

        text = extract_clean_text(resp.text)

        if text and len(text) > 300:

            collected.append(text)

            total_chars += len(text)

            if total_chars > MAX_DOCUMENT_CHARACTERS:
                break

        soup = BeautifulSoup(resp.text, "html.parser")

        for link in soup.find_all("a", href=True):

            full_url = urljoin(url, link["href"]).split("#")[0]

            if (
                urlparse(full_url).netloc == base_domain
                and full_url not in visited
                and full_url not in queue
            ):
                queue.append(full_url)

    logger.info(
        "Static crawl complete",
        extra={"url": base_url, "pages": len(visited), "characters": total_chars},
    )

    return enforce_character_limit("\n\n".join(collected))


# ============================================================
# PLAYWRIGHT
# ============================================================

def _playwright_fetch_sync(url: str) -> str:

    with sync_playwright() as p:

        browser = p.chromium.launch(
            headless=True,
            args=[
                "--no-sandbox",
                "--disable-dev-shm-usage",
                "--disable-gpu",
            ]
        )

        try:

            page = browser.new_page(user_agent=BROWSER_USER_AGENT)

            page.goto(url, timeout=WEB_REQUEST_TIMEOUT * 1000, wait_until="domcontentloaded")

            page.wait_for_timeout(2000)

            html = page.content()

        finally:

            browser.close()

    return html


def fetch_rendered_html(url: str) -> str:
    """Render ``url`` in headless Chromium and return the page HTML."""

    future = PLAYWRIGHT_EXECUTOR.submit(_playwright_fetch_sync, url)

    return future.result()


def load_dynamic_html_playwright(url: str) -> str:

    return enforce_character_limit(extract_clean_text(fetch_rendered_html(url)))


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def load_text(source: str) -> str:

    lowered = source.lower()

    if lowered.startswith(("http://", "https://")):

        path = urlparse(lowered).path

        if path.endswith(".pdf"):
            return load_pdf_url(source)

        if path.endswith(TEXT_EXTENSIONS) or urlparse(lowered).netloc == "raw.githubusercontent.com":
            return load_raw_text_url(source)

        static_text = load_html_docs_recursive(source)

        # Only invoke Playwright if static crawl insufficient
        if len(static_text) < MIN_STATIC_TEXT_CHARS:

            try:

                dynamic_text = load_dynamic_html_playwright(source)

            except Exception as e:

                logger.warning(
                    "Playwright fallback failed",
                    extra={"url": source, "error": str(e)},
                )

                return static_text

            if len(dynamic_text) > len(static_text):
                return dynamic_text

        return static_text

    if lowered.endswith(".pdf"):
        return load_pdf_text(source)

    if lowered.endswith(TEXT_EXTENSIONS):
        return load_plain_text(source)

    raise ValueError(f"Unsupported source: {source}")
