# docsight/web/scraper.py

"""
One-shot analysis of a web page or online PDF.

PDF URLs are downloaded and parsed with pypdf. Other URLs are fetched
with requests, falling back to a headless browser when the static fetch
fails. Sites that answer 403 get a degraded result flagged ``blocked``
instead of an exception.
"""

import io
import logging
import re
from typing import Any, Dict, List
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from pypdf import PdfReader

from docsight.config import (
    BROWSER_USER_AGENT,
    WEB_HTML_MAX_CHARACTERS,
    WEB_MAX_IMAGES,
    WEB_PDF_MAX_CHARACTERS,
    WEB_REQUEST_TIMEOUT,
)
from docsight.llm.json_utils import parse_llm_object
from docsight.memory.loader import fetch_rendered_html
from docsight.prompts.prompt_builder import (
    build_image_analysis_prompt,
    build_scholarly_prompt,
    build_web_summary_prompt,
)


logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

BLOCKED_SUMMARY = (
    "Access Denied (403 Forbidden). The website is blocking automated access. "
    "Download the document manually and upload it instead."
)


class WebAccessBlocked(Exception):
    """The site answered 403."""


class WebAnalysisError(Exception):
    """The URL could not be fetched or parsed."""


def browser_headers(url: str) -> Dict[str, str]:

    parsed = urlparse(url)

    return {
        "User-Agent": BROWSER_USER_AGENT,
        "Referer": f"{parsed.scheme}://{parsed.netloc}",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def _get(url: str) -> requests.Response:

    try:
        response = requests.get(url, headers=browser_headers(url), timeout=WEB_REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise WebAnalysisError(f"Failed to fetch {url}: {e}")

    if response.status_code == 403:
        raise WebAccessBlocked(url)

    if response.status_code >= 400:
        raise WebAnalysisError(f"Failed to fetch {url}: HTTP {response.status_code}")

    return response


# ============================================================
# PDF
# ============================================================

def fetch_pdf_text(url: str) -> str:

    response = _get(url)

    try:
        reader = PdfReader(io.BytesIO(response.content))
        text = " ".join(page.extract_text() or "" for page in reader.pages)
    except Exception as e:
        raise WebAnalysisError(f"Failed to parse PDF from {url}: {e}")

    return collapse_whitespace(text)[:WEB_PDF_MAX_CHARACTERS]


# ============================================================
# HTML
# ============================================================

def fetch_html(url: str) -> str:

    try:
        return _get(url).text
    except WebAccessBlocked:
        raise
    except WebAnalysisError as e:
        logger.warning("Static fetch failed, trying headless browser", extra={"url": url, "error": str(e)})

    try:
        return fetch_rendered_html(url)
    except Exception as e:
        raise WebAnalysisError(f"Failed to render {url}: {e}")


def parse_html(url: str, html: str) -> Dict[str, Any]:

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style"]):
        tag.decompose()

    title = soup.title.get_text(strip=True) if soup.title else ""

    images: List[Dict[str, str]] = []

    for img in soup.find_all("img"):

        src = img.get("src")
        alt = img.get("alt")
        img_title = img.get("title")

        if not src or src.startswith("data:") or not (alt or img_title):
            continue

        parent_text = img.parent.get_text(" ", strip=True) if img.parent else ""

        images.append(
            {
                "src": urljoin(url, src),
                "alt": alt or "",
                "title": img_title or "",
                "context": parent_text[:100],
            }
        )

        if len(images) >= WEB_MAX_IMAGES:
            break

    body = soup.body or soup

    return {
        "title": title,
        "text": collapse_whitespace(body.get_text(" "))[:WEB_HTML_MAX_CHARACTERS],
        "images": images,
    }


# ============================================================
# ANALYSIS
# ============================================================

def is_pdf_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(".pdf")


def blocked_result(url: str) -> Dict[str, Any]:

    return {
        "url": url,
        "title": url.rstrip("/").split("/")[-1] or url,
        "source": "pdf" if is_pdf_url(url) else "html",
        "summary": BLOCKED_SUMMARY,
        "image_analysis": "Cannot analyze protected document.",
        "scholarly_data": None,
        "text_content": "",
        "images": [],
        "blocked": True,
    }


def analyze_url(url: str, llm_client) -> Dict[str, Any]:
    """
    Fetch ``url`` and produce a summary, image analysis and scholarly data.

    Raises WebAnalysisError when the content cannot be fetched; returns a
    ``blocked`` result on HTTP 403.
    """

    is_pdf = is_pdf_url(url)

    try:

        if is_pdf:
            page = {"title": "", "text": fetch_pdf_text(url), "images": []}
        else:
            page = parse_html(url, fetch_html(url))

    except WebAccessBlocked:

        logger.warning("Website blocked automated access", extra={"url": url})

        return blocked_result(url)

    if not page["text"]:
        raise WebAnalysisError(f"No text content found at {url}")

    title = page["title"] or url.rstrip("/").split("/")[-1] or url

    summary = llm_client.generate(build_web_summary_prompt(title, url, page["text"]), max_tokens=1000)

    if page["images"]:
        image_analysis = llm_client.generate(build_image_analysis_prompt(title, page["images"][:10]))
    else:
        image_analysis = "No images found."

    scholarly_response = llm_client.generate(build_scholarly_prompt(title, page["text"][:8000]))

    scholarly_data = parse_llm_object(scholarly_response) or scholarly_response

    logger.info(
        "Web analysis complete",
        extra={"url": url, "characters": len(page["text"]), "images": len(page["images"])},
    )

    return {
        "url": url,
        "title": title,
        "source": "pdf" if is_pdf else "html",
        "summary": summary,
        "image_analysis": image_analysis,
        "scholarly_data": scholarly_data,
        "text_content": page["text"],
        "images": page["images"],
        "blocked": False,
    }
