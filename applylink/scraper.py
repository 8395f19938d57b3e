"""Pull a job description out of a posting page's raw HTML.

No rendering: JSON-LD ``JobPosting`` first, then a description-like
container, then a window around the first job-content keyword.
"""
from __future__ import annotations

import json
import re

import requests
from bs4 import BeautifulSoup

from applylink.config import HTML_ACCEPT
from applylink.http import HttpClient, normalize_url
from applylink.log import get_logger
from applylink.models import ScrapeResult
from applylink.text import has_job_content, strip_html

log = get_logger(__name__)

MIN_CONTAINER_CHARS = 200
WINDOW_BEFORE = 500
WINDOW_AFTER = 10_000

CONTAINER_TAGS = ["div", "section", "article"]
CONTAINER_DATA_ATTRS = ("data-description", "data-job-description", "data-jobdescription")
CONTAINER_CLASS = re.compile(
    r"job[-_]?description|posting[-_]?description|job[-_]?details"
    r"|job[-_]?content|description[-_]?body",
    re.I,
)
CONTAINER_ID = re.compile(r"job[-_]?description|posting[-_]?body|job[-_]?details", re.I)

_SECTION_KEYWORD = re.compile(
    r"responsibilities|qualifications|requirements|about the role|what you(?:'|&#39;|’)ll do",
    re.I,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _is_job_posting(node: object) -> bool:
    if not isinstance(node, dict):
        return False
    kind = node.get("@type")
    return kind == "JobPosting" or (isinstance(kind, list) and "JobPosting" in kind)


def _find_job_posting(data: object) -> dict | None:
    if _is_job_posting(data):
        return data  # type: ignore[return-value]
    if isinstance(data, dict) and isinstance(data.get("@graph"), list):
        data = data["@graph"]
    if isinstance(data, list):
        for item in data:
            if _is_job_posting(item):
                return item
    return None


def _structured_description(soup: BeautifulSoup) -> str:
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw.strip())
        except ValueError:
            continue
        posting = _find_job_posting(data)
        if posting and isinstance(posting.get("description"), str) and posting["description"]:
            return posting["description"]
    return ""


def _containers(soup: BeautifulSoup):
    for attr in CONTAINER_DATA_ATTRS:
        yield from soup.find_all(CONTAINER_TAGS, attrs={attr: True})
    yield from soup.find_all(CONTAINER_TAGS, attrs={"class": CONTAINER_CLASS})
    yield from soup.find_all(CONTAINER_TAGS, attrs={"id": CONTAINER_ID})


def _container_description(soup: BeautifulSoup) -> str:
    for tag in _containers(soup):
        inner = tag.decode_contents()
        if len(inner) > MIN_CONTAINER_CHARS:
            return inner
    return ""


def _keyword_window(html: str) -> str:
    m = _SECTION_KEYWORD.search(html)
    if not m:
        return ""
    start = m.start()
    return html[max(0, start - WINDOW_BEFORE): start + WINDOW_AFTER]


def _title(soup: BeautifulSoup) -> str | None:
    for tag in (soup.find("h1"), soup.title):
        if tag is None:
            continue
        text = tag.get_text(" ", strip=True)
        if text:
            return text
    return None


def _description_html(soup: BeautifulSoup, html: str) -> str:
    return (
        _structured_description(soup)
        or _container_description(soup)
        or _keyword_window(html)
    )


def extract_title(html: str) -> str | None:
    """Text of the first h1, inline markup included, else the page title."""
    return _title(_soup(html))


def extract_description_html(html: str) -> str:
    return _description_html(_soup(html), html)


def parse_job_page(html: str) -> ScrapeResult:
    if not has_job_content(html):
        return ScrapeResult("not-found")
    soup = _soup(html)
    description_html = _description_html(soup, html)
    return ScrapeResult(
        "ok",
        title=_title(soup),
        description=strip_html(description_html),
        description_html=description_html,
    )


def scrape_job_page(client: HttpClient, url: str) -> ScrapeResult:
    url = normalize_url(url) or ""
    if not url:
        return ScrapeResult("not-found")
    try:
        r = client.get(url, accept=HTML_ACCEPT)
    except requests.RequestException as exc:
        log.debug("Scrape of %s failed: %s", url, exc)
        return ScrapeResult("error")
    if r.status_code in (404, 410):
        return ScrapeResult("not-found")
    if not r.ok:
        return ScrapeResult("error")
    return parse_job_page(r.text or "")
