"""Classify an apply URL as alive, moved, dead, soft-404, timed out or errored.

One HEAD probe per URL; if the transport fails outright (or the server
refuses HEAD) a single GET follows. Redirects are judged by the path they
land on, and HTML bodies, when one was fetched, by their content.
"""
from __future__ import annotations

import re
from urllib.parse import urlsplit

import requests

from applylink.config import HTML_ACCEPT
from applylink.http import HttpClient, normalize_url
from applylink.log import get_logger
from applylink.models import UrlCheckResult, UrlStatus
from applylink.text import any_match, is_soft_404

log = get_logger(__name__)

DEAD_STATUSES = frozenset({404, 410})

# HEAD answers that say nothing about the page itself.
_HEAD_REFUSED = frozenset({405, 501})

DEAD_LANDING_PATTERNS = (
    re.compile(r"/404", re.I),
    re.compile(r"/not[-_]?found", re.I),
    re.compile(r"/error", re.I),
    re.compile(r"/careers?/?$", re.I),
    re.compile(r"/search[-_]?jobs?/?$", re.I),
    re.compile(r"/job[-_]search/?$", re.I),
)

_BARE_LISTING_PATH = re.compile(r"^/?(careers?|jobs?|search|openings?)?/?$", re.I)

GENERIC_PATH_PATTERNS = (
    re.compile(r"/careers/?$"),
    re.compile(r"/search-jobs/?$"),
    re.compile(r"/search-results/?$"),
    re.compile(r"/job-search-results/?$"),
    re.compile(r"/early-careers?/?$"),
    re.compile(r"/entry-level/?$"),
    re.compile(r"/students?/?$"),
    re.compile(r"/students-and-graduates/?$"),
    re.compile(r"/career-discovery-programs/?$"),
    re.compile(r"/open-positions/?$"),
    re.compile(r"/find-open-positions/?$"),
    re.compile(r"/new-analyst-program/?$"),
    re.compile(r"/campus/?$"),
    re.compile(r"/jobboard/?"),
)

# (host test, path test): pages on these hosts that list roles rather than hold one.
GENERIC_HOST_RULES = (
    (
        lambda host: host.endswith("myworkdayjobs.com"),
        lambda path: not re.search(r"/job/[^/]+", path),
    ),
    (lambda host: host == "higher.gs.com", lambda path: path.rstrip("/") == "/roles"),
)

_SHORT_CAREERS_PATH = re.compile(r"career|jobs|hiring", re.I)


def is_dead_landing(path: str) -> bool:
    return path in ("", "/") or any_match(DEAD_LANDING_PATTERNS, path)


def is_generic_url(url: str | None) -> bool:
    """True when the URL is a careers/search landing page, not one posting.

    A missing URL counts as generic.
    """
    url = normalize_url(url)
    if not url:
        return True
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    path = parts.path.lower()
    host = (parts.hostname or "").lower()

    if _BARE_LISTING_PATH.match(path):
        return True
    if any_match(GENERIC_PATH_PATTERNS, path):
        return True
    for host_test, path_test in GENERIC_HOST_RULES:
        if host_test(host) and path_test(path):
            return True
    segments = [s for s in path.split("/") if s]
    return len(segments) <= 2 and bool(_SHORT_CAREERS_PATH.search(path))


def _path(url: str) -> str:
    try:
        return urlsplit(url).path
    except ValueError:
        return ""


def _probe(client: HttpClient, url: str) -> tuple[requests.Response, bool]:
    """Return the response and whether it carries a body (GET)."""
    try:
        resp = client.head(url)
    except requests.Timeout:
        raise
    except requests.RequestException as exc:
        log.debug("HEAD %s failed (%s), retrying with GET", url, exc)
        return client.get(url, accept=HTML_ACCEPT), True
    if resp.status_code in _HEAD_REFUSED:
        log.debug("HEAD %s refused (%d), retrying with GET", url, resp.status_code)
        return client.get(url, accept=HTML_ACCEPT), True
    return resp, False


def classify_response(
    requested_url: str,
    resp: requests.Response,
    *,
    has_body: bool = True,
    body_scan_limit: int = 30_000,
) -> UrlCheckResult:
    final_url = resp.url or requested_url
    status = resp.status_code

    if status in DEAD_STATUSES:
        return UrlCheckResult(UrlStatus.DEAD, final_url)
    # 5xx and the remaining 4xx say nothing certain about the posting
    if status >= 400:
        return UrlCheckResult(UrlStatus.ERROR, final_url)

    final_path = _path(final_url)
    if final_path != _path(requested_url):
        if is_dead_landing(final_path):
            return UrlCheckResult(UrlStatus.DEAD, final_url)
        return UrlCheckResult(UrlStatus.REDIRECT, final_url)

    content_type = resp.headers.get("content-type", "")
    if not has_body or "text/html" not in content_type:
        return UrlCheckResult(UrlStatus.ALIVE, final_url)

    body = resp.text or ""
    if is_soft_404(body, body_scan_limit):
        return UrlCheckResult(UrlStatus.SOFT_404, final_url, body)
    return UrlCheckResult(UrlStatus.ALIVE, final_url, body)


def check_url(
    client: HttpClient, url: str, *, body_scan_limit: int = 30_000
) -> UrlCheckResult:
    """Probe ``url`` and classify the outcome. Never raises for network errors."""
    try:
        resp, has_body = _probe(client, url)
    except requests.Timeout:
        log.debug("Timed out checking %s", url)
        return UrlCheckResult(UrlStatus.TIMEOUT)
    except requests.RequestException as exc:
        log.debug("Error checking %s: %s", url, exc)
        return UrlCheckResult(UrlStatus.ERROR)
    return classify_response(
        url, resp, has_body=has_body, body_scan_limit=body_scan_limit
    )
