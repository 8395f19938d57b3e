"""Detect which applicant tracking system a careers URL belongs to.

Pure string work, no network: each row of ``ATS_PATTERNS`` is tried against
the hostname first and then the raw URL, and the first hit decides the
platform, the company slug and the API base the resolvers talk to.
"""
from __future__ import annotations

import re
from typing import Callable, Pattern
from urllib.parse import SplitResult, urlsplit

from applylink.http import normalize_url
from applylink.models import ATSDetection, ATSPlatform

_LOCALE_SEGMENT = re.compile(r"^[a-z]{2}(?:-[a-z]{2})?$", re.I)


def _origin(url: SplitResult) -> str:
    return f"{url.scheme}://{url.netloc}"


def _workday(m: re.Match, url: SplitResult) -> ATSDetection:
    # Site root is /<site> or /<locale>/<site>; everything after is a posting path.
    segments = [s for s in url.path.split("/") if s]
    keep = 2 if segments and _LOCALE_SEGMENT.match(segments[0]) else 1
    site_root = "/".join(segments[:keep])
    return ATSDetection(
        ATSPlatform.WORKDAY,
        company_slug=m.group(1),
        api_base=f"{_origin(url)}/{site_root}" if site_root else _origin(url),
    )


def _greenhouse(m: re.Match, url: SplitResult) -> ATSDetection:
    slug = m.group(1) or m.group(2)
    return ATSDetection(
        ATSPlatform.GREENHOUSE,
        company_slug=slug,
        api_base=f"https://boards-api.greenhouse.io/v1/boards/{slug}",
    )


def _lever(m: re.Match, url: SplitResult) -> ATSDetection:
    return ATSDetection(
        ATSPlatform.LEVER,
        company_slug=m.group(1),
        api_base=f"https://api.lever.co/v0/postings/{m.group(1)}",
    )


def _icims(m: re.Match, url: SplitResult) -> ATSDetection:
    return ATSDetection(ATSPlatform.ICIMS, company_slug=m.group(1), api_base=_origin(url))


def _smartrecruiters(m: re.Match, url: SplitResult) -> ATSDetection:
    return ATSDetection(
        ATSPlatform.SMARTRECRUITERS,
        company_slug=m.group(1),
        api_base=f"https://api.smartrecruiters.com/v1/companies/{m.group(1)}",
    )


def _taleo(m: re.Match, url: SplitResult) -> ATSDetection:
    return ATSDetection(ATSPlatform.TALEO, company_slug=m.group(1), api_base=_origin(url))


Factory = Callable[[re.Match, SplitResult], ATSDetection]

ATS_PATTERNS: tuple[tuple[Pattern[str], ATSPlatform, Factory], ...] = (
    (
        re.compile(r"([a-z0-9-]+)\.(?:wd\d+\.)?myworkdayjobs\.com", re.I),
        ATSPlatform.WORKDAY,
        _workday,
    ),
    (
        # boards.greenhouse.io/<slug>, job-boards.greenhouse.io/<slug> or <slug>.greenhouse.io
        re.compile(
            r"(?:(?:job-)?boards\.greenhouse\.io/([a-z0-9_-]+)"
            r"|(?<![a-z0-9-])(?!(?:job-)?boards\.)([a-z0-9-]+)\.greenhouse\.io)",
            re.I,
        ),
        ATSPlatform.GREENHOUSE,
        _greenhouse,
    ),
    (re.compile(r"jobs\.lever\.co/([a-z0-9_-]+)", re.I), ATSPlatform.LEVER, _lever),
    (re.compile(r"careers?-?([a-z0-9-]+)\.icims\.com", re.I), ATSPlatform.ICIMS, _icims),
    (
        re.compile(r"(?:jobs|careers)\.smartrecruiters\.com/([a-z0-9_-]+)", re.I),
        ATSPlatform.SMARTRECRUITERS,
        _smartrecruiters,
    ),
    (re.compile(r"([a-z0-9-]+)\.oraclecloud\.com", re.I), ATSPlatform.TALEO, _taleo),
)

CUSTOM = ATSDetection(ATSPlatform.CUSTOM)


def detect_ats(url: str | None) -> ATSDetection:
    raw = normalize_url(url)
    if not raw:
        return CUSTOM
    try:
        parsed = urlsplit(raw)
    except ValueError:
        return CUSTOM
    host = parsed.hostname or ""
    for pattern, _platform, factory in ATS_PATTERNS:
        m = pattern.search(host) or pattern.search(raw)
        if m:
            return factory(m, parsed)
    return CUSTOM
