"""Greenhouse job board API — public, no key.

Docs: https://developers.greenhouse.io/job-board.html
"""
from __future__ import annotations

import html
from dataclasses import dataclass

from applylink.log import get_logger
from applylink.matching import find_best_match
from applylink.models import ATSDetection, ATSPlatform, ResolvedJob
from applylink.sources.base import ATSResolver
from applylink.text import strip_html

log = get_logger(__name__)


@dataclass
class GreenhousePosting:
    title: str
    location: str
    url: str
    content_html: str

    @classmethod
    def from_json(cls, hit: dict) -> "GreenhousePosting":
        # content arrives entity-escaped (&lt;p&gt;...)
        return cls(
            title=hit.get("title") or "",
            location=(hit.get("location") or {}).get("name") or "",
            url=hit.get("absolute_url") or "",
            content_html=html.unescape(hit.get("content") or ""),
        )


class GreenhouseResolver(ATSResolver):
    platform = ATSPlatform.GREENHOUSE

    def _search(
        self, ats: ATSDetection, title: str, location: str | None
    ) -> ResolvedJob | None:
        data = self.client.get_json(f"{ats.api_base}/jobs", params={"content": "true"})
        postings = [GreenhousePosting.from_json(h) for h in data.get("jobs", [])]
        log.debug("Greenhouse %s lists %d jobs", ats.company_slug, len(postings))

        match = find_best_match(
            postings, title, location,
            get_title=lambda p: p.title,
            get_location=lambda p: p.location,
        )
        if not match or not match.url:
            return None
        return ResolvedJob(
            url=match.url,
            title=match.title,
            location=match.location or None,
            description=strip_html(match.content_html),
            description_html=match.content_html,
        )
