"""Lever postings API — public, no key.

Docs: https://github.com/lever/postings-api
"""
from __future__ import annotations

from dataclasses import dataclass

from applylink.log import get_logger
from applylink.matching import find_best_match
from applylink.models import ATSDetection, ATSPlatform, ResolvedJob
from applylink.sources.base import ATSResolver
from applylink.text import strip_html

log = get_logger(__name__)


@dataclass
class LeverPosting:
    title: str
    location: str
    url: str
    description_plain: str
    description_html: str

    @classmethod
    def from_json(cls, hit: dict) -> "LeverPosting":
        return cls(
            title=hit.get("text") or "",
            location=(hit.get("categories") or {}).get("location") or "",
            url=hit.get("hostedUrl") or "",
            description_plain=hit.get("descriptionPlain") or "",
            description_html=hit.get("description") or "",
        )


class LeverResolver(ATSResolver):
    platform = ATSPlatform.LEVER

    def _search(
        self, ats: ATSDetection, title: str, location: str | None
    ) -> ResolvedJob | None:
        data = self.client.get_json(ats.api_base, params={"mode": "json"})
        postings = [LeverPosting.from_json(h) for h in data or []]
        log.debug("Lever %s lists %d postings", ats.company_slug, len(postings))

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
            description=match.description_plain or strip_html(match.description_html),
            description_html=match.description_html,
        )
