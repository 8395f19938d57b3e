"""Workday career sites.

The listing JSON differs between tenants: postings sit either under
``jobPostings`` or under ``body.children[0].children``. A match is only
usable when it carries an ``externalPath``.
"""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from applylink.log import get_logger
from applylink.matching import find_best_match
from applylink.models import ATSDetection, ATSPlatform, ResolvedJob
from applylink.sources.base import ATSResolver

log = get_logger(__name__)


@dataclass
class WorkdayPosting:
    title: str
    location: str
    external_path: str

    @classmethod
    def from_json(cls, hit: dict) -> "WorkdayPosting":
        bullets = hit.get("bulletFields") or []
        return cls(
            title=str(hit.get("title") or (bullets[0] if bullets else "")),
            location=str(hit.get("locationsText") or ""),
            external_path=hit.get("externalPath") or "",
        )


def _postings(data: dict) -> list:
    postings = data.get("jobPostings")
    if isinstance(postings, list):
        return postings
    children = (data.get("body") or {}).get("children") or []
    if children and isinstance(children[0], dict):
        nested = children[0].get("children")
        if isinstance(nested, list):
            return nested
    return []


class WorkdayResolver(ATSResolver):
    platform = ATSPlatform.WORKDAY

    def _search(
        self, ats: ATSDetection, title: str, location: str | None
    ) -> ResolvedJob | None:
        data = self.client.get_json(ats.api_base, params={"q": title, "format": "json"})
        postings = [
            WorkdayPosting.from_json(h) for h in _postings(data) if isinstance(h, dict)
        ]
        log.debug("Workday %s returned %d postings", ats.company_slug, len(postings))

        match = find_best_match(
            postings, title, location,
            get_title=lambda p: p.title,
            get_location=lambda p: p.location,
        )
        if not match or not match.external_path:
            return None

        parts = urlsplit(ats.api_base)
        return ResolvedJob(
            url=f"{parts.scheme}://{parts.netloc}{match.external_path}",
            title=match.title or title,
            location=match.location or None,
        )
