"""SmartRecruiters posting API — public, no key.

The search endpoint returns summaries only, so a matched posting costs a
second request for its description.
"""
from __future__ import annotations

from dataclasses import dataclass

import requests

from applylink.log import get_logger
from applylink.matching import find_best_match
from applylink.models import ATSDetection, ATSPlatform, ResolvedJob
from applylink.sources.base import PARSE_ERRORS, ATSResolver
from applylink.text import strip_html

log = get_logger(__name__)

PAGE_LIMIT = 20


@dataclass
class SmartRecruitersPosting:
    id: str
    title: str
    city: str

    @classmethod
    def from_json(cls, hit: dict) -> "SmartRecruitersPosting":
        return cls(
            id=str(hit.get("id") or ""),
            title=hit.get("name") or "",
            city=(hit.get("location") or {}).get("city") or "",
        )


def _description_html(detail: dict) -> str:
    sections = (detail.get("jobAd") or {}).get("sections") or {}
    return (sections.get("jobDescription") or {}).get("text") or ""


class SmartRecruitersResolver(ATSResolver):
    platform = ATSPlatform.SMARTRECRUITERS

    def _search(
        self, ats: ATSDetection, title: str, location: str | None
    ) -> ResolvedJob | None:
        data = self.client.get_json(
            f"{ats.api_base}/postings", params={"q": title, "limit": PAGE_LIMIT}
        )
        postings = [SmartRecruitersPosting.from_json(h) for h in data.get("content", [])]
        match = find_best_match(
            postings, title, location,
            get_title=lambda p: p.title,
            get_location=lambda p: p.city,
        )
        if not match or not match.id:
            return None

        description_html = ""
        try:
            detail = self.client.get_json(f"{ats.api_base}/postings/{match.id}")
            description_html = _description_html(detail)
        except (requests.RequestException, *PARSE_ERRORS) as exc:
            log.info("SmartRecruiters detail for %s unavailable: %s", match.id, exc)

        return ResolvedJob(
            url=f"https://jobs.smartrecruiters.com/{ats.company_slug}/{match.id}",
            title=match.title,
            location=match.city or None,
            description=strip_html(description_html),
            description_html=description_html,
        )
