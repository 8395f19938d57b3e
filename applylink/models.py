"""Data models for job records, URL checks, ATS resolution and licenses."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class UrlStatus(str, Enum):
    ALIVE = "alive"
    REDIRECT = "redirect"
    DEAD = "dead"
    SOFT_404 = "soft-404"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def is_alive(self) -> bool:
        return self in (UrlStatus.ALIVE, UrlStatus.REDIRECT)

    @property
    def is_dead(self) -> bool:
        return self in (UrlStatus.DEAD, UrlStatus.SOFT_404)


class ATSPlatform(str, Enum):
    WORKDAY = "workday"
    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    ICIMS = "icims"
    SMARTRECRUITERS = "smartrecruiters"
    TALEO = "taleo"
    CUSTOM = "custom"


NONE_FOUND = "None Required"


@dataclass(frozen=True)
class OrganizationRef:
    name: str = ""
    website: str = ""
    careers_url: str = ""


@dataclass
class JobRecord:
    id: str
    title: str
    apply_url: str | None = None
    source_url: str | None = None
    description: str = ""
    licenses: list[str] = field(default_factory=list)
    last_verified_at: datetime | None = None
    removal_detected_at: datetime | None = None
    is_active: bool = True
    posted_date: str | None = None
    organization: OrganizationRef = field(default_factory=OrganizationRef)

    @property
    def label(self) -> str:
        return f"{self.organization.name or 'Unknown'} - {self.title}"


@dataclass(frozen=True)
class ATSDetection:
    platform: ATSPlatform
    company_slug: str | None = None
    api_base: str | None = None

    @property
    def is_custom(self) -> bool:
        return self.platform is ATSPlatform.CUSTOM


@dataclass
class UrlCheckResult:
    status: UrlStatus
    final_url: str | None = None
    body: str | None = None


@dataclass
class ResolvedJob:
    url: str
    title: str
    location: str | None = None
    description: str = ""
    description_html: str = ""


@dataclass
class ScrapeResult:
    status: str  # "ok" | "not-found" | "error"
    title: str | None = None
    description: str = ""
    description_html: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class LicenseAnalysis:
    licenses_found: list[str]
    is_required: bool
    is_preferred: bool
    raw_matches: list[str] = field(default_factory=list)

    @property
    def has_licenses(self) -> bool:
        return NONE_FOUND not in self.licenses_found


@dataclass
class LicenseInfo:
    study_time_days: int | None = None
    pass_deadline_days: int | None = None
    max_attempts: int | None = None
    prep_materials_paid: bool | None = None
    notes: str | None = None
