"""Read-only audit of stored apply URLs."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from urllib.parse import urlsplit

from applylink.health import is_generic_url
from applylink.http import normalize_url
from applylink.models import JobRecord
from applylink.store import JobStore, now_utc

STALE_DAYS = 14

URL_TYPES = ("specific", "generic", "missing")


@dataclass
class AuditEntry:
    id: str
    title: str
    organization: str
    apply_url: str | None
    url_type: str
    domain: str | None
    days_since_verified: int | None
    removal_detected: bool


@dataclass
class AuditSummary:
    total: int = 0
    specific: int = 0
    generic: int = 0
    missing: int = 0
    stale: int = 0
    removal_detected: int = 0
    generic_organizations: list[str] = field(default_factory=list)


def url_type(url: str | None) -> str:
    if not normalize_url(url):
        return "missing"
    return "generic" if is_generic_url(url) else "specific"


def _domain(url: str | None) -> str | None:
    url = normalize_url(url)
    if not url:
        return None
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def audit_entry(record: JobRecord, now: datetime) -> AuditEntry:
    days = None
    if record.last_verified_at is not None:
        days = (now - record.last_verified_at).days
    return AuditEntry(
        id=record.id,
        title=record.title,
        organization=record.organization.name,
        apply_url=record.apply_url,
        url_type=url_type(record.apply_url),
        domain=_domain(record.apply_url),
        days_since_verified=days,
        removal_detected=record.removal_detected_at is not None,
    )


def audit_urls(
    store: JobStore,
    *,
    only: str | None = None,
    organization: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Classify every active record's apply URL.

    The summary always covers all active records (of ``organization``);
    ``only`` ("generic" or "missing") narrows the returned entries.
    """
    if only is not None and only not in URL_TYPES:
        raise ValueError(f"unknown url type filter: {only!r}")
    now = now or now_utc()
    entries = [audit_entry(r, now) for r in store.list_active(organization)]

    summary = AuditSummary(total=len(entries))
    generic_orgs: set[str] = set()
    for e in entries:
        setattr(summary, e.url_type, getattr(summary, e.url_type) + 1)
        if e.days_since_verified is None or e.days_since_verified > STALE_DAYS:
            summary.stale += 1
        if e.removal_detected:
            summary.removal_detected += 1
        if e.url_type == "generic" and e.organization:
            generic_orgs.add(e.organization)
    summary.generic_organizations = sorted(generic_orgs)

    if only:
        entries = [e for e in entries if e.url_type == only]
    return {
        "summary": asdict(summary),
        "jobs": [asdict(e) for e in entries],
    }
