"""Lighter entry points over the same checker and resolvers.

``check_job`` answers for one record on demand; ``verify_active`` is the
daily health sweep (no scraping, no license work).
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import quote_plus

from applylink.ats import detect_ats
from applylink.config import Settings
from applylink.health import check_url, is_generic_url
from applylink.http import HttpClient, normalize_url
from applylink.log import get_logger
from applylink.models import JobRecord, UrlCheckResult, UrlStatus
from applylink.orchestrator import deactivate_expired
from applylink.sources import search_ats
from applylink.store import JobStore, StoreError, now_utc, to_iso

log = get_logger(__name__)

VERIFY_BATCH_SIZE = 10


@dataclass
class CheckOutcome:
    status: str
    apply_url: str | None
    final_url: str | None = None
    resolved_url: str | None = None
    source_url: str | None = None
    careers_url: str | None = None
    search_url: str = ""


@dataclass
class VerifySummary:
    checked: int = 0
    alive: int = 0
    dead: int = 0
    redirect: int = 0
    error: int = 0
    timeout: int = 0
    newly_flagged: int = 0
    deactivated_expired: int = 0
    elapsed_seconds: float = 0.0


def web_search_url(record: JobRecord) -> str:
    site = record.organization.website
    site = site.split("://", 1)[-1].strip("/") if site else ""
    query = f"site:{site} {record.title}" if site else f"{record.organization.name} {record.title}"
    return f"https://www.google.com/search?q={quote_plus(query.strip())}"


def _write(store: JobStore, job_id: str, fields: dict[str, Any], now: datetime) -> bool:
    try:
        store.update(job_id, {**fields, "updated_at": to_iso(now)})
        return True
    except StoreError as exc:
        log.error("Update of %s failed: %s", job_id, exc)
        return False


def check_job(
    store: JobStore,
    client: HttpClient,
    settings: Settings,
    job_id: str,
    *,
    dry_run: bool = False,
    now: datetime | None = None,
) -> CheckOutcome | None:
    record = store.get(job_id)
    if record is None:
        return None
    now = now or now_utc()
    apply_url = normalize_url(record.apply_url)
    careers_url = record.organization.careers_url or None

    result = (
        check_url(client, apply_url, body_scan_limit=settings.body_scan_limit)
        if apply_url else UrlCheckResult(UrlStatus.DEAD)
    )
    outcome = CheckOutcome(
        status=result.status.value,
        apply_url=apply_url,
        final_url=result.final_url,
        source_url=record.source_url,
        careers_url=careers_url,
        search_url=web_search_url(record),
    )

    fields: dict[str, Any] = {}
    if (result.status.is_dead or is_generic_url(apply_url)) and careers_url:
        ats = detect_ats(careers_url)
        resolved = None if ats.is_custom else search_ats(client, careers_url, record.title, ats=ats)
        if resolved:
            outcome.status = "resolved"
            outcome.resolved_url = outcome.apply_url = resolved.url
            fields = {
                "apply_url": resolved.url,
                "removal_detected_at": None,
                "last_verified_at": to_iso(now),
            }

    if not fields:
        if result.status.is_alive:
            fields = {"last_verified_at": to_iso(now)}
            if record.removal_detected_at is not None:
                fields["removal_detected_at"] = None
        elif result.status.is_dead and record.removal_detected_at is None:
            fields = {"removal_detected_at": to_iso(now)}

    if fields and not dry_run:
        _write(store, record.id, fields, now)
    log.info("Checked %s: %s", record.label, outcome.status)
    return outcome


def verify_active(
    store: JobStore,
    client: HttpClient,
    settings: Settings,
    *,
    dry_run: bool = False,
    now: datetime | None = None,
) -> VerifySummary:
    """Grace-period sweep, then a health check of every unflagged active record."""
    started = time.monotonic()
    now = now or now_utc()
    summary = VerifySummary()
    expired: set[str] = set()
    try:
        expired.update(deactivate_expired(store, now, settings.grace_days, dry_run=dry_run))
    except StoreError as exc:
        log.error("Grace-period sweep failed: %s", exc)
    summary.deactivated_expired = len(expired)

    records = [
        r for r in store.list_active()
        if r.removal_detected_at is None and r.id not in expired
    ]
    summary.checked = len(records)
    log.info("Checking %d active unflagged job(s)", len(records))

    def _check(record: JobRecord) -> UrlStatus:
        url = normalize_url(record.apply_url)
        if not url:
            return UrlStatus.ERROR
        return check_url(client, url, body_scan_limit=settings.body_scan_limit).status

    for start in range(0, len(records), VERIFY_BATCH_SIZE):
        batch = records[start: start + VERIFY_BATCH_SIZE]
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            statuses = list(pool.map(_check, batch))

        for record, status in zip(batch, statuses):
            if status.is_dead:
                summary.dead += 1
                if dry_run or _write(
                    store, record.id, {"removal_detected_at": to_iso(now)}, now
                ):
                    summary.newly_flagged += 1
            elif status.is_alive:
                if status is UrlStatus.REDIRECT:
                    summary.redirect += 1
                else:
                    summary.alive += 1
                if not dry_run:
                    _write(store, record.id, {"last_verified_at": to_iso(now)}, now)
            elif status is UrlStatus.TIMEOUT:
                summary.timeout += 1
            else:
                summary.error += 1

    summary.elapsed_seconds = round(time.monotonic() - started, 1)
    log.info(
        "Verification complete in %.1fs: %d alive, %d dead (flagged), %d redirect, "
        "%d error, %d timeout",
        summary.elapsed_seconds, summary.alive, summary.dead, summary.redirect,
        summary.error, summary.timeout,
    )
    return summary
