"""
Apply URL resolution run.

Runs: grace-period sweep → per record: check → resolve → scrape → licenses → persist.
Records are processed in fixed-size batches with a pause between batches.
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from applylink.ats import detect_ats
from applylink.config import Settings
from applylink.health import check_url, is_generic_url
from applylink.http import HttpClient, normalize_url
from applylink.licenses import extract_licenses, license_info
from applylink.log import get_logger
from applylink.models import JobRecord, ResolvedJob
from applylink.report import BatchReport
from applylink.scraper import scrape_job_page
from applylink.sources import search_ats
from applylink.store import JobStore, StoreError, now_utc, to_iso

log = get_logger(__name__)

MIN_RESOLVED_DESCRIPTION = 100
SHORT_DESCRIPTION = 200
MIN_LICENSE_TEXT = 50


@dataclass
class RunOptions:
    dry_run: bool = False
    dead_only: bool = False
    organization: str | None = None
    limit: int | None = None


@dataclass
class RunContext:
    store: JobStore
    client: HttpClient
    settings: Settings
    options: RunOptions
    now: datetime
    report: BatchReport = field(default_factory=BatchReport)


def grace_cutoff(now: datetime, grace_days: int) -> datetime:
    return now - timedelta(days=grace_days)


def deactivate_expired(
    store: JobStore, now: datetime, grace_days: int, *, dry_run: bool = False
) -> list[str]:
    """Deactivate records flagged dead for longer than the grace period.

    Returns the ids swept out, including those a dry run only reports, so
    callers can leave them out of the records they go on to check.
    """
    expired = store.find_expired(grace_cutoff(now, grace_days))
    ids = [r.id for r in expired]
    if not ids:
        return ids
    if dry_run:
        for r in expired:
            log.info("Would deactivate %s (flagged %s)", r.label, to_iso(r.removal_detected_at))
        return ids
    count = store.deactivate(ids, now)
    log.info("Deactivated %d job(s) flagged more than %d day(s) ago", count, grace_days)
    return ids


def _persist(ctx: RunContext, record: JobRecord, staged: dict[str, Any], prefix: str) -> None:
    if not staged:
        return
    ctx.report.add("updates", {"id": record.id, "job": record.label, "fields": sorted(staged)})
    if ctx.options.dry_run:
        log.info("%s   -> Would update: %s", prefix, ", ".join(staged))
        return
    try:
        ctx.store.update(record.id, {**staged, "updated_at": to_iso(ctx.now)})
    except StoreError as exc:
        log.error("%s   -> STORE UPDATE ERROR: %s", prefix, exc)
        ctx.report.add_error(record.id, record.label, str(exc))


def _stage_description(
    ctx: RunContext, staged: dict[str, Any], description: str, prefix: str
) -> None:
    staged["description"] = description[: ctx.settings.description_cap]
    ctx.report.count("descriptions_scraped")
    log.info("%s   -> Description (%d chars)", prefix, len(description))


def _stage_licenses(
    ctx: RunContext, record: JobRecord, staged: dict[str, Any]
) -> None:
    text = staged.get("description") or record.description or ""
    if len(text) <= MIN_LICENSE_TEXT:
        return
    analysis = extract_licenses(text)
    if set(analysis.licenses_found) == set(record.licenses):
        return
    staged["licenses_required"] = analysis.licenses_found
    staged["licenses_info"] = license_info(analysis)
    ctx.report.count("licenses_updated")
    if analysis.has_licenses:
        ctx.report.add("licenses_detected", {
            "id": record.id,
            "job": record.label,
            "licenses": analysis.licenses_found,
            "required": analysis.is_required,
            "preferred": analysis.is_preferred,
            "evidence": analysis.raw_matches[:2],
        })


def process_record(ctx: RunContext, record: JobRecord, idx: int, total: int) -> None:
    prefix = f"[{idx}/{total}]"
    settings = ctx.settings
    report = ctx.report

    apply_url = normalize_url(record.apply_url)
    status = (
        check_url(ctx.client, apply_url, body_scan_limit=settings.body_scan_limit).status
        if apply_url else None
    )
    is_alive = status is not None and status.is_alive
    is_dead = status is None or status.is_dead
    is_generic = is_generic_url(apply_url)

    if ctx.options.dead_only and is_alive and not is_generic:
        report.count("skipped")
        return
    report.count("processed")

    if is_alive and not is_generic:
        report.count("alive")
        log.info("%s ALIVE: %s", prefix, record.label)
    elif is_dead:
        log.info("%s DEAD:  %s  %s", prefix, record.label, apply_url or "(no URL)")
    elif is_generic:
        log.info("%s GENERIC: %s  %s", prefix, record.label, apply_url)
    else:
        log.info("%s %s: %s  %s", prefix, status.value.upper(), record.label, apply_url)

    staged: dict[str, Any] = {}
    careers_url = record.organization.careers_url
    resolved: ResolvedJob | None = None
    attempted = bool((is_dead or is_generic) and careers_url)

    # 1. Look the posting up on the organization's ATS
    if attempted:
        ats = detect_ats(careers_url)
        if not ats.is_custom:
            resolved = search_ats(ctx.client, careers_url, record.title, ats=ats)
        if resolved:
            log.info("%s   -> RESOLVED via %s: %s", prefix, ats.platform.value, resolved.url)
            report.count("resolved")
            report.count("urls_updated")
            report.add("resolved", {
                "id": record.id,
                "job": record.label,
                "platform": ats.platform.value,
                "old_url": apply_url,
                "new_url": resolved.url,
            })
            staged["apply_url"] = resolved.url
            staged["removal_detected_at"] = None
            if len(resolved.description) > MIN_RESOLVED_DESCRIPTION:
                _stage_description(ctx, staged, resolved.description, prefix)

    # 2. Fill a missing or thin description from the posting page
    if "apply_url" in staged:
        target_url = staged["apply_url"]
    elif is_dead or (attempted and not settings.scrape_fallback):
        target_url = None
    else:
        target_url = apply_url
    if (
        "description" not in staged
        and target_url
        and len(record.description or "") < SHORT_DESCRIPTION
    ):
        scraped = scrape_job_page(ctx.client, target_url)
        if scraped.ok and len(scraped.description) > MIN_RESOLVED_DESCRIPTION:
            _stage_description(ctx, staged, scraped.description, prefix)

    # 3. Licenses from the freshest description
    _stage_licenses(ctx, record, staged)

    # 4. Lifecycle timestamps
    if resolved or is_alive:
        staged["last_verified_at"] = to_iso(ctx.now)
        if record.removal_detected_at is not None:
            staged["removal_detected_at"] = None
    elif is_dead:
        report.count("dead_unresolved")
        report.add("still_dead", {"id": record.id, "job": record.label, "url": apply_url})
        # keep the first detection so the grace period can run out
        if record.removal_detected_at is None:
            staged["removal_detected_at"] = to_iso(ctx.now)

    _persist(ctx, record, staged, prefix)


def _safe_process(ctx: RunContext, record: JobRecord, idx: int, total: int) -> None:
    try:
        process_record(ctx, record, idx, total)
    except Exception as exc:
        log.exception("[%d/%d] %s FAILED: %s", idx, total, record.label, exc)
        ctx.report.add_error(record.id, record.label, str(exc) or exc.__class__.__name__)


def run(
    store: JobStore,
    client: HttpClient,
    settings: Settings,
    options: RunOptions | None = None,
    *,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> BatchReport:
    options = options or RunOptions()
    ctx = RunContext(
        store=store,
        client=client,
        settings=settings,
        options=options,
        now=now or now_utc(),
        report=BatchReport(dry_run=options.dry_run),
    )
    report = ctx.report
    if options.dry_run:
        log.info("DRY RUN MODE (no store writes)")

    # 1. Grace-period sweep, always before any record is checked
    expired: set[str] = set()
    try:
        expired.update(
            deactivate_expired(store, ctx.now, settings.grace_days, dry_run=options.dry_run)
        )
    except StoreError as exc:
        log.error("Grace-period sweep failed: %s", exc)
        report.add_error("-", "grace-period sweep", str(exc))
    report.stats.deactivated = len(expired)

    # 2. Select records; a dry run still lists the swept ones as active
    records = [r for r in store.list_active() if r.id not in expired]
    if options.organization:
        wanted = options.organization.lower()
        matching = [r for r in records if wanted in r.organization.name.lower()]
        report.stats.skipped += len(records) - len(matching)
        records = matching
    if options.limit is not None:
        records = records[: max(options.limit, 0)]
    total = len(records)
    log.info("Found %d active job(s) to process", total)

    # 3. Bounded batches; a batch finishes completely before the next starts
    deadline = clock() + settings.time_budget if settings.time_budget else None
    size = settings.batch_size
    for start in range(0, total, size):
        if deadline is not None and clock() >= deadline:
            remaining = total - start
            log.warning("Time budget spent — skipping %d remaining job(s)", remaining)
            report.stats.skipped += remaining
            report.truncated = True
            break
        batch = records[start: start + size]
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            futures = [
                pool.submit(_safe_process, ctx, record, start + i + 1, total)
                for i, record in enumerate(batch)
            ]
            for future in as_completed(futures):
                future.result()
        if start + size < total and settings.batch_pause > 0:
            sleep(settings.batch_pause)

    s = report.stats
    log.info(
        "Run complete — processed=%d, alive=%d, resolved=%d, dead=%d, scraped=%d, "
        "licenses=%d, errors=%d, skipped=%d",
        s.processed, s.alive, s.resolved, s.dead_unresolved, s.descriptions_scraped,
        s.licenses_updated, s.errors, s.skipped,
    )
    return report
