#!/usr/bin/env python3
"""Entry point to resolve, verify and audit stored apply URLs."""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, replace

from applylink.audit import audit_urls
from applylink.config import ensure_dirs, load_settings
from applylink.http import HttpClient
from applylink.log import configure, get_logger
from applylink.orchestrator import RunOptions, run
from applylink.report import build_run_report, write_run_report
from applylink.store import JsonJobStore, StoreError
from applylink.verify import check_job, verify_active

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="applylink",
        description="Check job apply URLs, re-resolve dead ones via the employer's ATS, "
        "and backfill descriptions and license requirements.",
    )
    p.add_argument("--dry-run", action="store_true", help="report changes without writing")
    p.add_argument("--dead-only", action="store_true", help="skip records whose URL is alive")
    p.add_argument("--company", metavar="NAME", help="only organizations whose name contains NAME")
    p.add_argument("--limit", type=int, metavar="N", help="process at most N records")
    p.add_argument("--store", metavar="PATH", help="job store JSON file")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--verify-only", action="store_true", help="health sweep only")
    mode.add_argument(
        "--audit", nargs="?", const="all", choices=("all", "generic", "missing"),
        help="audit stored URLs, optionally only generic or missing ones",
    )
    mode.add_argument("--check", metavar="JOB_ID", help="check a single record")
    p.add_argument("--json", action="store_true", help="print the result as JSON")
    p.add_argument("--no-report", action="store_true", help="do not write the Markdown report")
    p.add_argument("-v", "--verbose", action="store_true", help="debug output on the console")
    return p.parse_args(argv)


def _emit(data: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2, default=str))
        return
    for key, value in data.items():
        if not isinstance(value, (list, dict)):
            log.info("  %s: %s", key, value)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        configure("DEBUG")
    settings = load_settings()
    if args.store:
        settings = replace(settings, store_path=args.store)
    store = JsonJobStore(settings.store_path)
    client = HttpClient(settings.fetch_config())

    try:
        if args.audit:
            only = None if args.audit == "all" else args.audit
            result = audit_urls(store, only=only, organization=args.company)
            _emit(result["summary"], args.json)
            if not args.json:
                for job in result["jobs"]:
                    if job["url_type"] != "specific":
                        log.info("  [%s] %s  %s", job["url_type"], job["organization"], job["title"])
            return 0

        if args.check:
            outcome = check_job(store, client, settings, args.check, dry_run=args.dry_run)
            if outcome is None:
                log.error("No job with id %s", args.check)
                return 1
            _emit(asdict(outcome), args.json)
            return 0

        if args.verify_only:
            summary = verify_active(store, client, settings, dry_run=args.dry_run)
            _emit(asdict(summary), args.json)
            return 0

        options = RunOptions(
            dry_run=args.dry_run,
            dead_only=args.dead_only,
            organization=args.company,
            limit=args.limit,
        )
        report = run(store, client, settings, options)
    except StoreError as exc:
        log.error("Job store unavailable: %s", exc)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, default=str))
    if not args.no_report:
        ensure_dirs()
        path = write_run_report(build_run_report(report))
        log.info("  Report: %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
