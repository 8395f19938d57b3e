"""Collect batch results and render the run report."""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from applylink.config import REPORTS_DIR
from applylink.log import get_logger

log = get_logger(__name__)


@dataclass
class BatchStats:
    processed: int = 0
    alive: int = 0
    dead_unresolved: int = 0
    resolved: int = 0
    descriptions_scraped: int = 0
    licenses_updated: int = 0
    urls_updated: int = 0
    errors: int = 0
    skipped: int = 0
    deactivated: int = 0


@dataclass
class BatchReport:
    dry_run: bool = False
    stats: BatchStats = field(default_factory=BatchStats)
    resolved: list[dict[str, Any]] = field(default_factory=list)
    still_dead: list[dict[str, Any]] = field(default_factory=list)
    licenses_detected: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    updates: list[dict[str, Any]] = field(default_factory=list)
    truncated: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def count(self, name: str, n: int = 1) -> None:
        with self._lock:
            setattr(self.stats, name, getattr(self.stats, name) + n)

    def add(self, section: str, entry: dict[str, Any]) -> None:
        with self._lock:
            getattr(self, section).append(entry)

    def add_error(self, job_id: str, label: str, message: str) -> None:
        with self._lock:
            self.stats.errors += 1
            self.errors.append({"id": job_id, "job": label, "error": message})

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "truncated": self.truncated,
            "stats": asdict(self.stats),
            "resolved": list(self.resolved),
            "still_dead": list(self.still_dead),
            "licenses_detected": list(self.licenses_detected),
            "errors": list(self.errors),
            "updates": list(self.updates),
        }


def _license_mode(entry: dict[str, Any]) -> str:
    if entry.get("required"):
        return "REQUIRED"
    if entry.get("preferred"):
        return "PREFERRED"
    return "mentioned"


def build_run_report(report: BatchReport) -> str:
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    s = report.stats
    title = "Apply URL Resolution" + (" (dry run)" if report.dry_run else "")
    lines: list[str] = [f"# {title} — {date}", ""]

    lines.append("| Metric | Count |")
    lines.append("|--------|------:|")
    for label, value in (
        ("Processed", s.processed),
        ("Skipped", s.skipped),
        ("Alive", s.alive),
        ("Dead (unresolved)", s.dead_unresolved),
        ("Resolved via ATS", s.resolved),
        ("Descriptions scraped", s.descriptions_scraped),
        ("URLs updated", s.urls_updated),
        ("Licenses updated", s.licenses_updated),
        ("Deactivated (grace period)", s.deactivated),
        ("Errors", s.errors),
    ):
        lines.append(f"| {label} | {value} |")
    lines.append("")
    if report.truncated:
        lines.append("_Time budget ran out; remaining records were skipped._")
        lines.append("")

    if report.resolved:
        lines.append(f"## Resolved URLs ({len(report.resolved)})")
        lines.append("")
        for r in report.resolved:
            lines.append(f"- **{r['job']}** ({r['platform']})")
            lines.append(f"  - Old: {r['old_url'] or '(none)'}")
            lines.append(f"  - New: {r['new_url']}")
        lines.append("")

    if report.still_dead:
        lines.append(f"## Still Dead ({len(report.still_dead)})")
        lines.append("")
        for d in report.still_dead:
            lines.append(f"- `[{d['id']}]` {d['job']} — {d['url'] or '(no URL)'}")
        lines.append("")

    if report.licenses_detected:
        lines.append(f"## Licenses Detected ({len(report.licenses_detected)})")
        lines.append("")
        for entry in report.licenses_detected:
            lines.append(
                f"- **{entry['job']}**: {', '.join(entry['licenses'])} ({_license_mode(entry)})"
            )
            if entry["evidence"]:
                lines.append(f"  - _“{entry['evidence'][0][:120]}…”_")
        lines.append("")

    if report.errors:
        lines.append(f"## Errors ({len(report.errors)})")
        lines.append("")
        for e in report.errors:
            lines.append(f"- `[{e['id']}]` {e['job']}: {e['error']}")
        lines.append("")

    if report.dry_run:
        lines.append("---")
        lines.append("")
        lines.append("Dry run: nothing was written. Run without `--dry-run` to apply these changes.")
        lines.append("")

    log.info(
        "Built run report: %d processed, %d resolved, %d still dead",
        s.processed, s.resolved, len(report.still_dead),
    )
    return "\n".join(lines)


def write_run_report(content: str) -> Path:
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    path = REPORTS_DIR / f"resolve_{date}.md"
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
