"""Job store: the interface the resolver writes through, plus a JSON file backend."""
from __future__ import annotations

import fcntl
import json
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from applylink.log import get_logger
from applylink.models import JobRecord, OrganizationRef
from applylink.retry import retry

log = get_logger(__name__)


class StoreError(Exception):
    """The store could not read or apply a change."""


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_ts(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def record_from_row(row: dict[str, Any]) -> JobRecord:
    company = row.get("company") or {}
    return JobRecord(
        id=str(row["id"]),
        title=row.get("title") or "",
        apply_url=row.get("apply_url") or None,
        source_url=row.get("source_url") or None,
        description=row.get("description") or "",
        licenses=list(row.get("licenses_required") or []),
        last_verified_at=parse_ts(row.get("last_verified_at")),
        removal_detected_at=parse_ts(row.get("removal_detected_at")),
        is_active=bool(row.get("is_active", True)),
        posted_date=row.get("posted_date"),
        organization=OrganizationRef(
            name=company.get("name") or "",
            website=company.get("website") or "",
            careers_url=company.get("careers_url") or "",
        ),
    )


def _matches_org(record: JobRecord, organization: str | None) -> bool:
    if not organization:
        return True
    return organization.lower() in record.organization.name.lower()


class JobStore(ABC):
    @abstractmethod
    def list_active(self, organization: str | None = None) -> list[JobRecord]:
        """Active records, newest posting first."""

    @abstractmethod
    def get(self, job_id: str) -> JobRecord | None:
        pass

    @abstractmethod
    def update(self, job_id: str, fields: dict[str, Any]) -> None:
        """Apply ``fields`` to one record in a single write."""

    @abstractmethod
    def deactivate(self, job_ids: list[str], now: datetime) -> int:
        pass

    def find_expired(self, cutoff: datetime) -> list[JobRecord]:
        """Active records flagged dead before ``cutoff``."""
        return [
            r for r in self.list_active()
            if r.removal_detected_at is not None and r.removal_detected_at < cutoff
        ]


class JsonJobStore(JobStore):
    """All jobs in one JSON document ``{"jobs": [...]}``.

    Writes hold an exclusive ``fcntl`` lock and replace the file through a
    temp file, so a failed write leaves the previous document intact.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock_path = self.path.with_name(self.path.name + ".lock")

    @contextmanager
    def _locked(self, exclusive: bool) -> Iterator[None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "a") as lock:
            fcntl.flock(lock.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
            try:
                yield
            finally:
                fcntl.flock(lock.fileno(), fcntl.LOCK_UN)

    def _read_rows(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StoreError(f"cannot read {self.path}: {exc}") from exc
        rows = data.get("jobs", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            raise StoreError(f"{self.path}: 'jobs' is not a list")
        return rows

    @retry(max_attempts=2, retryable=(OSError,))
    def _write_rows(self, rows: list[dict[str, Any]]) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".jobs-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"jobs": rows}, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _records(self) -> list[JobRecord]:
        with self._locked(exclusive=False):
            rows = self._read_rows()
        try:
            return [record_from_row(r) for r in rows]
        except (KeyError, ValueError, TypeError) as exc:
            raise StoreError(f"malformed job row in {self.path}: {exc}") from exc

    def list_active(self, organization: str | None = None) -> list[JobRecord]:
        records = [
            r for r in self._records() if r.is_active and _matches_org(r, organization)
        ]
        records.sort(key=lambda r: r.posted_date or "", reverse=True)
        return records

    def get(self, job_id: str) -> JobRecord | None:
        for r in self._records():
            if r.id == job_id:
                return r
        return None

    def update(self, job_id: str, fields: dict[str, Any]) -> None:
        with self._locked(exclusive=True):
            rows = self._read_rows()
            for row in rows:
                if str(row.get("id")) == job_id:
                    row.update(fields)
                    break
            else:
                raise StoreError(f"job {job_id} not found")
            try:
                self._write_rows(rows)
            except OSError as exc:
                raise StoreError(f"cannot write {self.path}: {exc}") from exc
        log.debug("Updated %s: %s", job_id, ", ".join(sorted(fields)))

    def deactivate(self, job_ids: list[str], now: datetime) -> int:
        if not job_ids:
            return 0
        wanted = set(job_ids)
        changed = 0
        with self._locked(exclusive=True):
            rows = self._read_rows()
            for row in rows:
                if str(row.get("id")) in wanted and row.get("is_active", True):
                    row["is_active"] = False
                    row["updated_at"] = to_iso(now)
                    changed += 1
            if changed:
                try:
                    self._write_rows(rows)
                except OSError as exc:
                    raise StoreError(f"cannot write {self.path}: {exc}") from exc
        log.debug("Deactivated %d job(s)", changed)
        return changed
