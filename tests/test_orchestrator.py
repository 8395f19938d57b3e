import html
from datetime import datetime, timedelta, timezone
from itertools import chain, repeat

import pytest
import requests

from applylink.config import Settings
from applylink.models import NONE_FOUND
from applylink.orchestrator import RunOptions, deactivate_expired, run
from tests.fakes import FakeResponse, MemoryStore, html_page, make_row

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

GH_CAREERS = "https://boards.greenhouse.io/acme"
GH_API = "https://boards-api.greenhouse.io/v1/boards/acme/jobs"
NEW_URL = "https://boards.greenhouse.io/acme/jobs/777"

DESCRIPTION_HTML = (
    "<h2>Responsibilities</h2><p>"
    + "Build financial models and support live transactions. " * 4
    + "Must obtain the Series 7 and Series 63 within 90 days.</p>"
)


def _run(store, client, settings, **options):
    return run(store, client, settings, RunOptions(**options), now=NOW, sleep=lambda _: None)


def _greenhouse(session, title="Investment Banking Analyst"):
    session.add("GET", GH_API, FakeResponse(json_data={"jobs": [
        {"title": title, "absolute_url": NEW_URL, "location": {"name": "New York"},
         "content": html.escape(DESCRIPTION_HTML)},
    ]}))


# ── grace period ──

def test_grace_period_boundary():
    store = MemoryStore([
        make_row("old", removal_detected_at=NOW - timedelta(days=3, seconds=1)),
        make_row("new", removal_detected_at=NOW - timedelta(days=2, hours=23)),
        make_row("ok"),
    ])
    assert deactivate_expired(store, NOW, 3) == ["old"]
    assert store.deactivated == ["old"]


def test_grace_dry_run_counts_without_writing():
    store = MemoryStore([make_row("old", removal_detected_at=NOW - timedelta(days=10))])
    assert deactivate_expired(store, NOW, 3, dry_run=True) == ["old"]
    assert store.deactivated == []


def test_sweep_runs_before_records_are_checked(client, session, settings):
    store = MemoryStore([make_row("old", removal_detected_at=NOW - timedelta(days=4))])
    report = _run(store, client, settings)
    assert report.stats.deactivated == 1
    assert report.stats.processed == 0
    assert session.calls == []


# ── resolution ──

def test_dead_url_resolved_through_greenhouse(client, session, settings):
    row = make_row("ib", company={"name": "Acme", "careers_url": GH_CAREERS})
    session.page(row["apply_url"], 404)
    _greenhouse(session)
    store = MemoryStore([row])

    report = _run(store, client, settings)

    assert report.stats.resolved == 1
    assert report.stats.urls_updated == 1
    assert report.resolved == [{
        "id": "ib",
        "job": "Acme - Investment Banking Analyst",
        "platform": "greenhouse",
        "old_url": row["apply_url"],
        "new_url": NEW_URL,
    }]
    (job_id, fields), = store.writes
    assert job_id == "ib"
    assert fields["apply_url"] == NEW_URL
    assert fields["removal_detected_at"] is None
    assert fields["last_verified_at"] == NOW.isoformat()
    assert fields["updated_at"] == NOW.isoformat()
    assert fields["description"].startswith("Responsibilities")
    assert fields["licenses_required"] == ["Series 7", "Series 63"]
    assert fields["licenses_info"]["notes"] == "Required"
    assert report.licenses_detected[0]["licenses"] == ["Series 7", "Series 63"]
    # the resolved description makes a page scrape unnecessary
    assert not session.called("GET", NEW_URL)


def test_generic_alive_url_is_resolved(client, session, settings):
    row = make_row(
        "g", apply_url="https://acme.com/careers",
        company={"name": "Acme", "careers_url": GH_CAREERS},
    )
    session.page(row["apply_url"])
    _greenhouse(session)
    store = MemoryStore([row])

    report = _run(store, client, settings)
    assert report.stats.resolved == 1
    assert report.stats.alive == 0
    assert store.rows["g"]["apply_url"] == NEW_URL


def test_dead_without_match_is_flagged_once(client, session, settings):
    first_seen = NOW - timedelta(days=1)
    rows = [
        make_row("fresh", company={"careers_url": GH_CAREERS}),
        make_row("known", removal_detected_at=first_seen),
    ]
    for row in rows:
        session.page(row["apply_url"], 404)
    _greenhouse(session, title="Barista")
    store = MemoryStore(rows)

    report = _run(store, client, settings)

    assert report.stats.dead_unresolved == 2
    assert {d["id"] for d in report.still_dead} == {"fresh", "known"}
    assert store.rows["fresh"]["removal_detected_at"] == NOW.isoformat()
    # first detection is kept
    assert store.rows["known"]["removal_detected_at"] == first_seen.isoformat()
    assert not any(job_id == "known" for job_id, _ in store.writes)


# ── alive records ──

def test_alive_record_gets_description_and_clears_stale_flag(client, session, settings):
    row = make_row("alive", removal_detected_at=NOW - timedelta(days=1))
    session.page(row["apply_url"], html=html_page("<h1>Analyst</h1>" + DESCRIPTION_HTML))
    store = MemoryStore([row])

    report = _run(store, client, settings)

    assert report.stats.alive == 1
    assert report.stats.descriptions_scraped == 1
    fields = store.writes[0][1]
    assert fields["last_verified_at"] == NOW.isoformat()
    assert fields["removal_detected_at"] is None
    assert "Series 7" in fields["licenses_required"]


def test_long_description_is_not_rescraped(client, session, settings):
    row = make_row(
        "alive", description="Plain text about the desk. " * 20,
        licenses_required=[NONE_FOUND],
    )
    session.page(row["apply_url"])
    store = MemoryStore([row])

    _run(store, client, settings)

    assert not session.called("GET", row["apply_url"])
    assert store.writes == [("alive", {
        "last_verified_at": NOW.isoformat(),
        "updated_at": NOW.isoformat(),
    })]


def test_description_is_capped(client, session):
    settings = Settings(batch_pause=0, description_cap=150)
    row = make_row("alive")
    session.page(row["apply_url"], html=html_page(DESCRIPTION_HTML))
    store = MemoryStore([row])

    _run(store, client, settings)
    assert len(store.rows["alive"]["description"]) == 150


@pytest.mark.parametrize("outcome", [requests.Timeout("slow"), FakeResponse(503)])
def test_timeout_and_error_change_nothing(client, session, settings, outcome):
    row = make_row(
        "flaky", description="x" * 300, licenses_required=[NONE_FOUND],
        company={"careers_url": GH_CAREERS},
    )
    session.add("HEAD", row["apply_url"], outcome)
    store = MemoryStore([row])

    report = _run(store, client, settings)

    assert report.stats.processed == 1
    assert report.stats.alive == report.stats.dead_unresolved == 0
    assert store.writes == []
    assert not session.called("GET", GH_API)


# ── run options ──

def _scenario(session):
    rows = [
        make_row("ib", posted_date="2026-10-03", company={"name": "Acme", "careers_url": GH_CAREERS}),
        make_row("alive", posted_date="2026-10-02", company={"name": "Birch"}),
        make_row("gone", posted_date="2026-10-01", company={"name": "Cedar"}),
        # past the grace period: swept out before any check
        make_row(
            "stale", posted_date="2026-09-01", company={"name": "Dune"},
            removal_detected_at=NOW - timedelta(days=4),
        ),
    ]
    session.page(rows[0]["apply_url"], 404)
    session.page(rows[1]["apply_url"], html=html_page(DESCRIPTION_HTML))
    session.page(rows[2]["apply_url"], 410)
    session.page(rows[3]["apply_url"], 404)
    _greenhouse(session)
    return rows


def test_dry_run_reports_the_same_changes_without_writing(client, session):
    settings = Settings(batch_pause=0, batch_size=1)
    rows = _scenario(session)

    dry_store = MemoryStore(rows)
    dry = _run(dry_store, client, settings, dry_run=True).to_dict()
    live_store = MemoryStore(rows)
    live = _run(live_store, client, settings).to_dict()

    assert dry_store.writes == []
    assert dry.pop("dry_run") is True
    assert live.pop("dry_run") is False
    assert dry == live
    assert [u["id"] for u in live["updates"]] == [job_id for job_id, _ in live_store.writes]
    assert live_store.deactivated == ["stale"]
    assert dry_store.deactivated == []


def test_dry_run_does_not_check_records_it_would_deactivate(client, session, settings):
    rows = _scenario(session)

    report = _run(MemoryStore(rows), client, settings, dry_run=True)

    assert report.stats.deactivated == 1
    assert report.stats.processed == 3
    assert "stale" not in {d["id"] for d in report.still_dead}
    assert "stale" not in {u["id"] for u in report.updates}
    assert not session.called("HEAD", rows[3]["apply_url"])


def test_dead_only_skips_alive_specific_urls(client, session, settings):
    rows = _scenario(session)
    store = MemoryStore(rows)

    report = _run(store, client, settings, dead_only=True)

    assert report.stats.skipped == 1
    assert report.stats.processed == 2
    assert "alive" not in {job_id for job_id, _ in store.writes}


def test_organization_filter_applies_before_limit(client, session, settings):
    rows = _scenario(session)
    store = MemoryStore(rows)

    report = _run(store, client, settings, organization="CEDAR", limit=1)

    assert report.stats.processed == 1
    assert report.stats.skipped == 2
    assert [d["id"] for d in report.still_dead] == ["gone"]


def test_record_failures_are_isolated(client, session, settings):
    rows = _scenario(session)
    session.add("HEAD", rows[1]["apply_url"], RuntimeError("parser exploded"))
    store = MemoryStore(rows)
    store.fail_ids.add("gone")

    report = _run(store, client, settings)

    assert report.stats.errors == 2
    assert {e["id"] for e in report.errors} == {"alive", "gone"}
    assert store.rows["ib"]["apply_url"] == NEW_URL


def test_time_budget_stops_between_batches(client, session):
    settings = Settings(batch_pause=0, batch_size=1, time_budget=10)
    rows = _scenario(session)
    store = MemoryStore(rows)
    ticks = chain([0.0, 0.0], repeat(11.0))

    report = run(
        store, client, settings, now=NOW,
        sleep=lambda _: None, clock=lambda: next(ticks),
    )

    assert report.truncated
    assert report.stats.processed == 1
    assert report.stats.skipped == 2


def test_pause_between_batches(client, session):
    settings = Settings(batch_pause=0.5, batch_size=2)
    store = MemoryStore(_scenario(session))
    pauses = []

    run(store, client, settings, now=NOW, sleep=pauses.append)
    assert pauses == [0.5]
