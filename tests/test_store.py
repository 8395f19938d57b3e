import json
from datetime import datetime, timedelta, timezone

import pytest

from applylink.store import JsonJobStore, StoreError, parse_ts
from tests.fakes import make_row

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store_path(tmp_path):
    path = tmp_path / "jobs.json"
    rows = [
        make_row("a", posted_date="2026-09-01", company={"name": "Acme Capital"}),
        make_row("b", posted_date="2026-10-01", company={"name": "Birch Partners"}),
        make_row("c", is_active=False),
        make_row("d", posted_date="2026-08-01", removal_detected_at=NOW - timedelta(days=5)),
    ]
    path.write_text(json.dumps({"jobs": rows}), encoding="utf-8")
    return path


def test_list_active_newest_first(store_path):
    store = JsonJobStore(store_path)
    assert [r.id for r in store.list_active()] == ["b", "a", "d"]
    assert [r.id for r in store.list_active("acme")] == ["a"]


def test_get_and_missing(store_path):
    store = JsonJobStore(store_path)
    record = store.get("b")
    assert record.organization.name == "Birch Partners"
    assert store.get("zzz") is None


def test_update_writes_through(store_path):
    store = JsonJobStore(store_path)
    store.update("a", {"apply_url": "https://new.example.com/job/1", "removal_detected_at": None})
    assert store.get("a").apply_url == "https://new.example.com/job/1"
    assert not list(store_path.parent.glob(".jobs-*.json"))


def test_update_unknown_id(store_path):
    with pytest.raises(StoreError):
        JsonJobStore(store_path).update("zzz", {"title": "x"})


def test_find_expired_and_deactivate(store_path):
    store = JsonJobStore(store_path)
    expired = store.find_expired(NOW - timedelta(days=3))
    assert [r.id for r in expired] == ["d"]
    assert store.find_expired(NOW - timedelta(days=6)) == []

    assert store.deactivate(["d"], NOW) == 1
    assert [r.id for r in store.list_active()] == ["b", "a"]
    row = next(r for r in json.loads(store_path.read_text())["jobs"] if r["id"] == "d")
    assert row["is_active"] is False
    assert row["updated_at"] == NOW.isoformat()


def test_unreadable_file(tmp_path):
    path = tmp_path / "jobs.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonJobStore(path).list_active()


def test_missing_file_is_empty(tmp_path):
    assert JsonJobStore(tmp_path / "none.json").list_active() == []


def test_parse_ts():
    assert parse_ts("2026-10-19T12:00:00Z") == NOW
    assert parse_ts("2026-10-19T12:00:00") == NOW
    assert parse_ts(None) is None
