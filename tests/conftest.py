from __future__ import annotations

import os

os.environ.setdefault("RESOLVER_NO_LOG_FILE", "1")

import pytest  # noqa: E402

from applylink.config import Settings  # noqa: E402
from applylink.http import HttpClient  # noqa: E402
from tests.fakes import FakeSession  # noqa: E402


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> HttpClient:
    return HttpClient(session=session)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(batch_pause=0, store_path=str(tmp_path / "jobs.json"))
