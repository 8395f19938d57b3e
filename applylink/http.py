"""Shared HTTP primitive: one session, one set of headers, one timeout."""
from __future__ import annotations

from typing import Any

import requests

from applylink.config import JSON_ACCEPT, FetchConfig


def normalize_url(raw: str | None) -> str | None:
    """Prefix scheme-less URLs with https://; empty values become None."""
    raw = (raw or "").strip()
    if not raw:
        return None
    if raw.lower().startswith(("http://", "https://")):
        return raw
    return f"https://{raw}"


class HttpClient:
    def __init__(self, config: FetchConfig | None = None, session: Any = None) -> None:
        self.config = config or FetchConfig()
        self.session = session if session is not None else requests.Session()

    def _headers(self, accept: str | None) -> dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": accept or self.config.accept,
        }

    def head(self, url: str) -> requests.Response:
        return self.session.head(
            url,
            headers=self._headers(None),
            timeout=self.config.timeout,
            allow_redirects=True,
        )

    def get(
        self,
        url: str,
        *,
        accept: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        return self.session.get(
            url,
            params=params,
            headers=self._headers(accept),
            timeout=self.config.timeout,
            allow_redirects=True,
        )

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        r = self.get(url, accept=JSON_ACCEPT, params=params)
        r.raise_for_status()
        return r.json()
