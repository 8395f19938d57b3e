"""Load resolver settings from YAML and env configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from applylink.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "resolver.yaml"
REPORTS_DIR: Path = ROOT_DIR / "reports"
DATA_DIR: Path = ROOT_DIR / "data"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
JSON_ACCEPT = "application/json"

_MAX_BATCH_SIZE = 10


@dataclass(frozen=True)
class FetchConfig:
    """Headers and timeout shared by every outbound request."""

    user_agent: str = BROWSER_USER_AGENT
    accept: str = HTML_ACCEPT
    timeout: float = 12.0


@dataclass
class Settings:
    user_agent: str = BROWSER_USER_AGENT
    accept: str = HTML_ACCEPT
    request_timeout: float = 12.0
    batch_size: int = 5
    batch_pause: float = 1.0
    grace_days: int = 3
    body_scan_limit: int = 30_000
    description_cap: int = 10_000
    scrape_fallback: bool = True
    store_path: str = str(DATA_DIR / "jobs.json")
    time_budget: float | None = None

    def fetch_config(self) -> FetchConfig:
        return FetchConfig(
            user_agent=self.user_agent,
            accept=self.accept,
            timeout=self.request_timeout,
        )


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def load_settings(path: Path | str | None = None) -> Settings:
    """Read settings YAML; missing file or keys fall back to defaults."""
    path = Path(path or get_env("RESOLVER_CONFIG") or SETTINGS_PATH)
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        log.debug("No settings file at %s — using defaults", path)

    known = {f.name for f in fields(Settings)}
    for key in sorted(set(data) - known):
        log.warning("Ignoring unknown setting %r in %s", key, path.name)
    settings = Settings(**{k: v for k, v in data.items() if k in known})

    store_override = get_env("RESOLVER_STORE")
    if store_override:
        settings.store_path = store_override
    elif not Path(settings.store_path).is_absolute():
        settings.store_path = str(ROOT_DIR / settings.store_path)

    settings.batch_size = max(1, min(int(settings.batch_size), _MAX_BATCH_SIZE))
    return settings


def ensure_dirs() -> None:
    for d in (REPORTS_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)
