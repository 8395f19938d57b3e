"""Logging setup for the resolver.

A stdout console handler at ``LOG_LEVEL`` and, unless ``RESOLVER_NO_LOG_FILE``
is set, a DEBUG file ``logs/resolver_YYYY-MM-DD.log``. Configured once, on
the first ``get_logger`` call or an explicit ``configure`` from the CLI.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every connection at DEBUG.
_NOISY = ("urllib3", "charset_normalizer")

_console: logging.Handler | None = None


def _level(name: str | None) -> int:
    name = (name or os.environ.get("LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def configure(level: str | None = None) -> None:
    """Install handlers on the root logger; later calls only change the console level."""
    global _console
    if _console is not None:
        _console.setLevel(_level(level))
        return

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)

    _console = logging.StreamHandler(sys.stdout)
    _console.setLevel(_level(level))
    _console.setFormatter(formatter)
    root.addHandler(_console)

    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)

    if os.environ.get("RESOLVER_NO_LOG_FILE"):
        return
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(
            LOG_DIR / f"resolver_{datetime.now():%Y-%m-%d}.log", encoding="utf-8"
        )
    except OSError as exc:
        root.warning("File logging disabled: %s", exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    if _console is None:
        configure()
    return logging.getLogger(name)
