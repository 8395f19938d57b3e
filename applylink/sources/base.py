from __future__ import annotations

from abc import ABC, abstractmethod

import requests

from applylink.http import HttpClient
from applylink.log import get_logger
from applylink.models import ATSDetection, ATSPlatform, ResolvedJob

log = get_logger(__name__)

# What a misbehaving third-party listing API can throw at us.
PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, IndexError)


class ATSResolver(ABC):
    platform: ATSPlatform

    def __init__(self, client: HttpClient) -> None:
        self.client = client

    def search(
        self, ats: ATSDetection, title: str, location: str | None = None
    ) -> ResolvedJob | None:
        """Best live posting for ``title`` on this board, or None.

        Network and parse failures are logged and reported as no match.
        """
        if not ats.api_base:
            return None
        try:
            return self._search(ats, title, location)
        except requests.RequestException as exc:
            log.warning("%s search for %r failed: %s", self.platform.value, title, exc)
        except PARSE_ERRORS as exc:
            log.warning("%s returned unexpected data for %r: %s", self.platform.value, title, exc)
        return None

    @abstractmethod
    def _search(
        self, ats: ATSDetection, title: str, location: str | None
    ) -> ResolvedJob | None:
        pass
