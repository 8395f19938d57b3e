from .base import ATSResolver
from .greenhouse import GreenhouseResolver
from .lever import LeverResolver
from .smartrecruiters import SmartRecruitersResolver
from .workday import WorkdayResolver

from applylink.ats import detect_ats
from applylink.http import HttpClient
from applylink.log import get_logger
from applylink.models import ATSDetection, ATSPlatform, ResolvedJob

log = get_logger(__name__)

__all__ = [
    "ATSResolver", "GreenhouseResolver", "LeverResolver",
    "SmartRecruitersResolver", "WorkdayResolver",
    "RESOLVERS", "get_resolver", "search_ats",
]

# iCIMS and Taleo are detected but expose no public search; they fall
# through to page scraping like custom sites.
RESOLVERS: dict[ATSPlatform, type[ATSResolver]] = {
    ATSPlatform.GREENHOUSE: GreenhouseResolver,
    ATSPlatform.LEVER: LeverResolver,
    ATSPlatform.SMARTRECRUITERS: SmartRecruitersResolver,
    ATSPlatform.WORKDAY: WorkdayResolver,
}


def get_resolver(platform: ATSPlatform, client: HttpClient) -> ATSResolver | None:
    cls = RESOLVERS.get(platform)
    return cls(client) if cls else None


def search_ats(
    client: HttpClient,
    careers_url: str,
    title: str,
    location: str | None = None,
    *,
    ats: ATSDetection | None = None,
) -> ResolvedJob | None:
    """Detect the careers site's ATS and look ``title`` up on it."""
    ats = ats or detect_ats(careers_url)
    resolver = get_resolver(ats.platform, client)
    if resolver is None:
        log.debug("No resolver for %s (%s)", careers_url, ats.platform.value)
        return None
    return resolver.search(ats, title, location)
