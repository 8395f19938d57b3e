"""Find finance license and certification requirements in posting text."""
from __future__ import annotations

import re
from dataclasses import asdict
from typing import Pattern

from applylink.models import NONE_FOUND, LicenseAnalysis, LicenseInfo
from applylink.text import any_match, strip_html

CONTEXT_RADIUS = 80

# Order is the reporting order. "CPA Track" must stay after "CPA".
LICENSE_PATTERNS: tuple[tuple[Pattern[str], str], ...] = (
    (re.compile(r"\bSIE\b(?:\s+(?:exam|license|certification))?", re.I), "SIE"),
    (re.compile(r"\bSeries\s*6\b", re.I), "Series 6"),
    (re.compile(r"\bSeries\s*7\b", re.I), "Series 7"),
    (re.compile(r"\bSeries\s*63\b", re.I), "Series 63"),
    (re.compile(r"\bSeries\s*65\b", re.I), "Series 65"),
    (re.compile(r"\bSeries\s*66\b", re.I), "Series 66"),
    (re.compile(r"\bSeries\s*79\b", re.I), "Series 79"),
    (re.compile(r"\bSeries\s*3\b", re.I), "Series 3"),
    (
        re.compile(r"\bCPA\b(?:\s+(?:certification|license|designation|eligible|track))?", re.I),
        "CPA",
    ),
    (re.compile(r"\bCPA[\s-]+(?:track|eligible|eligibility)\b", re.I), "CPA Track"),
    (re.compile(r"\bCFA\b(?:\s+Level\s*(?:1|I)\b)?", re.I), "CFA Level 1"),
    # a FINRA registration mention implies the SIE
    (re.compile(r"\bFINRA\b.{0,100}?(?:Series|license|registration)", re.I), "SIE"),
)

# (general, specific): when the specific tag is found the general one goes.
SUPERSEDED_BY = (("CPA", "CPA Track"),)

REQUIRED_CONTEXT = (
    re.compile(r"(?:must|required|need|shall)\s+(?:have|hold|obtain|possess|maintain)", re.I),
    re.compile(r"(?:required|mandatory)\s+(?:licenses?|certifications?|registrations?)", re.I),
    re.compile(r"(?:obtain|pass|complete)\s+(?:within|before|prior)", re.I),
)

PREFERRED_CONTEXT = (
    re.compile(r"prefer(?:red)?|nice\s+to\s+have|desir(?:ed|able)|plus|bonus|asset", re.I),
    re.compile(r"working\s+towards?|pursuing|in\s+progress", re.I),
    re.compile(r"(?:willingness|willing|ability)\s+to\s+(?:obtain|study|pursue)", re.I),
)


def extract_licenses(description: str) -> LicenseAnalysis:
    """Recognized license tags plus whether the text reads as required/preferred.

    The flags describe the analysis as a whole: with two licenses, one
    required and one preferred, both come back True.
    """
    text = re.sub(r"\s+", " ", strip_html(description))
    found: list[str] = []
    raw_matches: list[str] = []

    for pattern, tag in LICENSE_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        if tag not in found:
            found.append(tag)
        start = max(0, m.start() - CONTEXT_RADIUS)
        raw_matches.append(text[start: m.end() + CONTEXT_RADIUS].strip())

    for general, specific in SUPERSEDED_BY:
        if specific in found and general in found:
            found.remove(general)

    if not found:
        return LicenseAnalysis([NONE_FOUND], False, False, raw_matches)

    return LicenseAnalysis(
        licenses_found=found,
        is_required=any(any_match(REQUIRED_CONTEXT, ctx) for ctx in raw_matches),
        is_preferred=any(any_match(PREFERRED_CONTEXT, ctx) for ctx in raw_matches),
        raw_matches=raw_matches,
    )


def license_info(analysis: LicenseAnalysis) -> dict:
    """The stored ``licenses_info`` object for an analysis."""
    if analysis.is_required:
        notes = "Required"
    elif analysis.is_preferred:
        notes = "Preferred"
    else:
        notes = None
    return asdict(LicenseInfo(notes=notes))
