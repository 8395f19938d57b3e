"""HTML-to-text conversion and the keyword tables shared by checker and scraper."""
from __future__ import annotations

import re
from typing import Pattern, Sequence

# Any of these in a page means a real posting is on it, whatever else it says.
JOB_CONTENT_KEYWORDS: tuple[str, ...] = (
    "responsibilities",
    "qualifications",
    "requirements",
    "job description",
    "apply now",
    "submit application",
    "about the role",
    "what you'll do",
)

# The URL classifier gates on all of these but "what you'll do".
CHECKER_CONTENT_KEYWORDS: tuple[str, ...] = JOB_CONTENT_KEYWORDS[:-1]

SOFT_404_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"page\s+(not|does\s*n.t)\s+", re.I),
    re.compile(
        r"job\s+(has been|was|is no longer)\s+"
        r"(removed|closed|expired|filled|deleted|available)",
        re.I,
    ),
    re.compile(r"position\s+(has been|was)\s+(removed|filled|closed)", re.I),
    re.compile(r"no\s+(jobs|positions|results|openings)\s+found", re.I),
    re.compile(r"404\s*(not\s*found|error|page)?", re.I),
    re.compile(r"this\s+link\s+(may be|is)\s+(broken|expired|invalid)", re.I),
)

_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&nbsp;", " "),
)


def any_match(patterns: Sequence[Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def has_job_content(html: str, keywords: Sequence[str] = JOB_CONTENT_KEYWORDS) -> bool:
    lower = html.lower()
    return any(kw in lower for kw in keywords)


def is_soft_404(html: str, limit: int = 30_000) -> bool:
    """Soft-404 phrasing with no job content in the first ``limit`` chars."""
    snippet = html[:limit].lower()
    if has_job_content(snippet, CHECKER_CONTENT_KEYWORDS):
        return False
    return any_match(SOFT_404_PATTERNS, snippet)


def strip_html(html: str) -> str:
    """Strip tags and decode the common entities, keeping paragraph breaks."""
    text = re.sub(r"<br\s*/?>", "\n", html or "", flags=re.I)
    text = re.sub(r"</(?:p|div|li|h[1-6]|tr)>", "\n", text, flags=re.I)
    text = re.sub(r"<[^>]+>", "", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()
