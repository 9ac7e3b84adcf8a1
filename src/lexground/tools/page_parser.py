"""Page parsing utilities.

Legal sources are verified against their full text, so the parser keeps every
visible word of the page rather than a readability summary. Readability is
only consulted for the title.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from readability import Document

from lexground.logging import get_logger
from lexground.models.document import LegalMetadata, ParsedDocument

logger = get_logger(__name__)

_WS_RE = re.compile(r"\s+")

_CASE_LAW_DOMAINS = (
    "kenyalaw.org",
    "judiciary.go.ke",
    "bailii.org",
    "saflii.org",
    "canlii.org",
    "austlii.edu.au",
    "nzlii.org",
    "eacj.org",
    "african-court.org",
)
_LEGISLATION_HINTS = ("legislation", "act", "statute", "parliament")

_CITATION_RE = re.compile(r"\[(\d{4})\]\s*([A-Za-z]{2,})(?:\s+(\d+))?")
_COURT_RE = re.compile(
    r"(Supreme Court|Court of Appeal|High Court|Employment and Labour Relations Court"
    r"|Environment and Land Court|Employment Court|Magistrates?'? Court)",
    re.IGNORECASE,
)
_ACT_RE = re.compile(r"\b((?:[A-Z][\w'-]*\s+){1,8}(?:Act|Regulations?))(?:,?\s+(\d{4}))?")
_SECTION_RE = re.compile(r"\bSection\s+\d+[A-Z]?(?:\([a-z0-9]+\))*", re.IGNORECASE)
_DATE_RE = re.compile(
    r"(?:delivered|dated|decided|judgment)\D{0,40}?"
    r"(\d{1,2})(?:st|nd|rd|th)?\s+"
    r"(January|February|March|April|May|June|July|August|September|October|November|December)"
    r",?\s+(\d{4})",
    re.IGNORECASE,
)


class PageParser:
    """Parse fetched HTML pages into cleaned text plus legal metadata."""

    def parse_html(self, url: str, html: str, *, content_type: str | None = None) -> ParsedDocument:
        """Parse HTML into a plain-text document."""

        soup = BeautifulSoup(html, "lxml")
        title = self._extract_title(url, html, soup)
        for tag in soup(["script", "style", "noscript", "template"]):
            tag.decompose()
        # get_text decodes entities (&amp;, &nbsp; ...) for us
        text = self._normalize_text(soup.get_text(" "))

        return ParsedDocument(
            url=url,
            title=title,
            text=text,
            content_type=content_type,
            metadata=extract_legal_metadata(text, url),
        )

    @staticmethod
    def _extract_title(url: str, html: str, soup: BeautifulSoup) -> str | None:
        try:
            title = Document(html).short_title() or None
        except Exception as e:
            logger.warning("Readability failed to read title for url=%s: %s", url, e)
            title = None
        if not title and soup.title:
            title = soup.title.get_text(strip=True) or None
        return title

    @staticmethod
    def _normalize_text(text: str) -> str:
        return _WS_RE.sub(" ", text).strip()


def _host(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def _host_in(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def extract_legal_metadata(text: str, url: str) -> LegalMetadata:
    """Scrape citation, court, decision date, act name and section by domain category."""

    meta = LegalMetadata()
    host = _host(url)
    lowered_url = url.lower()

    if _host_in(host, _CASE_LAW_DOMAINS):
        m = _CITATION_RE.search(text)
        if m:
            meta.citation = m.group(0).strip()
        m = _COURT_RE.search(text)
        if m:
            meta.court = m.group(1)
        meta.decision_date = _find_decision_date(text)

    if any(h in lowered_url for h in _LEGISLATION_HINTS):
        m = _ACT_RE.search(text)
        if m:
            meta.act_name = " ".join(p for p in (m.group(1).strip(), m.group(2)) if p)
        m = _SECTION_RE.search(text)
        if m:
            meta.section_path = m.group(0)

    return meta


def _find_decision_date(text: str) -> date | None:
    m = _DATE_RE.search(text)
    if not m:
        return None
    day, month, year = m.groups()
    try:
        return datetime.strptime(f"{day} {month.title()} {year}", "%d %B %Y").date()
    except ValueError:
        return None
