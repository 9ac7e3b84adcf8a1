"""Passage verification.

The extractor is a language model and may paraphrase or invent quotations.
A proposed passage survives only if, after whitespace and case
normalization, it occurs literally in the source text and carries a
locator that a citation can point at.
"""

from __future__ import annotations

import re
from typing import Iterable

from lexground.logging import get_logger
from lexground.models.retrieval import ExtractedPassage

logger = get_logger(__name__)

_WS_RE = re.compile(r"\s+")


def normalize_for_match(text: str) -> str:
    """Lowercase and collapse every whitespace run to a single space."""

    return _WS_RE.sub(" ", text.lower()).strip()


def verify_passage_in_source(passage: str, source: str) -> bool:
    """Return True if ``passage`` is a normalized substring of ``source``."""

    needle = normalize_for_match(passage)
    if not needle:
        return False
    return needle in normalize_for_match(source)


def filter_verified_passages(
    passages: Iterable[ExtractedPassage],
    source_text: str,
    *,
    min_chars: int = 50,
    max_chars: int = 500,
    max_passages: int = 3,
) -> list[ExtractedPassage]:
    """Keep proposed passages that are verbatim in ``source_text``.

    Passages without a locator, passages outside the length bounds and
    repeats of an already accepted passage are dropped as well. At most
    ``max_passages`` are returned, in proposal order.
    """

    haystack = normalize_for_match(source_text)
    accepted: list[ExtractedPassage] = []
    seen: set[str] = set()
    for p in passages:
        needle = normalize_for_match(p.text)
        if not needle or needle in seen:
            continue
        if p.locator.is_empty():
            logger.debug("Dropping passage without locator: %r", p.text[:80])
            continue
        if not (min_chars <= len(needle) <= max_chars):
            logger.debug("Dropping passage outside length bounds (%d chars)", len(needle))
            continue
        if needle not in haystack:
            logger.debug("Dropping unverifiable passage: %r", p.text[:80])
            continue
        seen.add(needle)
        accepted.append(p)
        if len(accepted) >= max_passages:
            break
    return accepted
