"""Keyword extraction for the existing-authority cache lookup."""

from __future__ import annotations

import re

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "be",
        "been", "being", "have", "has", "had", "do", "does", "did", "will",
        "would", "could", "should", "may", "might", "must", "shall",
        "that", "this", "these", "those", "under", "what", "when", "which",
    }
)

_PUNCT_RE = re.compile(r"[^\w\s]")


def extract_keywords(text: str, *, max_keywords: int = 10) -> list[str]:
    """Extract meaningful legal keywords from a concept.

    Lowercases, strips punctuation, drops stop words and words of three
    characters or fewer, and keeps first-seen order without duplicates.
    """

    words = _PUNCT_RE.sub("", text.lower()).split()
    out: list[str] = []
    seen: set[str] = set()
    for w in words:
        if len(w) <= 3 or w in STOP_WORDS or w in seen:
            continue
        seen.add(w)
        out.append(w)
        if len(out) >= max_keywords:
            break
    return out
