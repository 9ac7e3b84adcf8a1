"""Authority retrieval."""

from __future__ import annotations

from lexground.retrieval.content_builder import GroundedContent, build_grounded_content
from lexground.retrieval.orchestrator import AuthorityRetriever, canonicalize_url

__all__ = [
    "AuthorityRetriever",
    "GroundedContent",
    "build_grounded_content",
    "canonicalize_url",
]
