"""Tools used by the retrieval pipeline."""

from __future__ import annotations

from lexground.tools.candidate_proposer import CandidateProposer, LLMCandidateProposer
from lexground.tools.page_fetcher import FetchedPage, PageFetcher
from lexground.tools.page_parser import PageParser
from lexground.tools.passage_extractor import LLMPassageExtractor, PassageExtractor
from lexground.tools.passage_verifier import (
    filter_verified_passages,
    normalize_for_match,
    verify_passage_in_source,
)

__all__ = [
    "CandidateProposer",
    "FetchedPage",
    "LLMCandidateProposer",
    "LLMPassageExtractor",
    "PageFetcher",
    "PageParser",
    "PassageExtractor",
    "filter_verified_passages",
    "normalize_for_match",
    "verify_passage_in_source",
]
