from __future__ import annotations

from lexground.prompts.retrieval import CANDIDATE_PROPOSER_SYSTEM_PROMPT, PASSAGE_EXTRACTOR_SYSTEM_PROMPT

__all__ = [
    "CANDIDATE_PROPOSER_SYSTEM_PROMPT",
    "PASSAGE_EXTRACTOR_SYSTEM_PROMPT",
]
