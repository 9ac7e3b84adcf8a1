"""Candidate authority proposal.

A proposer names URLs that may hold authority for a concept. Its output is
untrusted: the orchestrator still checks every URL against the allowlist and
every quotation against the fetched text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import openai

from lexground.governance import build_kenya_law_search_url
from lexground.llm.client import ChatMessage, LLMClient
from lexground.logging import get_logger
from lexground.models.authority import SourceType
from lexground.models.retrieval import AuthoritySearchQuery, CandidateAuthority
from lexground.prompts import CANDIDATE_PROPOSER_SYSTEM_PROMPT
from lexground.utils.tags import extract_json_value

logger = get_logger(__name__)


@runtime_checkable
class CandidateProposer(Protocol):
    """Capability that proposes candidate sources for a concept."""

    def propose(self, query: AuthoritySearchQuery) -> list[CandidateAuthority]:
        ...


def _is_http_url(url: str) -> bool:
    lowered = url.strip().lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def parse_candidates(raw: str) -> list[CandidateAuthority]:
    """Parse proposer output into candidates, discarding anything without an http(s) URL.

    Accepts a bare JSON array or an object wrapping it under ``candidates`` or
    ``results``.
    """

    data = extract_json_value(raw)
    items: Any = data
    if isinstance(data, dict):
        items = data.get("candidates", data.get("results"))
    if not isinstance(items, list):
        logger.warning("Failed to parse candidate proposal; returning empty. Raw=%s", (raw or "")[:300])
        return []

    out: list[CandidateAuthority] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        url = str(item.get("url") or "").strip()
        if not url or not _is_http_url(url):
            continue
        out.append(
            CandidateAuthority(
                url=url,
                title=str(item.get("title") or "Unknown"),
                source_type=SourceType.coerce(item.get("sourceType", item.get("source_type"))),
                suggested_citation=item.get("suggestedCitation") or item.get("suggested_citation"),
                snippet_preview=item.get("snippet"),
            )
        )
    return out


def build_search_prompt(query: AuthoritySearchQuery, default_jurisdiction: str | None = None) -> str:
    parts = [
        f'Find authoritative legal sources for the concept: "{query.concept}"',
        f"Skill area: {query.skill_name}",
    ]
    if query.jurisdiction:
        parts.append(f"Jurisdiction: {query.jurisdiction}")
    if query.source_types:
        parts.append(f"Preferred source types: {', '.join(t.value for t in query.source_types)}")
    if (query.jurisdiction or default_jurisdiction or "").lower() == "kenya":
        parts.append(f"Kenya Law search for this concept: {build_kenya_law_search_url(query.concept)}")
    parts.append("Return specific URLs from Kenya Law, BAILII, or official legislation sites.")
    return "\n".join(parts)


@dataclass(frozen=True)
class LLMCandidateProposer:
    """Propose candidates by asking a chat model."""

    llm: LLMClient
    model: str
    default_jurisdiction: str = "Kenya"

    def propose(self, query: AuthoritySearchQuery) -> list[CandidateAuthority]:
        messages = [
            ChatMessage(
                role="system",
                content=CANDIDATE_PROPOSER_SYSTEM_PROMPT.format(
                    jurisdiction=query.jurisdiction or self.default_jurisdiction
                ),
            ),
            ChatMessage(
                role="user",
                content=build_search_prompt(query, default_jurisdiction=self.default_jurisdiction),
            ),
        ]
        try:
            raw = self.llm.complete(messages, model=self.model, temperature=0.3, json_mode=True)
        except openai.OpenAIError as e:
            logger.warning("Candidate proposal failed for concept=%r: %s", query.concept, e)
            return []
        return parse_candidates(raw)
