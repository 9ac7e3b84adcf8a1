"""Passage extraction.

The extractor proposes short quotations, with locators, that support a
concept. Like the proposer, it is untrusted: see
:mod:`lexground.tools.passage_verifier`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import openai
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from lexground.llm.client import ChatMessage, LLMClient
from lexground.logging import get_logger
from lexground.models.authority import Locator, SourceType
from lexground.models.retrieval import ExtractedPassage
from lexground.prompts import PASSAGE_EXTRACTOR_SYSTEM_PROMPT
from lexground.utils.tags import extract_json_object

logger = get_logger(__name__)


@runtime_checkable
class PassageExtractor(Protocol):
    """Capability that proposes quotations from a bounded excerpt."""

    def extract(self, *, concept: str, text: str, source_type: SourceType) -> list[ExtractedPassage]:
        ...


class _RawPassage(BaseModel):
    text: str
    locator: Locator | None = None
    relevance_score: float | None = Field(
        default=None, validation_alias=AliasChoices("relevanceScore", "relevance_score")
    )


def parse_passages(raw: str, *, max_passages: int) -> list[ExtractedPassage]:
    """Parse extractor output, skipping malformed entries one by one."""

    data = extract_json_object(raw)
    if data is None:
        logger.warning("Failed to parse passage extraction output; returning empty. Raw=%s", raw[:400])
        return []
    entries = data.get("passages")
    if not isinstance(entries, list):
        logger.warning("Passage extraction output has no passage list; returning empty. Raw=%s", raw[:400])
        return []

    out: list[ExtractedPassage] = []
    for i, entry in enumerate(entries):
        try:
            p = _RawPassage.model_validate(entry)
        except ValidationError as e:
            logger.warning("Skipping malformed passage #%d: %s", i, e.errors(include_url=False))
            continue
        out.append(
            ExtractedPassage(
                text=p.text,
                locator=p.locator or Locator(),
                relevance_score=p.relevance_score or 0.0,
            )
        )
        if len(out) >= max_passages:
            break
    return out


@dataclass(frozen=True)
class LLMPassageExtractor:
    """Extract passages by asking a chat model."""

    llm: LLMClient
    model: str
    max_passages: int = 3
    min_chars: int = 50
    max_chars: int = 500

    def extract(self, *, concept: str, text: str, source_type: SourceType) -> list[ExtractedPassage]:
        """Extract candidate passages.

        Args:
            concept: Concept the passages should support.
            text: Bounded excerpt of the source text.
            source_type: Kind of source, used to phrase the instructions.

        Returns:
            Proposed passages, not yet verified.
        """

        messages = [
            ChatMessage(
                role="system",
                content=PASSAGE_EXTRACTOR_SYSTEM_PROMPT.format(
                    source_type=source_type.value.lower(),
                    max_passages=self.max_passages,
                    min_chars=self.min_chars,
                    max_chars=self.max_chars,
                ),
            ),
            ChatMessage(role="user", content=f'Concept: "{concept}"\n\nSource text:\n{text}'),
        ]
        try:
            raw = self.llm.complete(messages, model=self.model, temperature=0.2, json_mode=True)
        except openai.OpenAIError as e:
            logger.warning("Passage extraction failed for concept=%r: %s", concept, e)
            return []
        return parse_passages(raw, max_passages=self.max_passages)
