"""Retrieval request/response models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from lexground.models.authority import Locator, SourceTier, SourceType


class AuthoritySearchQuery(BaseModel):
    """A request to find authority for a concept within a skill."""

    skill_id: str = Field(min_length=1)
    skill_name: str = Field(min_length=1)
    concept: str = Field(min_length=1)
    jurisdiction: str | None = None
    source_types: list[SourceType] = Field(default_factory=list)

    @field_validator("skill_id", "skill_name", "concept")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class CandidateAuthority(BaseModel):
    """A source proposed by the (untrusted) candidate proposer."""

    url: str
    title: str = "Unknown"
    source_type: SourceType = SourceType.OTHER
    suggested_citation: str | None = None
    snippet_preview: str | None = None


class ExtractedPassage(BaseModel):
    """A quotation proposed by the (untrusted) passage extractor."""

    text: str
    locator: Locator = Field(default_factory=Locator)
    relevance_score: float = Field(default=0.0)


class AuthorityResult(BaseModel):
    """A verified authority handed back to content generators."""

    authority_id: str
    passage_ids: list[str] = Field(default_factory=list)
    citation: str
    url: str
    tier: SourceTier
    verbatim_allowed: bool


class RetrievalResult(BaseModel):
    """Outcome of :meth:`AuthorityRetriever.retrieve_authorities`."""

    success: bool
    authorities: list[AuthorityResult] = Field(default_factory=list)
    fallback_used: bool
    missing_log_id: str | None = None


class MissingAuthorityTag(str, Enum):
    """Audit tags written to the missing-authority log."""

    NO_CANDIDATES = "NO_CANDIDATES"
    ALL_REJECTED_ALLOWLIST = "ALL_REJECTED_ALLOWLIST"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    VALIDATION_FAILED = "VALIDATION_FAILED"


class MissingAuthorityLogEntry(BaseModel):
    """Append-only audit record of a retrieval or grounding failure."""

    id: str
    claim_text: str
    requested_skill_ids: list[str] = Field(default_factory=list)
    search_query: str
    search_results: dict[str, Any] | None = None
    error_tag: MissingAuthorityTag
    session_id: str | None = None
    asset_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
