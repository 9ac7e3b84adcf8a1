"""Generated content models consumed by the grounding validator."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from lexground.models.authority import Locator


AssetType = Literal["NOTES", "CHECKPOINT", "PRACTICE_SET", "RUBRIC"]


class Citation(BaseModel):
    """A pointer from a content item to a verified authority."""

    authority_id: str | None = None
    url: str = ""
    locator: Locator | None = None
    passage_id: str | None = None
    verbatim_quote: str | None = None


class ContentItem(BaseModel):
    """A single generated unit (note paragraph, question, rubric line...)."""

    type: str
    prompt: str | None = None
    content: str | None = None
    question: str | None = None
    answer: str | None = None
    explanation: str | None = None
    citations: list[Citation] = Field(default_factory=list)
    evidence_span_ids: list[str] = Field(default_factory=list)
    is_instruction_only: bool = False


class GroundingRefs(BaseModel):
    authority_ids: list[str] = Field(default_factory=list)
    outline_topic_ids: list[str] = Field(default_factory=list)
    lecture_chunk_ids: list[str] = Field(default_factory=list)


class AssetContent(BaseModel):
    """A batch of content items submitted together for validation."""

    asset_type: AssetType
    items: list[ContentItem] = Field(default_factory=list)
    activity_types: list[str] = Field(default_factory=list)
    grounding_refs: GroundingRefs = Field(default_factory=GroundingRefs)


class ValidationErrorCode(str, Enum):
    MISSING_CITATION = "MISSING_CITATION"
    INVALID_AUTHORITY = "INVALID_AUTHORITY"
    MISSING_LOCATOR = "MISSING_LOCATOR"


class ValidationWarningCode(str, Enum):
    LOW_CITATION_COUNT = "LOW_CITATION_COUNT"
    MISSING_EVIDENCE_SPAN = "MISSING_EVIDENCE_SPAN"
    TIER_C_SOURCE = "TIER_C_SOURCE"


class ValidationIssue(BaseModel):
    """A grounding error tied to one item."""

    code: ValidationErrorCode
    message: str
    item_index: int
    item_type: str


class ValidationWarning(BaseModel):
    """A non-fatal grounding observation."""

    code: ValidationWarningCode
    message: str
    item_index: int | None = None


class ValidationStats(BaseModel):
    total_items: int = 0
    cited_items: int = 0
    uncited_items: int = 0
    unique_authorities: int = 0
    fallback_items: int = 0


class ValidationResult(BaseModel):
    """Outcome of :meth:`GroundingValidator.assert_grounded`."""

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationWarning] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)


class ValidationOptions(BaseModel):
    """Caller context for a validation run."""

    session_id: str | None = None
    asset_id: str | None = None
    skill_id: str | None = None
    skill_name: str | None = None
    topic: str | None = None
    strict: bool = False


class FixResult(BaseModel):
    """Outcome of :meth:`GroundingValidator.validate_and_fix`."""

    content: AssetContent
    validation: ValidationResult
    was_fixed: bool
