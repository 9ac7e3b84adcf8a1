"""Pydantic models used across the project."""

from __future__ import annotations

from lexground.models.authority import (
    AuthorityPassage,
    AuthorityRecord,
    LicenseTag,
    Locator,
    SourceTier,
    SourceType,
)
from lexground.models.content import (
    AssetContent,
    Citation,
    ContentItem,
    FixResult,
    GroundingRefs,
    ValidationErrorCode,
    ValidationIssue,
    ValidationOptions,
    ValidationResult,
    ValidationStats,
    ValidationWarning,
    ValidationWarningCode,
)
from lexground.models.retrieval import (
    AuthorityResult,
    AuthoritySearchQuery,
    CandidateAuthority,
    ExtractedPassage,
    MissingAuthorityLogEntry,
    MissingAuthorityTag,
    RetrievalResult,
)

__all__ = [
    "AssetContent",
    "AuthorityPassage",
    "AuthorityRecord",
    "AuthorityResult",
    "AuthoritySearchQuery",
    "CandidateAuthority",
    "Citation",
    "ContentItem",
    "ExtractedPassage",
    "FixResult",
    "GroundingRefs",
    "LicenseTag",
    "Locator",
    "MissingAuthorityLogEntry",
    "MissingAuthorityTag",
    "RetrievalResult",
    "SourceTier",
    "SourceType",
    "ValidationErrorCode",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationResult",
    "ValidationStats",
    "ValidationWarning",
    "ValidationWarningCode",
]
