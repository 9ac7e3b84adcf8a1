"""Parsed document models."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class LegalMetadata(BaseModel):
    """Best-effort annotations scraped from a source. Never validated."""

    citation: str | None = None
    court: str | None = None
    decision_date: date | None = None
    act_name: str | None = None
    section_path: str | None = None


class ParsedDocument(BaseModel):
    """A cleaned plain-text representation of a fetched legal source."""

    url: str
    title: str | None = None
    text: str
    content_type: str | None = None
    metadata: LegalMetadata = Field(default_factory=LegalMetadata)
