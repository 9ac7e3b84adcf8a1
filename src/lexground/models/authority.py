"""Authority models.

An authority is a verified external legal source (case, statute, regulation, article). Each
authority owns one or more passages whose text was checked verbatim against the fetched source.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SourceTier(str, Enum):
    """Per-domain trust classification."""

    A = "A"  # primary law
    B = "B"  # secondary commentary
    C = "C"  # restricted, paraphrase only


class SourceType(str, Enum):
    """Kind of legal source."""

    CASE = "CASE"
    STATUTE = "STATUTE"
    REGULATION = "REGULATION"
    ARTICLE = "ARTICLE"
    TEXTBOOK = "TEXTBOOK"
    OTHER = "OTHER"

    @classmethod
    def coerce(cls, value: object) -> SourceType:
        """Map untrusted proposer output onto the closed set, defaulting to OTHER."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return cls.OTHER
        return cls.OTHER


class LicenseTag(str, Enum):
    """License under which a domain publishes its text."""

    PUBLIC_LEGAL_TEXT = "PUBLIC_LEGAL_TEXT"
    CC_BY_SA = "CC_BY_SA"
    RESTRICTED = "RESTRICTED"
    UNKNOWN = "UNKNOWN"


class Locator(BaseModel):
    """Structured pointer into a source: paragraph range, section, or page."""

    model_config = ConfigDict(extra="ignore")

    paragraph_start: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("paragraph_start", "paragraphStart")
    )
    paragraph_end: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("paragraph_end", "paragraphEnd")
    )
    section: str | None = None
    subsection: str | None = None
    page: int | None = Field(default=None, ge=0)

    def is_empty(self) -> bool:
        """Return True when the locator points nowhere."""

        return not any(
            v not in (None, "") for v in self.model_dump().values()
        )


class AuthorityRecord(BaseModel):
    """A stored, verified legal source. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    id: str
    source_tier: SourceTier
    source_type: SourceType
    domain: str
    canonical_url: str
    title: str
    jurisdiction: str
    court: str | None = None
    citation: str | None = None
    decision_date: date | None = None
    act_name: str | None = None
    section_path: str | None = None
    license_tag: LicenseTag
    content_hash: str
    raw_text: str
    is_verified: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def display_citation(self) -> str:
        return self.citation or self.title


class AuthorityPassage(BaseModel):
    """A verbatim, substring-verified excerpt of an authority."""

    model_config = ConfigDict(frozen=True)

    id: str
    authority_id: str
    passage_text: str
    locator: Locator = Field(default_factory=Locator)
    snippet_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
