"""Source governance: domain allowlist, trust tiers and grounding rules.

Tier A: primary law, preferred for black-letter rules.
Tier B: secondary commentary, allowed for explanation but not as sole support.
Tier C: restricted, no verbatim quoting unless explicitly licensed.

Candidate URLs come from an untrusted proposer. Every candidate must pass
:func:`is_allowed_domain` before any network call is made.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping
from urllib.parse import quote, urlsplit

from lexground.models.authority import LicenseTag, SourceTier


@dataclass(frozen=True)
class AllowedDomain:
    """Governance entry for one registrable domain."""

    domain: str
    tier: SourceTier
    license: LicenseTag
    allow_verbatim: bool
    description: str
    jurisdiction: tuple[str, ...] = ()


@dataclass(frozen=True)
class SourcePolicy:
    """Quoting policy applied to every source of a tier."""

    max_verbatim_chars: int
    require_pinpoint: bool
    editorial_copy_forbidden: bool


@dataclass(frozen=True)
class SourceValidation:
    valid: bool
    tier: SourceTier | None
    allow_verbatim: bool
    reason: str | None = None


@dataclass(frozen=True)
class GroundingRules:
    """Global rules enforced by the grounding validator."""

    min_citation_count: int = 1
    fallback_message: str = "Not found in verified sources yet"

    def __post_init__(self) -> None:
        if self.min_citation_count < 1:
            raise ValueError("min_citation_count must be >= 1")


GROUNDING_RULES = GroundingRules()


_TIER_A_DOMAINS: tuple[AllowedDomain, ...] = (
    # Kenya
    AllowedDomain(
        domain="kenyalaw.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Kenya",),
        description="Kenya Law Reports - official case law and legislation",
    ),
    AllowedDomain(
        domain="parliament.go.ke",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Kenya",),
        description="Kenya Parliament - bills and acts",
    ),
    AllowedDomain(
        domain="judiciary.go.ke",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Kenya",),
        description="Kenya Judiciary - official court documents",
    ),
    AllowedDomain(
        domain="sheriaplex.com",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Kenya",),
        description="SheriaPlex - Kenya legal information platform",
    ),
    # UK, for the common law heritage
    AllowedDomain(
        domain="bailii.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("UK", "Commonwealth"),
        description="BAILII - British and Irish Legal Information Institute",
    ),
    AllowedDomain(
        domain="legislation.gov.uk",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("UK",),
        description="UK Government legislation",
    ),
    # Commonwealth legal information institutes
    AllowedDomain(
        domain="saflii.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("South Africa", "Commonwealth"),
        description="SAFLII - Southern African Legal Information Institute",
    ),
    AllowedDomain(
        domain="canlii.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Canada", "Commonwealth"),
        description="CanLII - Canadian Legal Information Institute",
    ),
    AllowedDomain(
        domain="austlii.edu.au",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Australia", "Commonwealth"),
        description="AustLII - Australasian Legal Information Institute",
    ),
    AllowedDomain(
        domain="nzlii.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("New Zealand", "Commonwealth"),
        description="NZLII - New Zealand Legal Information Institute",
    ),
    AllowedDomain(
        domain="eacj.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("East Africa",),
        description="East African Court of Justice",
    ),
    AllowedDomain(
        domain="african-court.org",
        tier=SourceTier.A,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("Africa", "AU"),
        description="African Court on Human and Peoples' Rights",
    ),
)

_TIER_B_DOMAINS: tuple[AllowedDomain, ...] = (
    AllowedDomain(
        domain="papers.ssrn.com",
        tier=SourceTier.B,
        license=LicenseTag.CC_BY_SA,
        allow_verbatim=False,
        description="SSRN - academic legal papers",
    ),
    AllowedDomain(
        domain="jurist.org",
        tier=SourceTier.B,
        license=LicenseTag.CC_BY_SA,
        allow_verbatim=False,
        description="JURIST - legal news and commentary",
    ),
    AllowedDomain(
        domain="law.cornell.edu",
        tier=SourceTier.B,
        license=LicenseTag.PUBLIC_LEGAL_TEXT,
        allow_verbatim=True,
        jurisdiction=("USA",),
        description="Cornell LII - Legal Information Institute",
    ),
    AllowedDomain(
        domain="journals.cambridge.org",
        tier=SourceTier.B,
        license=LicenseTag.RESTRICTED,
        allow_verbatim=False,
        description="Cambridge Journals - academic journals",
    ),
    AllowedDomain(
        domain="oxfordjournals.org",
        tier=SourceTier.B,
        license=LicenseTag.RESTRICTED,
        allow_verbatim=False,
        description="Oxford Journals - academic journals",
    ),
    # Law firm briefings, commentary only
    AllowedDomain(
        domain="bowmanslaw.com",
        tier=SourceTier.B,
        license=LicenseTag.UNKNOWN,
        allow_verbatim=False,
        jurisdiction=("Kenya", "Africa"),
        description="Bowmans - law firm briefings",
    ),
    AllowedDomain(
        domain="oraro.co.ke",
        tier=SourceTier.B,
        license=LicenseTag.UNKNOWN,
        allow_verbatim=False,
        jurisdiction=("Kenya",),
        description="Oraro & Company - law firm briefings",
    ),
    AllowedDomain(
        domain="tripleoklaw.com",
        tier=SourceTier.B,
        license=LicenseTag.UNKNOWN,
        allow_verbatim=False,
        jurisdiction=("Kenya",),
        description="TripleOKLaw - law firm briefings",
    ),
)

_TIER_C_DOMAINS: tuple[AllowedDomain, ...] = (
    AllowedDomain(
        domain="westlaw.com",
        tier=SourceTier.C,
        license=LicenseTag.RESTRICTED,
        allow_verbatim=False,
        description="Westlaw - paid legal database (headnotes copyrighted)",
    ),
    AllowedDomain(
        domain="lexisnexis.com",
        tier=SourceTier.C,
        license=LicenseTag.RESTRICTED,
        allow_verbatim=False,
        description="LexisNexis - paid legal database",
    ),
    AllowedDomain(
        domain="practicallaw.com",
        tier=SourceTier.C,
        license=LicenseTag.RESTRICTED,
        allow_verbatim=False,
        description="Practical Law - Thomson Reuters",
    ),
    AllowedDomain(
        domain="kluwerlawonline.com",
        tier=SourceTier.C,
        license=LicenseTag.RESTRICTED,
        allow_verbatim=False,
        description="Kluwer Law Online - paid database",
    ),
)

ALLOWED_DOMAINS: tuple[AllowedDomain, ...] = _TIER_A_DOMAINS + _TIER_B_DOMAINS + _TIER_C_DOMAINS

SOURCE_POLICIES: Mapping[SourceTier, SourcePolicy] = MappingProxyType(
    {
        SourceTier.A: SourcePolicy(
            max_verbatim_chars=2000,
            require_pinpoint=True,
            editorial_copy_forbidden=False,
        ),
        SourceTier.B: SourcePolicy(
            max_verbatim_chars=300,
            require_pinpoint=True,
            editorial_copy_forbidden=True,
        ),
        SourceTier.C: SourcePolicy(
            max_verbatim_chars=0,
            require_pinpoint=True,
            editorial_copy_forbidden=True,
        ),
    }
)


def _build_domain_index(entries: tuple[AllowedDomain, ...]) -> Mapping[str, AllowedDomain]:
    index: dict[str, AllowedDomain] = {}
    for entry in entries:
        key = entry.domain.lower()
        if key in index:
            raise ValueError(f"Duplicate governance entry for domain {entry.domain!r}")
        if not isinstance(entry.tier, SourceTier) or entry.tier not in SOURCE_POLICIES:
            raise ValueError(f"Unknown source tier {entry.tier!r} for domain {entry.domain!r}")
        if not isinstance(entry.license, LicenseTag):
            raise ValueError(f"Unknown license tag {entry.license!r} for domain {entry.domain!r}")
        index[key] = entry
    return MappingProxyType(index)


_DOMAIN_INDEX = _build_domain_index(ALLOWED_DOMAINS)


def _hostname(url: str) -> str | None:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https"):
        return None
    host = (parts.hostname or "").rstrip(".").lower()
    return host or None


def get_domain_info(url: str) -> AllowedDomain | None:
    """Return the governance entry covering ``url``, or None.

    A host is covered by an entry when it equals the entry's domain or is a
    subdomain of it. The most specific matching domain wins.
    """

    host = _hostname(url)
    if host is None:
        return None
    labels = host.split(".")
    for i in range(len(labels) - 1):
        entry = _DOMAIN_INDEX.get(".".join(labels[i:]))
        if entry is not None:
            return entry
    return None


def is_allowed_domain(url: str) -> bool:
    """Check whether a URL belongs to the curated allowlist."""

    return get_domain_info(url) is not None


def can_quote_verbatim(url: str, license_override: LicenseTag | None = None) -> bool:
    """Check whether verbatim quoting is permitted for a URL.

    An explicit open-license override (for example set by an admin on a stored
    record) permits quoting even where the domain default does not.
    """

    info = get_domain_info(url)
    if info is None:
        return False
    if license_override in (LicenseTag.PUBLIC_LEGAL_TEXT, LicenseTag.CC_BY_SA):
        return True
    return info.allow_verbatim


def get_source_tier(url: str) -> SourceTier | None:
    info = get_domain_info(url)
    return info.tier if info else None


def get_source_policy(url: str) -> SourcePolicy | None:
    tier = get_source_tier(url)
    return SOURCE_POLICIES[tier] if tier else None


def validate_source(url: str) -> SourceValidation:
    """Validate a source URL against governance rules."""

    info = get_domain_info(url)
    if info is None:
        return SourceValidation(
            valid=False,
            tier=None,
            allow_verbatim=False,
            reason="Domain not in allowlist",
        )
    return SourceValidation(valid=True, tier=info.tier, allow_verbatim=info.allow_verbatim)


def is_tier_a_primary(url: str) -> bool:
    return get_source_tier(url) == SourceTier.A


def get_primary_sources(jurisdiction: str = "Kenya") -> list[AllowedDomain]:
    """Tier A domains serving a jurisdiction, including regional courts for Kenya."""

    wanted = {jurisdiction.lower()}
    if jurisdiction.lower() == "kenya":
        wanted.add("east africa")
    return [
        d
        for d in _TIER_A_DOMAINS
        if any(j.lower() in wanted for j in d.jurisdiction)
    ]


def build_kenya_law_search_url(query: str) -> str:
    return f"http://kenyalaw.org/caselaw/cases/view/?query={quote(query)}"
