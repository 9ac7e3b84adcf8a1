"""Authority retrieval orchestrator.

Turns "find authority for concept X" into verified, stored authorities:

1. Cache check against stored, verified records.
2. An untrusted proposer names candidate URLs.
3. Candidates outside the domain allowlist are dropped.
4. Up to ``max_candidates`` survivors are fetched, parsed, passage-extracted,
   verified and persisted independently.

Every failure path writes a missing-authority log entry before returning a
``fallback_used=True`` result. Expected failures never raise.
"""

from __future__ import annotations

import asyncio
import contextvars
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urlsplit, urlunsplit

from lexground.config import Settings
from lexground.core.concurrency import gather_bounded
from lexground.errors import FetchError
from lexground.governance import can_quote_verbatim, get_domain_info, is_allowed_domain
from lexground.logging import (
    candidate_context,
    get_logger,
    log_exception,
    request_context,
    set_stage,
)
from lexground.memory.authority_store import AuthorityStore
from lexground.memory.missing_authority_log import MissingAuthorityLog
from lexground.models.authority import AuthorityRecord
from lexground.models.retrieval import (
    AuthorityResult,
    AuthoritySearchQuery,
    CandidateAuthority,
    MissingAuthorityTag,
    RetrievalResult,
)
from lexground.tools.candidate_proposer import CandidateProposer
from lexground.tools.page_fetcher import PageFetcher
from lexground.tools.page_parser import PageParser
from lexground.tools.passage_extractor import PassageExtractor
from lexground.tools.passage_verifier import filter_verified_passages
from lexground.utils.ids import new_authority_id, new_id, sha256_hex
from lexground.utils.keywords import extract_keywords

logger = get_logger(__name__)


def canonicalize_url(url: str) -> str:
    """Strip whitespace and fragment; lowercase scheme and host."""

    parts = urlsplit(url.strip())
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))


@dataclass
class AuthorityRetriever:
    """Sequences cache lookup, proposal, allowlist filtering and fetch/verify/store."""

    settings: Settings
    store: AuthorityStore
    missing_log: MissingAuthorityLog
    proposer: CandidateProposer
    extractor: PassageExtractor
    fetcher: PageFetcher
    parser: PageParser = field(default_factory=PageParser)

    # ------------------------------------------------------------ public API

    def retrieve_authorities(
        self, query: AuthoritySearchQuery | Mapping[str, Any]
    ) -> RetrievalResult:
        """Retrieve verified authorities for a concept.

        Candidate attempts run on a bounded thread pool, each within
        ``candidate_timeout_s``.

        Raises:
            ValueError: If ``query`` is malformed.
        """

        q = _coerce_query(query)
        with request_context(request_id=new_id("ret"), stage="cache"):
            prepared = self._prepare(q)
            if isinstance(prepared, RetrievalResult):
                return prepared

            set_stage("fetch")
            results = self._fan_out_threads(prepared, q)
            return self._finish(q, prepared, results)

    async def retrieve_authorities_async(
        self, query: AuthoritySearchQuery | Mapping[str, Any]
    ) -> RetrievalResult:
        """Async variant of :meth:`retrieve_authorities`.

        Cancelling the awaiting task abandons in-flight candidates; records
        committed before cancellation stay in the store and are reused by
        later calls.
        """

        q = _coerce_query(query)
        with request_context(request_id=new_id("ret"), stage="cache"):
            prepared = await asyncio.to_thread(self._prepare, q)
            if isinstance(prepared, RetrievalResult):
                return prepared

            set_stage("fetch")
            outcomes = await gather_bounded(
                [
                    (lambda c=c: asyncio.to_thread(self.fetch_and_store, c, q))
                    for c in prepared
                ],
                max_concurrent=self.settings.max_candidates,
                timeout_s=self.settings.candidate_timeout_s,
            )
            results: list[AuthorityResult] = []
            for candidate, outcome in zip(prepared, outcomes):
                if isinstance(outcome, BaseException):
                    self._log_candidate_failure(candidate, outcome)
                elif outcome is not None:
                    results.append(outcome)
            return await asyncio.to_thread(self._finish, q, prepared, results)

    def find_existing_authorities(self, query: AuthoritySearchQuery) -> list[AuthorityResult]:
        """Cache lookup: verified records matching the concept's keywords."""

        keywords = extract_keywords(query.concept)[: self.settings.cache_max_keywords]
        if not keywords:
            return []
        records = self.store.search_by_keywords(
            keywords,
            min_overlap=self.settings.cache_min_keyword_overlap,
            limit=self.settings.cache_result_limit,
        )
        return [self._to_result(r, self.store.passage_ids_for(r.id)) for r in records]

    def fetch_and_store(
        self, candidate: CandidateAuthority, query: AuthoritySearchQuery
    ) -> AuthorityResult | None:
        """Fetch, extract, verify and persist one candidate.

        Returns None when the candidate fails for an expected reason: domain
        not allowed, fetch failure, or no verifiable passage.
        """

        url = canonicalize_url(candidate.url)
        with candidate_context(url):
            return self._fetch_and_store(url, candidate, query)

    def _fetch_and_store(
        self, url: str, candidate: CandidateAuthority, query: AuthoritySearchQuery
    ) -> AuthorityResult | None:
        info = get_domain_info(url)
        if info is None:
            logger.warning("Candidate rejected on re-check, domain not allowed: %s", url)
            return None

        existing = self.store.get_by_url(url)
        if existing is not None:
            logger.info("Authority already stored for %s; skipping fetch", url)
            return self._to_result(existing, self.store.passage_ids_for(existing.id))

        try:
            page = self.fetcher.fetch(url)
        except FetchError as e:
            logger.warning("%s", e)
            return None

        doc = self.parser.parse_html(url, page.text, content_type=page.content_type)
        if not doc.text:
            logger.warning("No text extracted from %s", url)
            return None

        stored_text = doc.text[: self.settings.max_stored_text_chars]
        excerpt = doc.text[: self.settings.extraction_excerpt_chars]
        proposed = self.extractor.extract(
            concept=query.concept,
            text=excerpt,
            source_type=candidate.source_type,
        )
        # Verify against the text that will be persisted, so every stored
        # passage stays checkable against its parent record.
        verified = filter_verified_passages(
            proposed,
            stored_text,
            min_chars=self.settings.passage_min_chars,
            max_chars=self.settings.passage_max_chars,
            max_passages=self.settings.max_passages,
        )
        if not verified:
            logger.info(
                "No verifiable passages for %s (%d proposed); candidate dropped",
                url,
                len(proposed),
            )
            return None

        title = candidate.title if candidate.title and candidate.title != "Unknown" else None
        record = AuthorityRecord(
            id=new_authority_id(),
            source_tier=info.tier,
            source_type=candidate.source_type,
            domain=info.domain,
            canonical_url=url,
            title=title or doc.title or "Unknown",
            jurisdiction=(
                info.jurisdiction[0]
                if info.jurisdiction
                else query.jurisdiction or self.settings.default_jurisdiction
            ),
            court=doc.metadata.court,
            citation=candidate.suggested_citation or doc.metadata.citation,
            decision_date=doc.metadata.decision_date,
            act_name=doc.metadata.act_name,
            section_path=doc.metadata.section_path,
            license_tag=info.license,
            content_hash=sha256_hex(doc.text),
            raw_text=stored_text,
            is_verified=True,
        )
        outcome = self.store.upsert_authority(record, verified)
        return self._to_result(outcome.record, [p.id for p in outcome.passages])

    # -------------------------------------------------------------- pipeline

    def _prepare(self, query: AuthoritySearchQuery) -> RetrievalResult | list[CandidateAuthority]:
        """Steps 1-3. Returns a final result or the candidates to attempt."""

        logger.info("Searching authority for %r (skill: %s)", query.concept, query.skill_name)

        existing = self.find_existing_authorities(query)
        if existing:
            logger.info("Found %d existing authorities", len(existing))
            return RetrievalResult(success=True, authorities=existing, fallback_used=False)

        set_stage("propose")
        candidates = self._propose(query)
        if not candidates:
            logger.info("No candidates proposed")
            return self._handle_missing(query, MissingAuthorityTag.NO_CANDIDATES, {"proposed": []})

        set_stage("filter")
        allowed: list[CandidateAuthority] = []
        seen: set[str] = set()
        for c in candidates:
            url = canonicalize_url(c.url)
            if url in seen or not is_allowed_domain(url):
                continue
            seen.add(url)
            allowed.append(c.model_copy(update={"url": url}))
        if not allowed:
            logger.info("All %d candidates rejected by allowlist", len(candidates))
            return self._handle_missing(
                query,
                MissingAuthorityTag.ALL_REJECTED_ALLOWLIST,
                {"proposed": [c.url for c in candidates]},
            )
        return allowed[: self.settings.max_candidates]

    def _propose(self, query: AuthoritySearchQuery) -> list[CandidateAuthority]:
        try:
            proposed = self.proposer.propose(query)
        except Exception:
            log_exception(
                logger, "Candidate proposer raised; treating as no candidates", concept=query.concept
            )
            return []
        return [c for c in proposed if urlsplit(c.url.strip()).scheme.lower() in ("http", "https")]

    def _fan_out_threads(
        self, candidates: list[CandidateAuthority], query: AuthoritySearchQuery
    ) -> list[AuthorityResult]:
        results: list[AuthorityResult] = []
        pool = ThreadPoolExecutor(
            max_workers=min(len(candidates), self.settings.max_candidates),
            thread_name_prefix="lexground-candidate",
        )
        try:
            futures = [
                pool.submit(contextvars.copy_context().run, self.fetch_and_store, c, query)
                for c in candidates
            ]
            deadline = time.monotonic() + self.settings.candidate_timeout_s
            for candidate, fut in zip(candidates, futures):
                try:
                    res = fut.result(timeout=max(0.0, deadline - time.monotonic()))
                except FuturesTimeoutError as e:
                    fut.cancel()
                    self._log_candidate_failure(candidate, e)
                    continue
                except Exception as e:
                    self._log_candidate_failure(candidate, e)
                    continue
                if res is not None:
                    results.append(res)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return results

    def _finish(
        self,
        query: AuthoritySearchQuery,
        attempted: list[CandidateAuthority],
        results: list[AuthorityResult],
    ) -> RetrievalResult:
        if not results:
            logger.info("No valid authorities extracted from %d candidates", len(attempted))
            return self._handle_missing(
                query,
                MissingAuthorityTag.EXTRACTION_FAILED,
                {"attempted": [c.url for c in attempted]},
            )
        return RetrievalResult(success=True, authorities=results, fallback_used=False)

    def _handle_missing(
        self,
        query: AuthoritySearchQuery,
        tag: MissingAuthorityTag,
        snapshot: dict[str, Any] | None,
    ) -> RetrievalResult:
        entry = self.missing_log.append(
            claim_text=query.concept,
            error_tag=tag,
            search_query=f"{query.skill_name}: {query.concept}",
            requested_skill_ids=[query.skill_id],
            search_results=snapshot,
        )
        return RetrievalResult(
            success=False,
            authorities=[],
            fallback_used=True,
            missing_log_id=entry.id,
        )

    @staticmethod
    def _log_candidate_failure(candidate: CandidateAuthority, error: BaseException) -> None:
        if isinstance(error, (asyncio.TimeoutError, FuturesTimeoutError)):
            logger.warning("Candidate timed out: %s", candidate.url)
        else:
            logger.error(
                "Failed to fetch %s: %s",
                candidate.url,
                error,
                exc_info=(type(error), error, error.__traceback__),
            )

    @staticmethod
    def _to_result(record: AuthorityRecord, passage_ids: list[str]) -> AuthorityResult:
        return AuthorityResult(
            authority_id=record.id,
            passage_ids=passage_ids,
            citation=record.display_citation,
            url=record.canonical_url,
            tier=record.source_tier,
            verbatim_allowed=can_quote_verbatim(record.canonical_url),
        )


def _coerce_query(query: AuthoritySearchQuery | Mapping[str, Any]) -> AuthoritySearchQuery:
    if isinstance(query, AuthoritySearchQuery):
        return query
    return AuthoritySearchQuery.model_validate(dict(query))
