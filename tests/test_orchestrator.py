"""Tests for the authority retrieval orchestrator."""

from __future__ import annotations

import asyncio
import time

import pytest
from conftest import HEARSAY_PASSAGE, HEARSAY_URL, StubExtractor, StubProposer

from lexground.memory.authority_store import AuthorityStore
from lexground.memory.missing_authority_log import MissingAuthorityLog
from lexground.models.authority import Locator, SourceTier, SourceType
from lexground.models.retrieval import CandidateAuthority, ExtractedPassage, MissingAuthorityTag
from lexground.retrieval.orchestrator import canonicalize_url


def test_retrieves_verified_hearsay_authority(
    make_retriever, proposer, extractor, hearsay_query, store: AuthorityStore
) -> None:
    """It should store a tier A authority with a verbatim passage located at section 34."""

    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.success is True
    assert result.fallback_used is False
    assert result.missing_log_id is None
    assert len(result.authorities) == 1

    auth = result.authorities[0]
    assert auth.tier == SourceTier.A
    assert auth.verbatim_allowed is True
    assert auth.url == HEARSAY_URL
    assert len(auth.passage_ids) == 1

    record = store.get(auth.authority_id)
    assert record is not None
    assert record.is_verified is True
    assert record.domain == "kenyalaw.org"
    assert record.jurisdiction == "Kenya"

    passages = store.get_passages(auth.authority_id)
    assert len(passages) == 1
    assert len(passages[0].passage_text) >= 50
    assert passages[0].locator.section == "34"


def test_second_retrieval_reuses_the_same_authority(
    make_retriever, proposer, extractor, hearsay_query, store: AuthorityStore
) -> None:
    """It should never create a second record for the same URL."""

    retriever = make_retriever(proposer, extractor)
    first = retriever.retrieve_authorities(hearsay_query)
    second = retriever.retrieve_authorities(hearsay_query)

    assert first.authorities[0].authority_id == second.authorities[0].authority_id
    assert store.count() == 1


def test_fetch_and_store_skips_fetch_for_known_url(
    make_retriever, proposer, extractor, hearsay_query, page_server, store: AuthorityStore
) -> None:
    """It should return the stored record for a known URL without fetching it again."""

    retriever = make_retriever(proposer, extractor)
    candidate = proposer.candidates[0]

    first = retriever.fetch_and_store(candidate, hearsay_query)
    second = retriever.fetch_and_store(candidate, hearsay_query)

    assert first is not None and second is not None
    assert first.authority_id == second.authority_id
    assert first.passage_ids == second.passage_ids
    assert page_server.requested.count(HEARSAY_URL) == 1
    assert extractor.calls == 1
    assert store.count() == 1


def test_all_candidates_outside_allowlist(
    make_retriever, extractor, hearsay_query, page_server, missing_log: MissingAuthorityLog
) -> None:
    """It should make no network call and write exactly one ALL_REJECTED_ALLOWLIST entry."""

    proposer = StubProposer(
        candidates=[
            CandidateAuthority(url="https://example.com/hearsay"),
            CandidateAuthority(url="https://evil.kenyalaw.org.attacker.net/page"),
        ]
    )
    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.success is False
    assert result.fallback_used is True
    assert result.authorities == []
    assert page_server.requested == []
    assert extractor.calls == 0

    assert missing_log.count() == 1
    entry = missing_log.get(result.missing_log_id)
    assert entry is not None
    assert entry.error_tag == MissingAuthorityTag.ALL_REJECTED_ALLOWLIST
    assert entry.claim_text == "hearsay exception"
    assert entry.search_query == "Law of Evidence: hearsay exception"
    assert entry.requested_skill_ids == ["skill-evidence-1"]


def test_no_candidates_logs_fallback(
    make_retriever, extractor, hearsay_query, missing_log: MissingAuthorityLog
) -> None:
    """It should fall back with NO_CANDIDATES when the proposer returns nothing."""

    retriever = make_retriever(StubProposer(), extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.success is False
    assert result.fallback_used is True
    assert missing_log.count(MissingAuthorityTag.NO_CANDIDATES) == 1


def test_proposer_error_is_treated_as_no_candidates(
    make_retriever, extractor, hearsay_query, missing_log: MissingAuthorityLog
) -> None:
    """It should not raise when the proposer fails."""

    retriever = make_retriever(StubProposer(error=RuntimeError("model unavailable")), extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.fallback_used is True
    assert missing_log.count(MissingAuthorityTag.NO_CANDIDATES) == 1


def test_paraphrased_passage_is_rejected(
    make_retriever, proposer, hearsay_query, store: AuthorityStore, missing_log: MissingAuthorityLog
) -> None:
    """It should store nothing when the extractor returns text not in the source."""

    mutated = HEARSAY_PASSAGE.replace("admissible facts", "relevant facts")
    extractor = StubExtractor(passages=[ExtractedPassage(text=mutated, locator=Locator(section="34"))])
    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.success is False
    assert result.fallback_used is True
    assert store.count() == 0
    assert store.count_passages() == 0
    assert missing_log.count(MissingAuthorityTag.EXTRACTION_FAILED) == 1


def test_fetch_failure_logs_extraction_failed(
    make_retriever, extractor, hearsay_query, store: AuthorityStore, missing_log: MissingAuthorityLog
) -> None:
    """It should treat an HTTP error as a failed candidate."""

    proposer = StubProposer(candidates=[CandidateAuthority(url="https://kenyalaw.org/missing-page")])
    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.fallback_used is True
    assert store.count() == 0
    entry = missing_log.get(result.missing_log_id)
    assert entry is not None
    assert entry.error_tag == MissingAuthorityTag.EXTRACTION_FAILED
    assert entry.search_results == {"attempted": ["https://kenyalaw.org/missing-page"]}


def test_only_allowlisted_candidates_are_fetched(
    make_retriever, extractor, hearsay_query, page_server
) -> None:
    """It should drop disallowed candidates and still succeed with the allowed one."""

    proposer = StubProposer(
        candidates=[
            CandidateAuthority(url="https://example.com/hearsay"),
            CandidateAuthority(url=HEARSAY_URL, source_type=SourceType.STATUTE),
        ]
    )
    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.success is True
    assert page_server.requested == [HEARSAY_URL]


def test_cache_hit_skips_proposer(make_retriever, proposer, extractor, hearsay_query) -> None:
    """It should answer from stored authorities before asking the proposer."""

    retriever = make_retriever(proposer, extractor)
    retriever.retrieve_authorities(hearsay_query)
    assert proposer.calls == 1

    result = retriever.retrieve_authorities(hearsay_query)
    assert result.success is True
    assert proposer.calls == 1


def test_query_accepts_mapping(make_retriever, proposer, extractor) -> None:
    """It should validate a plain mapping into a query."""

    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(
        {"skill_id": "s1", "skill_name": "Law of Evidence", "concept": "hearsay exception"}
    )
    assert result.success is True


def test_async_retrieval_matches_sync(
    make_retriever, proposer, extractor, hearsay_query, store: AuthorityStore
) -> None:
    """It should run the same pipeline on the async path."""

    retriever = make_retriever(proposer, extractor)
    result = asyncio.run(retriever.retrieve_authorities_async(hearsay_query))

    assert result.success is True
    assert store.count() == 1
    assert result.authorities[0].passage_ids == store.passage_ids_for(result.authorities[0].authority_id)


def test_canonicalize_url_drops_fragment_and_lowercases_host() -> None:
    """It should normalize scheme, host and fragment only."""

    assert canonicalize_url("  HTTPS://KenyaLaw.org/Case/1?x=1#para3 ") == "https://kenyalaw.org/Case/1?x=1"


def test_malformed_query_raises_value_error(make_retriever, proposer, extractor) -> None:
    """It should reject a blank concept before doing any work."""

    retriever = make_retriever(proposer, extractor)
    with pytest.raises(ValueError):
        retriever.retrieve_authorities({"skill_id": "s1", "skill_name": "Evidence", "concept": "   "})
    assert proposer.calls == 0


def test_passage_without_locator_is_extraction_failure(
    make_retriever, proposer, hearsay_query, store: AuthorityStore, missing_log: MissingAuthorityLog
) -> None:
    """It should not store a verbatim passage that carries no locator."""

    extractor = StubExtractor(passages=[ExtractedPassage(text=HEARSAY_PASSAGE)])
    retriever = make_retriever(proposer, extractor)
    result = retriever.retrieve_authorities(hearsay_query)

    assert result.success is False
    assert result.fallback_used is True
    assert store.count() == 0
    entry = missing_log.get(result.missing_log_id)
    assert entry is not None
    assert entry.error_tag == MissingAuthorityTag.EXTRACTION_FAILED


HANGING_URL = "https://kenyalaw.org/kl/hanging-page"


def _hanging_then_good() -> StubProposer:
    return StubProposer(
        candidates=[
            CandidateAuthority(url=HANGING_URL, source_type=SourceType.CASE),
            CandidateAuthority(url=HEARSAY_URL, source_type=SourceType.STATUTE),
        ]
    )


def test_hanging_domain_does_not_stall_other_candidates(
    make_retriever, extractor, hearsay_query, page_server
) -> None:
    """It should return the good authority once the candidate budget runs out."""

    page_server.hanging.add(HANGING_URL)
    retriever = make_retriever(_hanging_then_good(), extractor, candidate_timeout_s=1.0)

    start = time.monotonic()
    result = retriever.retrieve_authorities(hearsay_query)
    elapsed = time.monotonic() - start
    page_server.release.set()

    assert elapsed < 5
    assert result.success is True
    assert [a.url for a in result.authorities] == [HEARSAY_URL]


def test_all_hanging_candidates_log_extraction_failed(
    make_retriever, extractor, hearsay_query, page_server, missing_log: MissingAuthorityLog
) -> None:
    """It should fall back when every candidate exceeds its budget."""

    page_server.hanging.add(HANGING_URL)
    proposer = StubProposer(candidates=[CandidateAuthority(url=HANGING_URL)])
    retriever = make_retriever(proposer, extractor, candidate_timeout_s=1.0)

    start = time.monotonic()
    result = retriever.retrieve_authorities(hearsay_query)
    elapsed = time.monotonic() - start
    page_server.release.set()

    assert elapsed < 5
    assert result.fallback_used is True
    entry = missing_log.get(result.missing_log_id)
    assert entry is not None
    assert entry.error_tag == MissingAuthorityTag.EXTRACTION_FAILED
    assert entry.search_results == {"attempted": [HANGING_URL]}


def test_async_hanging_domain_is_cut_at_its_budget(
    make_retriever, extractor, hearsay_query, page_server
) -> None:
    """It should time out the hanging candidate on the async path too."""

    page_server.hanging.add(HANGING_URL)
    retriever = make_retriever(_hanging_then_good(), extractor, candidate_timeout_s=1.0)

    async def run():
        start = time.monotonic()
        result = await retriever.retrieve_authorities_async(hearsay_query)
        elapsed = time.monotonic() - start
        # let the abandoned worker thread finish before the loop shuts down
        page_server.release.set()
        return result, elapsed

    result, elapsed = asyncio.run(run())

    assert elapsed < 5
    assert result.success is True
    assert [a.url for a in result.authorities] == [HEARSAY_URL]
