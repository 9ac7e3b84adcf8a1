"""Tests for parsing untrusted proposer and extractor output."""

from __future__ import annotations

from lexground.models.authority import Locator, SourceType
from lexground.models.retrieval import AuthoritySearchQuery
from lexground.tools.candidate_proposer import build_search_prompt, parse_candidates
from lexground.tools.passage_extractor import parse_passages


def test_parse_candidates_accepts_wrapped_object_and_camel_case() -> None:
    """It should read ``candidates`` with camelCase keys and coerce unknown types."""

    raw = """
    {"candidates": [
        {"url": "https://kenyalaw.org/case/1", "title": "R v X", "sourceType": "case",
         "suggestedCitation": "[2019] eKLR"},
        {"url": "https://example.com/blog", "sourceType": "BLOG"},
        {"url": "javascript:alert(1)"},
        {"title": "no url"},
        "garbage"
    ]}
    """
    cands = parse_candidates(raw)

    assert [c.url for c in cands] == ["https://kenyalaw.org/case/1", "https://example.com/blog"]
    assert cands[0].source_type == SourceType.CASE
    assert cands[0].suggested_citation == "[2019] eKLR"
    assert cands[1].source_type == SourceType.OTHER
    assert cands[1].title == "Unknown"


def test_parse_candidates_returns_empty_on_garbage() -> None:
    """It should never raise on malformed output."""

    assert parse_candidates("I could not find anything.") == []
    assert parse_candidates('{"candidates": "none"}') == []


def test_build_search_prompt_mentions_context() -> None:
    """It should include concept, skill and optional filters."""

    prompt = build_search_prompt(
        AuthoritySearchQuery(
            skill_id="s",
            skill_name="Law of Evidence",
            concept="hearsay exception",
            jurisdiction="Kenya",
            source_types=[SourceType.STATUTE],
        )
    )
    assert '"hearsay exception"' in prompt
    assert "Law of Evidence" in prompt
    assert "Jurisdiction: Kenya" in prompt
    assert "STATUTE" in prompt
    assert "kenyalaw.org/caselaw/cases/view/?query=hearsay%20exception" in prompt


def test_build_search_prompt_omits_kenya_law_elsewhere() -> None:
    """It should only point at Kenya Law for Kenyan queries."""

    query = AuthoritySearchQuery(skill_id="s", skill_name="Tort", concept="negligence")
    assert "kenyalaw.org" not in build_search_prompt(query)
    assert "kenyalaw.org" in build_search_prompt(query, default_jurisdiction="Kenya")
    assert "kenyalaw.org" not in build_search_prompt(
        query.model_copy(update={"jurisdiction": "England"}), default_jurisdiction="Kenya"
    )


def test_parse_passages_handles_missing_locator_and_score() -> None:
    """It should default absent locators and scores and cap the count."""

    raw = """```json
    {"passages": [
        {"text": "first", "locator": {"section": "34", "paragraphStart": 2}, "relevanceScore": 0.8},
        {"text": "second", "locator": null},
        {"text": "third"}
    ]}
    ```"""
    passages = parse_passages(raw, max_passages=2)

    assert [p.text for p in passages] == ["first", "second"]
    assert passages[0].locator == Locator(section="34", paragraph_start=2)
    assert passages[0].relevance_score == 0.8
    assert passages[1].locator.is_empty()
    assert passages[1].relevance_score == 0.0


def test_parse_passages_rejects_invalid_shape() -> None:
    """It should return nothing when the payload does not validate."""

    assert parse_passages('{"passages": [{"locator": {}}]}', max_passages=3) == []
    assert parse_passages("nothing", max_passages=3) == []


def test_parse_passages_skips_only_the_malformed_entry() -> None:
    """It should keep valid passages when a sibling carries a bad locator."""

    raw = """{"passages": [
        {"text": "kept", "locator": {"section": "34"}},
        {"text": "bad page", "locator": {"page": "iv"}},
        {"text": "bad paragraph", "locator": {"paragraphStart": -2}},
        {"text": "also kept", "locator": {"page": 12}}
    ]}"""
    passages = parse_passages(raw, max_passages=3)

    assert [p.text for p in passages] == ["kept", "also kept"]
    assert passages[0].locator.section == "34"
    assert passages[1].locator.page == 12
