"""Service facade wiring the retrieval and grounding components together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from lexground.config import Settings
from lexground.grounding.validator import GroundingValidator
from lexground.llm.client import LLMClient
from lexground.logging import get_logger
from lexground.memory.authority_store import AuthorityStore
from lexground.memory.database import AuthorityDatabase
from lexground.memory.missing_authority_log import MissingAuthorityLog
from lexground.models.content import AssetContent, FixResult, ValidationOptions, ValidationResult
from lexground.models.retrieval import AuthoritySearchQuery, RetrievalResult
from lexground.retrieval.orchestrator import AuthorityRetriever
from lexground.tools.candidate_proposer import CandidateProposer, LLMCandidateProposer
from lexground.tools.page_fetcher import PageFetcher
from lexground.tools.passage_extractor import LLMPassageExtractor, PassageExtractor

logger = get_logger(__name__)


@dataclass
class GroundingCore:
    """The two public contracts: retrieval and grounding validation."""

    settings: Settings
    store: AuthorityStore
    missing_log: MissingAuthorityLog
    retriever: AuthorityRetriever
    validator: GroundingValidator
    fetcher: PageFetcher

    def retrieve_authorities(
        self, query: AuthoritySearchQuery | Mapping[str, Any]
    ) -> RetrievalResult:
        return self.retriever.retrieve_authorities(query)

    async def retrieve_authorities_async(
        self, query: AuthoritySearchQuery | Mapping[str, Any]
    ) -> RetrievalResult:
        return await self.retriever.retrieve_authorities_async(query)

    def assert_grounded(
        self, content: AssetContent, options: ValidationOptions | None = None
    ) -> ValidationResult:
        return self.validator.assert_grounded(content, options)

    def validate_and_fix(
        self, content: AssetContent, options: ValidationOptions | None = None
    ) -> FixResult:
        return self.validator.validate_and_fix(content, options)

    def close(self) -> None:
        self.fetcher.close()

    def __enter__(self) -> GroundingCore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def create_core(
    settings: Settings,
    *,
    proposer: CandidateProposer | None = None,
    extractor: PassageExtractor | None = None,
    transport: httpx.BaseTransport | None = None,
) -> GroundingCore:
    """Build a :class:`GroundingCore` from settings.

    The LLM-backed proposer and extractor are used unless replacements are
    given; an OpenAI key is only required in that case.
    """

    database = AuthorityDatabase(settings.database_path)
    store = AuthorityStore(database)
    missing_log = MissingAuthorityLog(database)

    if proposer is None or extractor is None:
        llm = LLMClient(settings)
        if proposer is None:
            proposer = LLMCandidateProposer(
                llm=llm,
                model=settings.retrieval_model,
                default_jurisdiction=settings.default_jurisdiction,
            )
        if extractor is None:
            extractor = LLMPassageExtractor(
                llm=llm,
                model=settings.extraction_model,
                max_passages=settings.max_passages,
                min_chars=settings.passage_min_chars,
                max_chars=settings.passage_max_chars,
            )

    fetcher = PageFetcher(settings, transport=transport)
    retriever = AuthorityRetriever(
        settings=settings,
        store=store,
        missing_log=missing_log,
        proposer=proposer,
        extractor=extractor,
        fetcher=fetcher,
    )
    logger.info("Grounding core ready (db=%s)", settings.database_path)
    return GroundingCore(
        settings=settings,
        store=store,
        missing_log=missing_log,
        retriever=retriever,
        validator=GroundingValidator(store, missing_log),
        fetcher=fetcher,
    )
