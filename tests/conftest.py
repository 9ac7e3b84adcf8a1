"""Shared fixtures: temporary databases, stub capabilities and a mock transport."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

import httpx
import pytest

from lexground.config import Settings
from lexground.memory.authority_store import AuthorityStore
from lexground.memory.database import AuthorityDatabase
from lexground.memory.missing_authority_log import MissingAuthorityLog
from lexground.models.authority import Locator, SourceType
from lexground.models.retrieval import (
    AuthoritySearchQuery,
    CandidateAuthority,
    ExtractedPassage,
)
from lexground.retrieval.orchestrator import AuthorityRetriever
from lexground.tools.page_fetcher import PageFetcher

HEARSAY_URL = "https://kenyalaw.org/kl/fileadmin/pdfdownloads/Acts/EvidenceAct_Cap80.html"

HEARSAY_PASSAGE = (
    "Statements, written or oral, of admissible facts made by a person who is dead, "
    "or who cannot be found, are themselves admissible where the statement was made "
    "in the course of business."
)

HEARSAY_HTML = f"""
<html>
  <head><title>Evidence Act (Cap. 80) | Kenya Law</title></head>
  <body>
    <script>var tracking = 1;</script>
    <h1>Evidence Act</h1>
    <h2>Section 33</h2>
    <p>Hearsay is generally inadmissible unless an exception applies.</p>
    <h2>Section 34</h2>
    <p>{HEARSAY_PASSAGE}</p>
  </body>
</html>
"""


@dataclass
class StubProposer:
    """Deterministic proposer returning a fixed candidate list."""

    candidates: list[CandidateAuthority] = field(default_factory=list)
    calls: int = 0
    error: Exception | None = None

    def propose(self, query: AuthoritySearchQuery) -> list[CandidateAuthority]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.candidates)


@dataclass
class StubExtractor:
    """Deterministic extractor returning fixed passages."""

    passages: list[ExtractedPassage] = field(default_factory=list)
    calls: int = 0

    def extract(self, *, concept: str, text: str, source_type: SourceType) -> list[ExtractedPassage]:
        self.calls += 1
        return list(self.passages)


@dataclass
class PageServer:
    """``httpx.MockTransport`` handler serving canned pages by URL.

    Requests for a URL in ``hanging`` block until ``release`` is set.
    """

    pages: dict[str, str] = field(default_factory=dict)
    requested: list[str] = field(default_factory=list)
    hanging: set[str] = field(default_factory=set)
    release: threading.Event = field(default_factory=threading.Event)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        if url in self.hanging:
            self.release.wait(timeout=30)
        body = self.pages.get(url)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body, headers={"content-type": "text/html; charset=utf-8"})


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=tmp_path / "authorities.sqlite3",
        candidate_timeout_s=10,
        http_timeout_s=5,
    )


@pytest.fixture
def database(settings: Settings) -> AuthorityDatabase:
    return AuthorityDatabase(settings.database_path)


@pytest.fixture
def store(database: AuthorityDatabase) -> AuthorityStore:
    return AuthorityStore(database)


@pytest.fixture
def missing_log(database: AuthorityDatabase) -> MissingAuthorityLog:
    return MissingAuthorityLog(database)


@pytest.fixture
def page_server() -> PageServer:
    return PageServer(pages={HEARSAY_URL: HEARSAY_HTML})


@pytest.fixture
def proposer() -> StubProposer:
    return StubProposer(
        candidates=[
            CandidateAuthority(
                url=HEARSAY_URL,
                title="Evidence Act",
                source_type=SourceType.STATUTE,
                suggested_citation="Evidence Act, Cap. 80, s. 34",
            )
        ]
    )


@pytest.fixture
def extractor() -> StubExtractor:
    return StubExtractor(
        passages=[
            ExtractedPassage(text=HEARSAY_PASSAGE, locator=Locator(section="34"), relevance_score=0.9)
        ]
    )


@pytest.fixture
def make_retriever(
    settings: Settings,
    store: AuthorityStore,
    missing_log: MissingAuthorityLog,
    page_server: PageServer,
) -> Iterator[Callable[..., AuthorityRetriever]]:
    fetchers: list[PageFetcher] = []

    def _make(
        proposer: StubProposer, extractor: StubExtractor, **overrides: object
    ) -> AuthorityRetriever:
        cfg = settings.model_copy(update=overrides) if overrides else settings
        fetcher = PageFetcher(cfg, transport=httpx.MockTransport(page_server))
        fetchers.append(fetcher)
        return AuthorityRetriever(
            settings=cfg,
            store=store,
            missing_log=missing_log,
            proposer=proposer,
            extractor=extractor,
            fetcher=fetcher,
        )

    yield _make
    page_server.release.set()
    for f in fetchers:
        f.close()


@pytest.fixture
def hearsay_query() -> AuthoritySearchQuery:
    return AuthoritySearchQuery(
        skill_id="skill-evidence-1",
        skill_name="Law of Evidence",
        concept="hearsay exception",
    )
