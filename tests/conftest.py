import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from plagcheck.schemas.plagiarism_schemas import AnalyzeOptions, SearchResult
from plagcheck.services.match_engine import MatchEngine, build_pools
from plagcheck.utils.cache import ResultCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSearch:
    def __init__(self, results: Optional[Dict[str, List[SearchResult]]] = None, default=None):
        self.results = results or {}
        self.default = default or []
        self.calls: List[str] = []

    def ensure_configured(self) -> None:
        pass

    async def search(self, query: str) -> List[SearchResult]:
        self.calls.append(query)
        await asyncio.sleep(0)
        return list(self.results.get(query, self.default))


class FakeFetcher:
    """Serves canned page text; ``delays`` and ``errors`` are keyed by URL."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, delays=None, errors=None):
        self.pages = pages or {}
        self.delays = delays or {}
        self.errors = errors or {}
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str, slot: Optional[asyncio.Semaphore] = None) -> str:
        if slot is None:
            return await self._fetch(url)
        async with slot:
            return await self._fetch(url)

    async def _fetch(self, url: str) -> str:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0.01))
            if url in self.errors:
                raise self.errors[url]
            return self.pages.get(url, "")
        finally:
            self.in_flight -= 1


class FakeEmbedder:
    """Embeds known texts to fixed vectors; unknown texts get ``default``."""

    def __init__(self, vectors: Optional[Dict[str, Optional[List[float]]]] = None,
                 default: Optional[List[float]] = None, available: bool = True):
        self.vectors = vectors or {}
        self.default = default
        self.available = available
        self.enabled = available
        self.calls: List[List[str]] = []

    def is_available(self) -> bool:
        return self.available

    def embed(self, texts: Sequence[str]):
        self.calls.append(list(texts))
        if not self.available:
            return None
        return [self.vectors.get(t, self.default) for t in texts]


def result(link: str, title: str = "", snippet: str = "") -> SearchResult:
    return SearchResult(title=title or link, link=link, snippet=snippet)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def options():
    return AnalyzeOptions(chunkMaxLen=300, topResults=3, similarityThreshold=0.8)


@pytest.fixture
def make_engine():
    def _make(search=None, fetcher=None, embedder=None, cache=None,
              chunk_concurrency=3, fetch_concurrency=3, **kwargs) -> MatchEngine:
        return MatchEngine(
            search_provider=search or FakeSearch(),
            page_fetcher=fetcher or FakeFetcher(),
            embedder=embedder,
            cache=cache if cache is not None else ResultCache(ttl=3600),
            pools=build_pools(chunk_concurrency, fetch_concurrency),
            **kwargs,
        )
    return _make
