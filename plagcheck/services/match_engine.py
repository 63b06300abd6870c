import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from plagcheck import config
from plagcheck.errors import ConfigurationError
from plagcheck.schemas.plagiarism_schemas import AnalyzeOptions, MatchCandidate, SearchResult
from plagcheck.utils.cache import ResultCache
from plagcheck.utils.chunker import chunk_by_sentences
from plagcheck.utils.semantic_utils import EmbeddingProvider
from plagcheck.utils.similarity import resolve_scorer

logger = logging.getLogger("plagcheck.engine")


class SearchProvider(Protocol):
    async def search(self, query: str) -> List[SearchResult]: ...


class FetchProvider(Protocol):
    # Must hold `slot` from before the fetch starts until its work has fully stopped.
    async def fetch(self, url: str, slot: Optional[asyncio.Semaphore] = None) -> str: ...


@dataclass
class Pools:
    """Independent bounds: chunk pipelines in flight, page fetches in flight."""
    chunks: asyncio.Semaphore
    fetches: asyncio.Semaphore


def build_pools(chunk_concurrency: int = config.CHUNK_CONCURRENCY,
                fetch_concurrency: int = config.FETCH_CONCURRENCY) -> Pools:
    if chunk_concurrency < 1 or fetch_concurrency < 1:
        raise ValueError("concurrency limits must be at least 1")
    return Pools(chunks=asyncio.Semaphore(chunk_concurrency),
                 fetches=asyncio.Semaphore(fetch_concurrency))


def search_cache_key(query: str) -> str:
    return f"gsearch:{query}"


class MatchEngine:
    """
    Per-chunk web matching: cached search, bounded page fetches, scoring.

    Failures are contained at the smallest scope they affect: a search error
    means no candidates for that chunk, a fetch or scoring error means no
    matches from that URL. Nothing below ``check_chunks`` aborts the request.
    """

    def __init__(
        self,
        search_provider: SearchProvider,
        page_fetcher: FetchProvider,
        embedder: Optional[EmbeddingProvider],
        cache: ResultCache,
        pools: Pools,
        page_chunk_max_len: int = config.PAGE_CHUNK_MAX_LEN,
        max_page_segments: int = config.MAX_PAGE_SEGMENTS,
        search_timeout: float = config.SEARCH_TIMEOUT,
        embed_timeout: float = config.EMBED_TIMEOUT,
    ):
        self.search_provider = search_provider
        self.page_fetcher = page_fetcher
        self.embedder = embedder
        self.cache = cache
        self.pools = pools
        self.page_chunk_max_len = page_chunk_max_len
        self.max_page_segments = max_page_segments
        self.search_timeout = search_timeout
        self.embed_timeout = embed_timeout

    async def search(self, query: str) -> List[SearchResult]:
        key = search_cache_key(query)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for '{query[:60]}'")
            return cached

        try:
            results = await asyncio.wait_for(self.search_provider.search(query), timeout=self.search_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Search timed out after {self.search_timeout}s for '{query[:60]}'")
            return []
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Search failed for '{query[:60]}': {e}")
            return []
        self.cache.set(key, list(results))
        return list(results)

    async def _match_url(self, chunk: str, url: str, threshold: float) -> List[MatchCandidate]:
        logger.info(f"➡️ Checking URL: {url}")
        page_text = await self.page_fetcher.fetch(url, self.pools.fetches)
        logger.info(f"   Extracted {len(page_text)} chars from page")
        if not page_text:
            return []

        segments = chunk_by_sentences(page_text, self.page_chunk_max_len)[:self.max_page_segments]
        scorer = await resolve_scorer(chunk, segments, self.embedder, timeout=self.embed_timeout)

        found: List[MatchCandidate] = []
        for segment, similarity in zip(segments, scorer.score_segments(chunk, segments)):
            if similarity is None:
                continue
            logger.debug(f"   🔎 {scorer.mode.value} similarity: {similarity:.3f}")
            if similarity >= threshold:
                found.append(MatchCandidate(
                    chunk=chunk,
                    source=url,
                    matchedText=segment,
                    similarity=similarity,
                ))
        logger.info(f"   ✅ Found {len(found)} matches above threshold at {url}")
        return found

    async def find_matches(self, chunk: str, options: AnalyzeOptions) -> List[MatchCandidate]:
        results = await self.search(chunk)
        logger.info(f"🔍 Searching for chunk: '{chunk[:60]}...' ({len(results)} results)")

        urls: List[str] = []
        for result in results:
            if len(urls) >= options.topResults:
                break
            if result.link and result.link not in urls:
                urls.append(result.link)
        if not urls:
            return []

        outcomes = await asyncio.gather(
            *(self._match_url(chunk, url, options.similarityThreshold) for url in urls),
            return_exceptions=True,
        )

        matches: List[MatchCandidate] = []
        for url, outcome in zip(urls, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Matching failed for {url}: {outcome!r}")
                continue
            matches.extend(outcome)
        return matches

    async def _check_chunk(self, chunk: str, options: AnalyzeOptions) -> List[MatchCandidate]:
        async with self.pools.chunks:
            return await self.find_matches(chunk, options)

    async def check_chunks(self, chunks: Sequence[str], options: AnalyzeOptions) -> List[List[MatchCandidate]]:
        outcomes = await asyncio.gather(
            *(self._check_chunk(c, options) for c in chunks),
            return_exceptions=True,
        )
        per_chunk: List[List[MatchCandidate]] = []
        for c, outcome in zip(chunks, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"check_chunks error for '{c[:60]}': {outcome!r}")
                per_chunk.append([])
            else:
                per_chunk.append(outcome)
        return per_chunk
