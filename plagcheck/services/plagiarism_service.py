import asyncio
import itertools
import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from plagcheck import config
from plagcheck.schemas.plagiarism_schemas import AnalyzeOptions, PlagiarismReport
from plagcheck.services.aggregator import aggregate, format_percentage
from plagcheck.services.match_engine import MatchEngine, build_pools
from plagcheck.utils.cache import ResultCache
from plagcheck.utils.chunker import chunk_by_sentences
from plagcheck.utils.semantic_utils import SentenceTransformerEmbedder
from plagcheck.utils.web_utils import GoogleSearchProvider, PageFetcher

logger = logging.getLogger("plagcheck.service")

# Process-wide: search results survive across requests, the model loads once.
_SHARED_CACHE = ResultCache(ttl=config.CACHE_TTL)
_SHARED_EMBEDDER = SentenceTransformerEmbedder()


class AnalysisState(str, Enum):
    IDLE = "idle"
    CHUNKING = "chunking"
    SEARCHING = "searching"
    AGGREGATING = "aggregating"
    DONE = "done"


def default_options(**overrides) -> AnalyzeOptions:
    values = {
        "chunkMaxLen": config.CHUNK_MAX_LEN,
        "topResults": config.TOP_RESULTS,
        "similarityThreshold": config.SIMILARITY_THRESHOLD,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return AnalyzeOptions(**values)


class PlagiarismService:
    def __init__(self, engine: MatchEngine):
        self.engine = engine
        self._runs = itertools.count(1)

    @staticmethod
    def _enter(run_id: int, state: AnalysisState) -> None:
        logger.debug(f"[run {run_id}] analysis state -> {state.value}")

    def _ensure_configured(self) -> None:
        check = getattr(self.engine.search_provider, "ensure_configured", None)
        if check is not None:
            check()

    async def analyze(self, text: str, options: Optional[AnalyzeOptions] = None) -> PlagiarismReport:
        options = options or default_options()
        t0 = datetime.utcnow()
        run_id = next(self._runs)

        self._enter(run_id, AnalysisState.CHUNKING)
        chunks = chunk_by_sentences(text, options.chunkMaxLen)
        if not chunks:
            logger.info("Nothing to analyze: input produced no chunks")
            self._enter(run_id, AnalysisState.DONE)
            return aggregate(text or "", chunks, [])

        # Fatal before any chunk work starts.
        self._ensure_configured()

        self._enter(run_id, AnalysisState.SEARCHING)
        logger.info(f"Analyzing {len(chunks)} chunk(s) "
                    f"(topResults={options.topResults}, threshold={options.similarityThreshold})")
        per_chunk = await self.engine.check_chunks(chunks, options)

        self._enter(run_id, AnalysisState.AGGREGATING)
        report = aggregate(text, chunks, per_chunk)
        self._enter(run_id, AnalysisState.DONE)

        elapsed = (datetime.utcnow() - t0).total_seconds()
        logger.info(f"✅ Analysis complete in {elapsed:.1f}s: {len(report.results)} match(es), "
                    f"plagiarism {format_percentage(report.plagiarismPercentage)}")
        return report


def build_service(cache: Optional[ResultCache] = None) -> PlagiarismService:
    engine = MatchEngine(
        search_provider=GoogleSearchProvider(),
        page_fetcher=PageFetcher(),
        embedder=_SHARED_EMBEDDER,
        cache=_SHARED_CACHE if cache is None else cache,
        pools=build_pools(config.CHUNK_CONCURRENCY, config.FETCH_CONCURRENCY),
    )
    return PlagiarismService(engine)


def analyze_text(text: str, options: Optional[AnalyzeOptions] = None) -> PlagiarismReport:
    """Blocking entry point for scripts; builds a service bound to a fresh event loop."""
    async def _run() -> PlagiarismReport:
        return await build_service().analyze(text, options)
    return asyncio.run(_run())
