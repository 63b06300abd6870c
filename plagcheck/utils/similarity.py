import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence

from plagcheck.config import EMBED_TIMEOUT
from plagcheck.utils.lexical_utils import string_similarity
from plagcheck.utils.semantic_utils import EmbeddingProvider, Vector, cosine_similarity

logger = logging.getLogger("plagcheck.similarity")


class ScoringMode(str, Enum):
    SEMANTIC = "semantic"
    LEXICAL = "lexical"


class SegmentScorer(ABC):
    mode: ScoringMode

    @abstractmethod
    def score_segments(self, query: str, segments: Sequence[str]) -> List[Optional[float]]:
        """Score ``query`` against each segment; ``None`` marks a skipped segment."""


class SemanticScorer(SegmentScorer):
    mode = ScoringMode.SEMANTIC

    def __init__(self, query_vector: Vector, segment_vectors: Sequence[Optional[Vector]]):
        self.query_vector = query_vector
        self.segment_vectors = list(segment_vectors)

    def score_segments(self, query: str, segments: Sequence[str]) -> List[Optional[float]]:
        scores: List[Optional[float]] = []
        for i in range(len(segments)):
            vec = self.segment_vectors[i] if i < len(self.segment_vectors) else None
            if vec is None:
                scores.append(None)
                continue
            # Normalized vectors can drift a hair outside [-1, 1].
            scores.append(min(max(cosine_similarity(self.query_vector, vec), 0.0), 1.0))
        return scores


class LexicalScorer(SegmentScorer):
    mode = ScoringMode.LEXICAL

    def score_segments(self, query: str, segments: Sequence[str]) -> List[Optional[float]]:
        return [string_similarity(query, seg) for seg in segments]


async def _embed_batch(
    embedder: EmbeddingProvider, texts: List[str], timeout: float
) -> Optional[List[Optional[Vector]]]:
    try:
        return await asyncio.wait_for(asyncio.to_thread(embedder.embed, texts), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Embedding batch of {len(texts)} timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"Embedding batch of {len(texts)} failed: {e}")
    return None


async def resolve_scorer(
    query: str,
    segments: Sequence[str],
    embedder: Optional[EmbeddingProvider],
    timeout: float = EMBED_TIMEOUT,
) -> SegmentScorer:
    """
    Pick the scoring strategy for one query-vs-segments comparison batch.

    The embedding provider is asked once for the whole batch. Semantic mode is
    used only when it returns vectors and the query got one; every other
    outcome (unavailable, timed out, errored) selects lexical mode for the
    entire batch so scores within one set stay comparable.
    """
    if embedder is None or not segments:
        return LexicalScorer()

    vectors = await _embed_batch(embedder, [query, *segments], timeout)
    if vectors is None or not vectors or vectors[0] is None:
        logger.info("Embeddings unavailable for this batch, using lexical similarity")
        return LexicalScorer()
    return SemanticScorer(vectors[0], vectors[1:])


async def score(
    a: str,
    b: str,
    embedder: Optional[EmbeddingProvider] = None,
    timeout: float = EMBED_TIMEOUT,
) -> float:
    scorer = await resolve_scorer(a, [b], embedder, timeout=timeout)
    result = scorer.score_segments(a, [b])[0]
    if result is None:
        # b got no vector; score it lexically rather than drop it.
        return LexicalScorer().score_segments(a, [b])[0]
    return result
