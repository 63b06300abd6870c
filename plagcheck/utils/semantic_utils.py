"""
Sentence embeddings with MiniLM for paraphrase-tolerant matching.

The provider answers ``None`` for a whole batch when the model cannot be used
at all, and ``None`` for a single item when only that text failed to encode.
Callers pick their scoring strategy from that signal.
"""

import logging
import threading
from typing import List, Optional, Sequence

import numpy as np

from plagcheck.config import EMBEDDING_MODEL, EMBEDDINGS_ENABLED

logger = logging.getLogger("plagcheck.semantic")

Vector = List[float]


class EmbeddingProvider:
    """Interface for embedding back ends."""

    def is_available(self) -> bool:
        raise NotImplementedError

    def embed(self, texts: Sequence[str]) -> Optional[List[Optional[Vector]]]:
        raise NotImplementedError


class SentenceTransformerEmbedder(EmbeddingProvider):
    """Lazy-loaded SentenceTransformer; a failed load disables it for good."""

    def __init__(self, model_name: str = EMBEDDING_MODEL, enabled: bool = EMBEDDINGS_ENABLED):
        self.model_name = model_name
        self.enabled = enabled
        self._model = None
        self._load_failed = False
        self._lock = threading.Lock()

    def _get_model(self):
        if not self.enabled or self._load_failed:
            return None
        with self._lock:
            if self._model is None and not self._load_failed:
                logger.info(f"Loading SentenceTransformer model '{self.model_name}'...")
                try:
                    from sentence_transformers import SentenceTransformer
                    self._model = SentenceTransformer(self.model_name)
                    logger.info("Embedding model loaded")
                except Exception as e:
                    logger.warning(f"Embeddings disabled, could not load '{self.model_name}': {e}")
                    self._load_failed = True
        return self._model

    def is_available(self) -> bool:
        return self._get_model() is not None

    def _encode(self, model, texts: Sequence[str]) -> np.ndarray:
        return model.encode(
            list(texts),
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )

    def embed(self, texts: Sequence[str]) -> Optional[List[Optional[Vector]]]:
        if not texts:
            return []
        model = self._get_model()
        if model is None:
            return None  # signal fallback to caller

        try:
            vectors = self._encode(model, texts)
            return [vec.tolist() for vec in vectors]
        except Exception as e:
            logger.warning(f"Batch encoding failed ({e}); encoding {len(texts)} items one by one")

        out: List[Optional[Vector]] = []
        for text in texts:
            try:
                out.append(self._encode(model, [text])[0].tolist())
            except Exception as e:
                logger.warning(f"Embedding failed for one item: {e}")
                out.append(None)
        return out


def cosine_similarity(vec_a: Optional[Sequence[float]], vec_b: Optional[Sequence[float]]) -> float:
    """Cosine similarity; 0.0 for missing, mismatched or zero-norm vectors."""
    if vec_a is None or vec_b is None:
        return 0.0
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    if a.size == 0 or a.shape != b.shape:
        return 0.0
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(np.dot(a, b) / denom)
