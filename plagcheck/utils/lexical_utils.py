import re
from typing import Optional

from rapidfuzz.distance import Levenshtein


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    text = text.lower()
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Normalized edit-distance similarity in [0, 1] after case and whitespace
    normalization. Identical strings (including two empty ones) score 1.0.
    """
    return Levenshtein.normalized_similarity(normalize_text(a), normalize_text(b))
