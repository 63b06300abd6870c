import re
from typing import List, Optional

# A sentence is a run of non-terminal characters closed by one or more of . ! ?
# A trailing fragment without terminal punctuation is a sentence of its own.
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+|[^.!?]+$|[.!?]+")


def split_sentences(text: Optional[str]) -> List[str]:
    """Split text into stripped, non-empty sentence-like units."""
    if not text:
        return []
    units = []
    for match in _SENTENCE_RE.finditer(text):
        unit = match.group(0).strip()
        if unit:
            units.append(unit)
    return units


def chunk_by_sentences(text: Optional[str], max_len: int = 300) -> List[str]:
    """
    Greedily pack consecutive sentences into chunks of at most ``max_len`` chars.

    ``max_len`` is a soft cap: a sentence longer than it is emitted whole and is
    never split. Empty or whitespace-only input yields an empty list.
    """
    if max_len <= 0:
        raise ValueError(f"max_len must be positive, got {max_len}")

    chunks: List[str] = []
    current = ""
    for unit in split_sentences(text):
        candidate = f"{current} {unit}" if current else unit
        if current and len(candidate) > max_len:
            chunks.append(current)
            current = unit
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


chunk = chunk_by_sentences
