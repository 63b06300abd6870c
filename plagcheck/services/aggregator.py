from typing import Iterable, List, Sequence, Set, Tuple

from plagcheck.schemas.plagiarism_schemas import MatchCandidate, PlagiarismReport


def dedupe_matches(matches: Iterable[MatchCandidate]) -> List[MatchCandidate]:
    """Drop repeated (chunk, source, matchedText) triples, keeping first-seen order."""
    seen: Set[Tuple[str, str, str]] = set()
    unique: List[MatchCandidate] = []
    for m in matches:
        key = m.dedup_key()
        if key not in seen:
            seen.add(key)
            unique.append(m)
    return unique


def plagiarism_percentage(chunks: Sequence[str], matches: Iterable[MatchCandidate]) -> float:
    """Distinct matched chunks (by content) over total input chunks, in percent."""
    if not chunks:
        return 0.0
    matched = {m.chunk for m in matches} & set(chunks)
    pct = 100.0 * len(matched) / len(chunks)
    return min(max(pct, 0.0), 100.0)


def format_percentage(value: float) -> str:
    return f"{value:.2f}%"


def aggregate(
    text: str,
    chunks: Sequence[str],
    per_chunk_matches: Iterable[Iterable[MatchCandidate]],
) -> PlagiarismReport:
    if not chunks:
        return PlagiarismReport(text=text, results=[], plagiarismPercentage=0.0)

    flat = [m for chunk_matches in per_chunk_matches for m in chunk_matches]
    unique = dedupe_matches(flat)
    return PlagiarismReport(
        text=text,
        results=unique,
        plagiarismPercentage=plagiarism_percentage(chunks, unique),
    )
