from pydantic import BaseModel, ConfigDict, Field
from typing import List


class SearchResult(BaseModel):
    title: str = ""
    link: str = ""
    snippet: str = ""


class MatchCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunk: str          # input chunk
    source: str         # page URL
    matchedText: str    # page segment that matched
    similarity: float = Field(ge=0.0, le=1.0)

    def dedup_key(self):
        return (self.chunk, self.source, self.matchedText)


class AnalyzeOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunkMaxLen: int = Field(default=300, gt=0)
    topResults: int = Field(default=3, ge=0)
    similarityThreshold: float = Field(ge=0.0, le=1.0)  # no engine default


class PlagiarismReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    results: List[MatchCandidate] = Field(default_factory=list)
    plagiarismPercentage: float = Field(default=0.0, ge=0.0, le=100.0)
