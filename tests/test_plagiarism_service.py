import asyncio
import logging
import re

import pytest
from pydantic import ValidationError

from plagcheck.errors import ConfigurationError
from plagcheck.schemas.plagiarism_schemas import AnalyzeOptions
from plagcheck.services.plagiarism_service import (
    AnalysisState,
    PlagiarismService,
    default_options,
)
from plagcheck.utils.web_utils import GoogleSearchProvider

from conftest import FakeEmbedder, FakeFetcher, FakeSearch, result

DOC = "AI helps doctors. It improves outcomes."


def test_matching_document_reports_matched_share(make_engine):
    search = FakeSearch(results={
        "AI helps doctors.": [result("https://a.example"), result("https://b.example")],
    })
    fetcher = FakeFetcher(pages={
        "https://a.example": "AI helps doctors.",
        "https://b.example": "AI helps doctors.",
    })
    service = PlagiarismService(make_engine(search=search, fetcher=fetcher, embedder=FakeEmbedder(available=False)))
    opts = AnalyzeOptions(chunkMaxLen=10, topResults=3, similarityThreshold=0.8)

    report = asyncio.run(service.analyze(DOC, opts))

    assert report.text == DOC
    assert report.plagiarismPercentage == pytest.approx(50.0)
    assert sorted(m.source for m in report.results) == ["https://a.example", "https://b.example"]
    assert all(m.chunk == "AI helps doctors." for m in report.results)


def test_empty_document_never_touches_search(make_engine, options):
    search = FakeSearch(default=[result("https://a.example")])
    service = PlagiarismService(make_engine(search=search))

    report = asyncio.run(service.analyze("   ", options))

    assert report.results == []
    assert report.plagiarismPercentage == 0
    assert search.calls == []


def test_total_provider_failure_still_returns_report(make_engine, options):
    class DeadSearch(FakeSearch):
        async def search(self, query):
            raise ConnectionError("network down")

    service = PlagiarismService(make_engine(search=DeadSearch()))

    report = asyncio.run(service.analyze(DOC, options))

    assert report.results == []
    assert report.plagiarismPercentage == 0


def test_missing_credentials_fail_before_any_chunk_work(make_engine, options):
    provider = GoogleSearchProvider(api_key="", cse_id="")
    fetcher = FakeFetcher()
    service = PlagiarismService(make_engine(search=provider, fetcher=fetcher))

    with pytest.raises(ConfigurationError):
        asyncio.run(service.analyze(DOC, options))
    assert fetcher.calls == []


def test_missing_credentials_do_not_matter_for_empty_input(make_engine, options):
    service = PlagiarismService(make_engine(search=GoogleSearchProvider(api_key="", cse_id="")))
    report = asyncio.run(service.analyze("", options))
    assert report.plagiarismPercentage == 0


def test_default_options_fill_from_config_and_ignore_none():
    opts = default_options(topResults=None, similarityThreshold=0.65)
    assert opts.similarityThreshold == 0.65
    assert opts.topResults >= 0
    assert opts.chunkMaxLen > 0


def test_threshold_is_required_for_options():
    with pytest.raises(ValidationError):
        AnalyzeOptions(chunkMaxLen=300, topResults=3)


def test_concurrent_analyses_track_their_own_progress(make_engine, options, caplog):
    search = FakeSearch(default=[result("https://a.example")])
    fetcher = FakeFetcher(pages={"https://a.example": "Unrelated page text."}, delays={"https://a.example": 0.02})
    service = PlagiarismService(make_engine(search=search, fetcher=fetcher))
    caplog.set_level(logging.DEBUG, logger="plagcheck.service")

    async def run_both():
        return await asyncio.gather(service.analyze(DOC, options), service.analyze("Another document.", options))

    asyncio.run(run_both())

    progress = {}
    for record in caplog.records:
        found = re.match(r"\[run (\d+)\] analysis state -> (\w+)", record.getMessage())
        if found:
            progress.setdefault(found.group(1), []).append(found.group(2))

    expected = [s.value for s in (AnalysisState.CHUNKING, AnalysisState.SEARCHING,
                                  AnalysisState.AGGREGATING, AnalysisState.DONE)]
    assert sorted(progress) == ["1", "2"]
    assert all(states == expected for states in progress.values())
    assert not hasattr(service, "last_state")
