import asyncio
import time

import pytest
import requests

from plagcheck.errors import ConfigurationError
from plagcheck.utils import web_utils
from plagcheck.utils.web_utils import (
    GoogleSearchProvider,
    PageFetcher,
    google_search,
    scrape_page,
    should_skip_url,
)


class FakeResponse:
    def __init__(self, text="", status=200, content_type="text/html; charset=utf-8", payload=None):
        self.text = text
        self.status_code = status
        self.headers = {"Content-Type": content_type}
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc:
            raise self.exc
        return self.response


HTML = """
<html><head><title>t</title><style>.x{}</style><script>var a = 1;</script></head>
<body>
  <nav>Home | About</nav>
  <header>Site header</header>
  <main><p>Transformers   changed
  deep learning.</p><p>Attention is all you need.</p></main>
  <form><input value="search"></form>
  <footer>Copyright</footer>
</body></html>
"""


def test_scrape_extracts_visible_normalized_text():
    session = FakeSession(FakeResponse(HTML))
    text = scrape_page("https://a.example/post", use_browser=False, session=session)
    assert text == "Transformers changed deep learning. Attention is all you need."


def test_scrape_returns_empty_on_http_error():
    session = FakeSession(FakeResponse("nope", status=503))
    assert scrape_page("https://a.example", use_browser=False, session=session) == ""


def test_scrape_returns_empty_on_network_error():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    assert scrape_page("https://a.example", use_browser=False, session=session) == ""


def test_scrape_skips_non_text_content():
    session = FakeSession(FakeResponse("%PDF-1.7", content_type="application/octet-stream"))
    assert scrape_page("https://a.example/file", use_browser=False, session=session) == ""


def test_scrape_keeps_plain_text_content():
    session = FakeSession(FakeResponse("line one\n\nline   two", content_type="text/plain"))
    assert scrape_page("https://a.example/readme", use_browser=False, session=session) == "line one line two"


@pytest.mark.parametrize("url", [
    "https://a.example/paper.pdf",
    "https://www.researchgate.net/publication/1",
    "ftp://a.example/file",
    "not a url",
    "",
])
def test_skipped_urls(url):
    assert should_skip_url(url)
    session = FakeSession(FakeResponse(HTML))
    assert scrape_page(url, use_browser=False, session=session) == ""
    assert session.calls == []


def test_browser_fallback_used_for_thin_pages(monkeypatch):
    session = FakeSession(FakeResponse("<html><body><p>tiny</p></body></html>"))
    rendered = "Rendered " * 50
    monkeypatch.setattr(web_utils, "scrape_with_playwright", lambda url: rendered.strip())
    assert scrape_page("https://spa.example", use_browser=True, session=session) == rendered.strip()


def test_google_search_parses_items():
    payload = {"items": [
        {"title": "T1", "link": "https://one.example", "snippet": "s1"},
        {"title": "T2", "link": "https://two.example"},
    ]}
    session = FakeSession(FakeResponse(payload=payload, content_type="application/json"))
    out = google_search("query text", "key", "cx", session=session)
    assert [r.link for r in out] == ["https://one.example", "https://two.example"]
    assert out[1].snippet == ""
    assert session.calls[0][1]["params"] == {"key": "key", "cx": "cx", "q": "query text"}


def test_google_search_errors_become_empty_list():
    session = FakeSession(exc=requests.Timeout("slow"))
    assert google_search("q", "key", "cx", session=session) == []


def test_google_search_without_credentials_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        google_search("q", "", "cx")
    with pytest.raises(ConfigurationError):
        asyncio.run(GoogleSearchProvider(api_key="key", cse_id="").search("q"))


def test_page_fetcher_timeout_returns_empty(monkeypatch):
    def slow_scrape(url, use_browser, session):
        time.sleep(0.3)
        return "late text"

    monkeypatch.setattr(web_utils, "scrape_page", slow_scrape)
    fetcher = PageFetcher(timeout=0.05)
    assert asyncio.run(fetcher.fetch("https://slow.example")) == ""
    assert fetcher.stats["timeout"] == 1


def test_page_fetcher_swallows_unexpected_errors(monkeypatch):
    def broken(url, use_browser, session):
        raise RuntimeError("boom")

    monkeypatch.setattr(web_utils, "scrape_page", broken)
    fetcher = PageFetcher()
    assert asyncio.run(fetcher.fetch("https://a.example")) == ""
    assert fetcher.stats["error"] == 1


def test_page_fetcher_returns_text(monkeypatch):
    monkeypatch.setattr(web_utils, "scrape_page", lambda url, use_browser, session: "page text")
    fetcher = PageFetcher()
    assert asyncio.run(fetcher.fetch("https://a.example")) == "page text"
    assert fetcher.stats["ok"] == 1


def test_page_fetcher_keeps_slot_until_abandoned_scrape_ends(monkeypatch):
    def slow_scrape(url, use_browser, session):
        time.sleep(0.3)
        return "late text"

    monkeypatch.setattr(web_utils, "scrape_page", slow_scrape)
    fetcher = PageFetcher(timeout=0.05)

    async def run():
        slot = asyncio.Semaphore(1)
        text = await fetcher.fetch("https://slow.example", slot)
        held_after_timeout = slot.locked()
        await asyncio.sleep(0.5)
        return text, held_after_timeout, slot.locked()

    assert asyncio.run(run()) == ("", True, False)


def test_page_fetcher_releases_slot_after_normal_fetch(monkeypatch):
    monkeypatch.setattr(web_utils, "scrape_page", lambda url, use_browser, session: "page text")
    fetcher = PageFetcher()

    async def run():
        slot = asyncio.Semaphore(1)
        text = await fetcher.fetch("https://a.example", slot)
        await asyncio.sleep(0)
        return text, slot.locked()

    assert asyncio.run(run()) == ("page text", False)
