import asyncio
from typing import Dict, List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from playwright.sync_api import sync_playwright, TimeoutError as PlaywrightTimeoutError

from plagcheck import config
from plagcheck.errors import ConfigurationError
from plagcheck.schemas.plagiarism_schemas import SearchResult
from plagcheck.logger import logger

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
JUNK_TAGS = ["script", "style", "noscript", "iframe", "header", "footer", "nav", "form"]
DOC_EXTENSIONS = (".pdf", ".doc", ".docx", ".odf", ".xls", ".xlsx", ".ppt", ".pptx")

# Slow or unscrapeable domains
BLACKLIST_DOMAINS = {
    'researchgate.net',
    'springer.com',
    'sciencedirect.com',
}


# ---- Session ----
def _make_session() -> requests.Session:
    s = requests.Session()
    retries = Retry(
        total=1,  # fail fast, the caller has its own deadline
        backoff_factor=0.1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        respect_retry_after_header=False
    )
    s.mount("https://", HTTPAdapter(max_retries=retries, pool_connections=20, pool_maxsize=20))
    s.mount("http://", HTTPAdapter(max_retries=retries, pool_connections=20, pool_maxsize=20))
    s.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Connection": "keep-alive",
    })
    return s

_SESSION = _make_session()


# ---- Helpers ----
def _normalize_whitespace(s: str) -> str:
    return " ".join(s.split())


def _clean_soup(soup: BeautifulSoup, max_chars: Optional[int] = None) -> str:
    """Visible body text with navigation, scripts and forms removed."""
    for junk in soup(JUNK_TAGS):
        junk.decompose()
    root = soup.body or soup
    text = _normalize_whitespace(root.get_text(separator=" ", strip=True))
    if max_chars and len(text) > max_chars:
        return text[:max_chars]
    return text


def should_skip_url(url: str) -> bool:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return True
    if parsed.path.lower().endswith(DOC_EXTENSIONS):
        return True
    domain = parsed.netloc.lower()
    return any(bd in domain for bd in BLACKLIST_DOMAINS)


# ---- Google Search ----
def google_search(query: str, api_key: str, cse_id: str, timeout: float = config.SEARCH_TIMEOUT,
                  session: Optional[requests.Session] = None) -> List[SearchResult]:
    if not api_key or not cse_id:
        raise ConfigurationError("Missing Google API credentials (GOOGLE_API_KEY / GOOGLE_CSE_ID)")

    params = {"key": api_key, "cx": cse_id, "q": query}
    try:
        r = (session or _SESSION).get(config.GOOGLE_SEARCH_URL, params=params, timeout=timeout)
        r.raise_for_status()
        items = r.json().get("items", []) or []
        out = [
            SearchResult(
                title=i.get("title", "") or "",
                link=i.get("link", "") or "",
                snippet=i.get("snippet", "") or "",
            )
            for i in items
        ]
        logger.info(f"google_search: got {len(out)} items for '{query[:60]}'")
        return out
    except Exception as e:
        logger.warning(f"google_search failed for '{query[:60]}': {e}")
        return []


class GoogleSearchProvider:
    """Google Custom Search client; provider errors come back as an empty list."""

    def __init__(self, api_key: str = config.GOOGLE_API_KEY, cse_id: str = config.GOOGLE_CSE_ID,
                 timeout: float = config.SEARCH_TIMEOUT, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.cse_id = cse_id
        self.timeout = timeout
        self.session = session

    def ensure_configured(self) -> None:
        if not self.api_key or not self.cse_id:
            raise ConfigurationError("Missing Google API credentials (GOOGLE_API_KEY / GOOGLE_CSE_ID)")

    async def search(self, query: str) -> List[SearchResult]:
        self.ensure_configured()
        return await asyncio.to_thread(
            google_search, query, self.api_key, self.cse_id, self.timeout, self.session
        )


# ---- Scrapers ----
def scrape_with_requests(url: str, timeout: float = config.REQUEST_TIMEOUT,
                         session: Optional[requests.Session] = None) -> str:
    try:
        logger.debug(f"requests: GET {url}")
        r = (session or _SESSION).get(url, timeout=timeout, allow_redirects=True)
        r.raise_for_status()
        content_type = (r.headers.get("Content-Type") or "").lower()
        if content_type.startswith("text/plain"):
            return _normalize_whitespace(r.text)[:config.MAX_PAGE_CHARS]
        if content_type and "html" not in content_type:
            logger.info(f"Skipping non-text content ({content_type}) at {url}")
            return ""
        soup = BeautifulSoup(r.text, "html.parser")
        return _clean_soup(soup, max_chars=config.MAX_PAGE_CHARS)
    except Exception as e:
        logger.debug(f"requests failed for {url}: {e}")
        return ""


def scrape_with_playwright(url: str, timeout: float = config.BROWSER_TIMEOUT) -> str:
    """Render JS-heavy pages in headless Chromium and extract their text."""
    try:
        logger.debug(f"Playwright: GET {url}")
        with sync_playwright() as p:
            browser = p.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-setuid-sandbox", "--disable-http2"]
            )
            try:
                context = browser.new_context(user_agent=USER_AGENT)
                context.set_default_timeout(timeout * 1000)
                page = context.new_page()
                page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
                html = page.content()
            finally:
                browser.close()

        soup = BeautifulSoup(html, "html.parser")
        return _clean_soup(soup, max_chars=config.MAX_PAGE_CHARS)
    except PlaywrightTimeoutError:
        logger.warning(f"Playwright navigation timed out for {url}")
        return ""
    except Exception as e:
        logger.warning(f"Playwright error for {url}: {e}")
        return ""


def scrape_page(url: str, use_browser: bool = config.BROWSER_FALLBACK,
                session: Optional[requests.Session] = None) -> str:
    """Scrape pages in order: requests → Playwright. Returns "" on failure."""
    if should_skip_url(url):
        logger.info(f"Skipping URL: {url}")
        return ""

    text = scrape_with_requests(url, session=session)
    if len(text) >= config.MIN_TEXT_LENGTH or not use_browser:
        if text:
            logger.info(f"   Scraped {len(text)} chars (requests) for {url}")
        return text

    rendered = scrape_with_playwright(url)
    if len(rendered) > len(text):
        logger.info(f"   Scraped {len(rendered)} chars (Playwright) for {url}")
        return rendered
    return text


def _finish_scrape(task: asyncio.Future, url: str, slot: Optional[asyncio.Semaphore]) -> None:
    if slot is not None:
        slot.release()
    # Consume the outcome of scrapes nobody waited for.
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Abandoned scrape of {url} ended with: {task.exception()}")


class PageFetcher:
    """Async facade over ``scrape_page`` with a hard per-fetch deadline."""

    def __init__(self, timeout: float = config.FETCH_TIMEOUT, use_browser: bool = config.BROWSER_FALLBACK,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.use_browser = use_browser
        self.session = session
        self.stats: Dict[str, int] = {"ok": 0, "empty": 0, "timeout": 0, "error": 0}

    async def fetch(self, url: str, slot: Optional[asyncio.Semaphore] = None) -> str:
        """
        Scrape ``url`` in a worker thread, giving up after ``self.timeout``.

        When ``slot`` is given it is acquired before the scrape starts and
        released only once the worker thread has returned, so a timed-out
        scrape keeps occupying its slot until it really stops.
        """
        if slot is not None:
            await slot.acquire()
        try:
            work = asyncio.ensure_future(asyncio.to_thread(scrape_page, url, self.use_browser, self.session))
        except BaseException:
            if slot is not None:
                slot.release()
            raise
        work.add_done_callback(lambda task: _finish_scrape(task, url, slot))

        try:
            text = await asyncio.wait_for(asyncio.shield(work), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timeout fetching {url} after {self.timeout}s")
            self.stats["timeout"] += 1
            return ""
        except Exception as e:
            logger.warning(f"Error fetching {url}: {e}")
            self.stats["error"] += 1
            return ""

        self.stats["ok" if text else "empty"] += 1
        return text
