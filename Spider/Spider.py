"""
Spider/Spider.py - Priority-driven crawl scheduler.

Starting from one URL, the spider tests a page, harvests its same-origin
links, filters and scores them, and always dequeues the highest-priority
pending URL next.  The crawl is strictly sequential on a single Playwright
page: navigation, stability wait, accessibility analysis, link discovery.
It stops when the page budget is spent or the frontier is empty.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Protocol
from urllib.parse import urlparse, urlunparse

from playwright.async_api import Error as PlaywrightError, Page

from Analyzer import accessibility_score
from Models import AnalysisResult, CrawlFrontierEntry, PageTestFailed, PageTestResult
from Reporter import Reporter

from .Stability import StabilityWaiter

logger = logging.getLogger(__name__)

#: Hard ceiling on link distance from the crawl start URL.
MAX_DEPTH = 3

# File extensions that will never contain HTML worth testing
_SKIP_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp",
        ".svg", ".ico", ".css", ".js", ".mjs",
        ".zip", ".tar", ".gz", ".rar", ".7z",
        ".exe", ".dmg", ".msi",
        ".mp4", ".mp3", ".wav", ".avi", ".mov", ".webm",
        ".woff", ".woff2", ".ttf", ".eot",
        ".xml", ".json", ".csv", ".xls", ".xlsx", ".doc", ".docx",
        ".ppt", ".pptx",
    }
)

# Path segments never crawled when strict filtering is on
_STRICT_SKIP_SEGMENT = re.compile(
    r"(^|/)(admin|wp-admin|api|logout|log-out|signout|sign-out|download|downloads|cgi-bin)(/|$)",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Link priority weights
# ---------------------------------------------------------------------------

BASE_PRIORITY = 50
CONTENT_BONUS = 25
DEPTH_PENALTY = 5
USER_CONTENT_PENALTY = 15
UTILITY_PENALTY = 10

CONTENT_KEYWORDS: tuple[str, ...] = (
    "about", "service", "product", "contact", "guide", "tutorial",
    "docs", "help", "faq", "feature",
)
USER_CONTENT_KEYWORDS: tuple[str, ...] = (
    "user", "profile", "comment", "tag", "author", "member",
)
UTILITY_KEYWORDS: tuple[str, ...] = (
    "privacy", "terms", "cookie", "legal", "sitemap", "search", "login", "register",
)


class PageAnalyzer(Protocol):
    async def analyze(self, page: Page) -> AnalysisResult: ...


# ---------------------------------------------------------------------------
# Spider
# ---------------------------------------------------------------------------


class Spider:
    """Sequential, priority-ordered crawler that tests every page it visits.

    The frontier is re-sorted by descending priority after each page's link
    discovery, so a valuable link found late can overtake earlier ones.
    Python's sort is stable, which keeps discovery order among equal
    priorities.
    """

    def __init__(
        self,
        page: Page,
        analyzer: PageAnalyzer,
        reporter: Reporter,
        max_pages: int,
        max_depth: int = MAX_DEPTH,
        waiter: Optional[StabilityWaiter] = None,
        delay: float = 0.0,
        strip_query: bool = True,
        strict_filtering: bool = True,
        browser_info: str = "",
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.page = page
        self.analyzer = analyzer
        self.reporter = reporter
        self.max_pages = max_pages
        self.max_depth = min(max_depth, MAX_DEPTH)
        self.waiter = waiter or StabilityWaiter()
        self.delay = delay
        self.strip_query = strip_query
        self.strict_filtering = strict_filtering
        self.browser_info = browser_info
        self.shutdown_event = shutdown_event or asyncio.Event()

        self.origin: tuple[str, str] = ("", "")
        self.frontier: list[CrawlFrontierEntry] = []
        self._visited: set[str] = set()
        self._queued: set[str] = set()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def crawl(self, start_url: str) -> list[PageTestResult]:
        """Crawl from *start_url* and return one result per tested page, in order."""
        results: list[PageTestResult] = []
        self.frontier = []
        self._visited = set()
        self._queued = set()

        start = self._normalize_url(start_url)
        if not start:
            logger.error("Crawl start URL is not http(s): %s", start_url)
            return results
        parsed = urlparse(start)
        self.origin = (parsed.scheme, parsed.netloc)

        self._enqueue(start, depth=0)
        logger.info("Starting crawl at %s (max pages %d)", start, self.max_pages)

        while self.frontier and len(results) < self.max_pages:
            if self.shutdown_event.is_set():
                logger.info("Shutdown requested, stopping crawl")
                break

            entry = self.frontier.pop(0)
            self._queued.discard(entry.url)
            if entry.url in self._visited:
                continue
            self._visited.add(entry.url)

            try:
                result = await self._test_page(entry)
            except PageTestFailed as exc:
                logger.debug("Page test failed for %s: %s", exc.url, exc)
                result = PageTestResult(
                    url=entry.url,
                    success=False,
                    browser_info=self.browser_info,
                    error=str(exc),
                )

            results.append(result)
            self.reporter.log_result(result)

            if result.success and len(results) < self.max_pages:
                await self._discover(entry)

            if self.delay:
                await asyncio.sleep(self.delay)

        logger.info(
            "Crawl finished: %d page(s) tested, %d left in frontier",
            len(results),
            len(self.frontier),
        )
        return results

    # ------------------------------------------------------------------
    # Page test
    # ------------------------------------------------------------------

    async def _test_page(self, entry: CrawlFrontierEntry) -> PageTestResult:
        """Navigate to *entry*, wait for stability and run the analyzer.

        Any navigation or analysis error is re-raised as :class:`PageTestFailed`.
        """
        try:
            response = await self.page.goto(entry.url, wait_until="load", timeout=30_000)
            if response is not None and response.status >= 400:
                raise PageTestFailed(entry.url, f"HTTP {response.status}")

            # Mark the post-redirect URL visited so a direct link to it is
            # not tested a second time.
            final = self._normalize_url(self.page.url)
            if final and final != entry.url:
                logger.debug("Redirect followed: %s -> %s", entry.url, final)
                self._visited.add(final)

            await self.waiter.wait(self.page)
            analysis = await self.analyzer.analyze(self.page)
        except PageTestFailed:
            raise
        except PlaywrightError as exc:
            raise PageTestFailed(entry.url, f"Playwright error: {exc}") from exc
        except Exception as exc:
            raise PageTestFailed(entry.url, str(exc) or exc.__class__.__name__) from exc

        return PageTestResult(
            url=entry.url,
            success=True,
            violations=analysis.violations,
            passes=analysis.passes,
            incomplete=analysis.incomplete,
            browser_info=self.browser_info,
            score=accessibility_score(analysis.violations),
        )

    # ------------------------------------------------------------------
    # Link discovery
    # ------------------------------------------------------------------

    async def _discover(self, parent: CrawlFrontierEntry) -> None:
        """Harvest links from the current page and enqueue the crawlable ones."""
        depth = parent.depth + 1
        if depth > self.max_depth:
            return

        try:
            hrefs: list[str] = await self.page.eval_on_selector_all(
                "a[href]", "els => els.map(e => e.href)"
            )
        except PlaywrightError as exc:
            logger.debug("Error extracting links from %s: %s", parent.url, exc)
            return

        added = 0
        for href in hrefs:
            norm = self._normalize_url(href)
            if norm and self._is_crawlable(norm) and self._enqueue(norm, depth):
                added += 1

        self.frontier.sort(key=lambda e: e.priority, reverse=True)
        logger.debug(
            "Discovered %d new link(s) on %s, frontier size %d",
            added,
            parent.url,
            len(self.frontier),
        )

    def _enqueue(self, url: str, depth: int) -> bool:
        """Add *url* to the frontier unless it is too deep, visited or queued."""
        if depth > self.max_depth:
            return False
        if url in self._visited or url in self._queued:
            return False
        self.frontier.append(
            CrawlFrontierEntry(url=url, depth=depth, priority=self._priority(url))
        )
        self._queued.add(url)
        return True

    # ------------------------------------------------------------------
    # URL helpers
    # ------------------------------------------------------------------

    def _normalize_url(self, url: str) -> str:
        """Return a canonical http(s) URL for dedup, or ``""`` if not crawlable.

        Lower-cases scheme and host, drops the fragment and, with
        :attr:`strip_query`, the query string.
        """
        try:
            parsed = urlparse(url.strip())
            if parsed.scheme.lower() not in {"http", "https"} or not parsed.netloc:
                return ""
            return urlunparse(
                parsed._replace(
                    scheme=parsed.scheme.lower(),
                    netloc=parsed.netloc.lower(),
                    path=parsed.path or "/",
                    params="",
                    query="" if self.strip_query else parsed.query,
                    fragment="",
                )
            )
        except ValueError:
            return ""

    def _is_crawlable(self, url: str) -> bool:
        """Return *True* if *url* is same-origin and not filtered out."""
        parsed = urlparse(url)
        if (parsed.scheme, parsed.netloc) != self.origin:
            return False
        path = parsed.path.lower()
        _, dot, ext = path.rpartition(".")
        if dot and "/" not in ext and f".{ext}" in _SKIP_EXTENSIONS:
            return False
        if self.strict_filtering and _STRICT_SKIP_SEGMENT.search(path):
            return False
        return True

    @staticmethod
    def _priority(url: str) -> int:
        """Score *url* so content-rich pages are tested first."""
        path = urlparse(url).path.lower()
        segments = [s for s in path.split("/") if s]

        priority = BASE_PRIORITY
        if any(word in path for word in CONTENT_KEYWORDS):
            priority += CONTENT_BONUS
        if len(segments) > 1:
            priority -= DEPTH_PENALTY * (len(segments) - 1)
        if any(s.startswith(USER_CONTENT_KEYWORDS) for s in segments):
            priority -= USER_CONTENT_PENALTY
        if any(word in path for word in UTILITY_KEYWORDS):
            priority -= UTILITY_PENALTY
        return priority
