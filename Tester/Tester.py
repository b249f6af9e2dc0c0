"""
Tester/Tester.py - Session facade: browser lifecycle, login, crawl and test.

The rest of the system calls two entry points:

  - :meth:`A11yTester.login`           one verified login attempt
  - :meth:`A11yTester.crawl_and_test`  optional login, then a priority crawl
                                       that runs axe-core on every page

Session-level failures surface as exceptions: :class:`~Models.DriverConnectionFailed`
when no browser can be obtained, :class:`~Models.LoginFailed` /
:class:`~Models.LoginVerificationFailed` when the login cannot be completed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from Analyzer import AxeAnalyzer
from Auth import AuthManager, ElementResolver, LoginVerifier
from Models import (
    DriverConnectionFailed,
    ElementNotFound,
    LoginConfig,
    LoginFailed,
    LoginResult,
    LoginVerificationFailed,
    PageTestResult,
)
from Reporter import Reporter
from Spider import Spider, StabilityWaiter
from Spider.Spider import MAX_DEPTH, PageAnalyzer

logger = logging.getLogger(__name__)

#: Post-login URL shipped in example configs; never used as a crawl start.
PLACEHOLDER_POST_LOGIN_URL = "https://example.com/dashboard"

BROWSERS: frozenset[str] = frozenset({"chromium", "firefox", "webkit"})


# ---------------------------------------------------------------------------
# Accessibility tester
# ---------------------------------------------------------------------------


class A11yTester:
    """Owns one browser page and runs login plus crawl against it.

    Usage::

        async with A11yTester(reporter, login_config=config) as tester:
            results = await tester.crawl_and_test("https://app.example.com", 10)
    """

    def __init__(
        self,
        reporter: Reporter,
        login_config: Optional[LoginConfig] = None,
        analyzer: Optional[PageAnalyzer] = None,
        waiter: Optional[StabilityWaiter] = None,
        resolver: Optional[ElementResolver] = None,
        verifier: Optional[LoginVerifier] = None,
        browser: str = "chromium",
        headless: bool = True,
        cdp_endpoint: Optional[str] = None,
        max_depth: int = MAX_DEPTH,
        delay: float = 0.0,
        strip_query: bool = True,
        strict_filtering: bool = True,
        shutdown_event: Optional[asyncio.Event] = None,
    ) -> None:
        if browser not in BROWSERS:
            raise ValueError(f"Unsupported browser {browser!r}, choose from {sorted(BROWSERS)}")
        self.reporter = reporter
        self.login_config = login_config
        self.analyzer = analyzer or AxeAnalyzer()
        self.waiter = waiter or StabilityWaiter()
        self.resolver = resolver
        self.verifier = verifier
        self.browser_name = browser
        self.headless = headless
        self.cdp_endpoint = cdp_endpoint
        self.max_depth = max_depth
        self.delay = delay
        self.strip_query = strip_query
        self.strict_filtering = strict_filtering
        self.shutdown_event = shutdown_event or asyncio.Event()

        self.page: Optional[Page] = None
        self.browser_info: str = ""
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "A11yTester":
        await self.connect()
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Browser lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Launch a local browser, or attach to :attr:`cdp_endpoint`.

        Raises :class:`DriverConnectionFailed` on any failure; there is no retry.
        """
        try:
            self._playwright = await async_playwright().start()
            if self.cdp_endpoint:
                logger.info("Connecting to remote browser at %s", self.cdp_endpoint)
                self._browser = await self._playwright.chromium.connect_over_cdp(
                    self.cdp_endpoint
                )
                contexts = self._browser.contexts
                self._context = contexts[0] if contexts else await self._browser.new_context()
            else:
                browser_type = getattr(self._playwright, self.browser_name)
                self._browser = await browser_type.launch(headless=self.headless)
                self._context = await self._browser.new_context()
            self.page = await self._context.new_page()
        except Exception as exc:
            await self.close()
            raise DriverConnectionFailed(f"Could not start {self.browser_name}: {exc}") from exc

        self.browser_info = f"{self.browser_name} {self._browser.version}"
        logger.info("Browser session ready (%s)", self.browser_info)

    async def close(self) -> None:
        """Release the page, context, browser and Playwright driver."""
        for closer in (
            self._context.close if self._context and not self.cdp_endpoint else None,
            self._browser.close if self._browser else None,
            self._playwright.stop if self._playwright else None,
        ):
            if closer is None:
                continue
            try:
                await closer()
            except PlaywrightError as exc:
                logger.debug("Error during browser shutdown: %s", exc)
        self.page = None
        self._context = None
        self._browser = None
        self._playwright = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def login(self) -> LoginResult:
        """Run one login attempt with :attr:`login_config`.

        Resolution failures are returned as an unsuccessful result rather
        than raised.
        """
        page = self._require_page()
        if self.login_config is None:
            return LoginResult(success=False, error="No login configuration provided")

        manager = AuthManager(
            self.login_config,
            resolver=self.resolver,
            verifier=self.verifier,
            waiter=self.waiter,
        )
        try:
            verification = await manager.login(page)
        except ElementNotFound as exc:
            logger.error("Login aborted: %s", exc)
            return LoginResult(success=False, current_url=page.url, error=str(exc))
        except PlaywrightError as exc:
            logger.error("Login aborted by browser error: %s", exc)
            return LoginResult(success=False, current_url=page.url, error=str(exc))

        return LoginResult(
            success=verification.success,
            current_url=verification.current_url,
            error=None if verification.success else verification.reason,
            verification=verification,
        )

    async def crawl_and_test(self, start_url: str, max_pages: int) -> list[PageTestResult]:
        """Log in when configured, then crawl and test up to *max_pages* pages."""
        page = self._require_page()
        login_result: Optional[LoginResult] = None

        if self.login_config is not None:
            self.reporter.log_info(
                f"Logging in at [bold cyan]{self.login_config.login_url}[/bold cyan]"
            )
            login_result = await self.login()
            if not login_result.success:
                if login_result.verification is not None:
                    raise LoginVerificationFailed(
                        f"Login verification failed: {login_result.error}",
                        login_result.verification,
                    )
                raise LoginFailed(f"Login failed: {login_result.error}")
            self.reporter.login_used = True
            self.reporter.login_config = self.login_config
            self.reporter.log_info(
                f"Login verified, now at [bold cyan]{login_result.current_url}[/bold cyan]"
            )

        crawl_start = self.crawl_start_url(start_url, self.login_config, login_result)
        self.reporter.log_info(f"Crawling from [bold cyan]{crawl_start}[/bold cyan]")

        spider = Spider(
            page=page,
            analyzer=self.analyzer,
            reporter=self.reporter,
            max_pages=max_pages,
            max_depth=self.max_depth,
            waiter=self.waiter,
            delay=self.delay,
            strip_query=self.strip_query,
            strict_filtering=self.strict_filtering,
            browser_info=self.browser_info,
            shutdown_event=self.shutdown_event,
        )
        return await spider.crawl(crawl_start)

    @staticmethod
    def crawl_start_url(
        start_url: str,
        login_config: Optional[LoginConfig],
        login_result: Optional[LoginResult],
    ) -> str:
        """Pick the crawl start: explicit post-login URL, verified URL, then *start_url*."""
        if login_config is not None:
            explicit = login_config.post_login_url
            if explicit and explicit != PLACEHOLDER_POST_LOGIN_URL:
                return explicit
        if login_result is not None and login_result.success and login_result.current_url:
            return login_result.current_url
        return start_url

    def _require_page(self) -> Page:
        if self.page is None:
            raise DriverConnectionFailed("Browser session is not connected")
        return self.page
