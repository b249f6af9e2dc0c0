"""
Spider/Stability.py - Wait for a page to reach a stable, testable state.

Single-page applications often report ``readyState === "complete"`` long
before client-side rendering has populated the DOM, so readiness alone is
not enough.  The waiter polls a composite DOM signature (element counts,
ready-state, loading-indicator count) and declares the page stable once the
signature has stopped changing for a configurable window.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from playwright.async_api import Error as PlaywrightError, Page

logger = logging.getLogger(__name__)

_SNAPSHOT_JS = """
() => ({
    forms: document.querySelectorAll('form').length,
    formsWithInputs: Array.from(document.querySelectorAll('form'))
        .filter((form) => form.querySelector('input') !== null).length,
    inputs: document.querySelectorAll('input').length,
    buttons: document.querySelectorAll('button, input[type="submit"]').length,
    images: document.querySelectorAll('img').length,
    links: document.querySelectorAll('a').length,
    divs: document.querySelectorAll('div').length,
    readyState: document.readyState,
    loading: document.querySelectorAll(
        '[class*="loading"], [class*="spinner"], [id*="loading"], [class*="wait"]'
    ).length,
})
"""

_COUNT_KEYS = ("forms", "inputs", "buttons", "images", "links", "divs")


class StabilityWaiter:
    """Bounded poll for DOM stability.

    :meth:`wait` never raises.  On timeout it logs a warning and returns
    *False* so the caller can carry on against the current page state.
    """

    def __init__(
        self,
        max_wait_ms: int = 15_000,
        check_interval_ms: int = 1_000,
        required_stable_ms: int = 2_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_wait_ms = max_wait_ms
        self.check_interval_ms = check_interval_ms
        self.required_stable_ms = required_stable_ms
        self._clock = clock

    async def wait(self, page: Page, require_form: bool = False) -> bool:
        """Poll *page* until it is stable or :attr:`max_wait_ms` elapses.

        With *require_form* the page additionally needs at least one form
        containing at least one input, which is what a login page must
        eventually show.
        """
        start = self._clock()
        last_signature: Optional[tuple[int, ...]] = None
        stable_since: Optional[float] = None

        while self._elapsed_ms(start) < self.max_wait_ms:
            try:
                snapshot = await page.evaluate(_SNAPSHOT_JS)
            except PlaywrightError as exc:
                logger.debug("Stability snapshot failed: %s", exc)
                if not await self._pause(page):
                    return False
                continue

            if snapshot.get("readyState") != "complete":
                logger.debug("Page still loading (readyState=%s)", snapshot.get("readyState"))
                stable_since = None
            elif snapshot.get("loading", 0) > 0:
                logger.debug("%d loading indicator(s) present", snapshot["loading"])
                stable_since = None
            else:
                signature = self.signature(snapshot)
                if signature != last_signature:
                    if last_signature is not None:
                        logger.debug("Page changing (%s -> %s)", last_signature, signature)
                    last_signature = signature
                    stable_since = self._clock()
                elif stable_since is None:
                    stable_since = self._clock()
                elif self._elapsed_ms(stable_since) >= self.required_stable_ms:
                    if not require_form or self.has_form(snapshot):
                        logger.debug(
                            "Page stable for %dms (%d elements)",
                            self.required_stable_ms,
                            sum(signature),
                        )
                        return True
                    logger.debug("Stable but no form with inputs yet, waiting longer")
                    stable_since = self._clock()

            if not await self._pause(page):
                return False

        logger.warning(
            "Page did not stabilise within %dms, proceeding with current state",
            self.max_wait_ms,
        )
        return False

    @staticmethod
    def signature(snapshot: dict) -> tuple[int, ...]:
        """Return the element-count tuple compared between polls."""
        return tuple(int(snapshot.get(key, 0)) for key in _COUNT_KEYS)

    @staticmethod
    def has_form(snapshot: dict) -> bool:
        """True when at least one form on the page contains an input."""
        return snapshot.get("formsWithInputs", 0) > 0

    async def _pause(self, page: Page) -> bool:
        try:
            await page.wait_for_timeout(self.check_interval_ms)
        except PlaywrightError as exc:
            logger.warning("Page unavailable while waiting for stability: %s", exc)
            return False
        return True

    def _elapsed_ms(self, since: float) -> float:
        return (self._clock() - since) * 1000
