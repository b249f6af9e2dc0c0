"""
Auth/Verifier.py - Decide whether a submitted login actually succeeded.

No single signal is reliable across sites: conventional applications
redirect after login, single-page applications often never change the URL.
The verifier therefore collects several independent signals:

  - ``url-change``     cross-domain redirect, expected post-login URL,
                       navigation away from the login path, token-ish query
  - ``dom-indicator``  logout links, user menus, avatars, welcome banners
  - ``content-match``  title/body wording of an authenticated page
  - ``form-absence``   no password input left on the page
  - ``error-absence``  no visible credential-failure message

Decision policy: a passing URL signal is sufficient on its own.  Otherwise
at least :data:`MIN_CORROBORATING_SIGNALS` of the DOM, content and
form-absence signals must pass, and no credential error may be visible.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError, Page

from Models import SignalKind, VerificationResult, VerificationSignal

logger = logging.getLogger(__name__)

MIN_CORROBORATING_SIGNALS = 2

LOGIN_PATH_MARKERS: tuple[str, ...] = (
    "login", "signin", "sign-in", "sign_in", "log-in", "auth", "register", "signup",
)

AUTHENTICATED_PATH_PATTERNS: tuple[str, ...] = (
    "/dashboard", "/home", "/profile", "/account", "/welcome", "/main",
    "/user", "/portal", "/app", "/settings", "/overview",
)

SUCCESS_URL_TOKENS: tuple[str, ...] = ("token", "authenticated", "success", "logged")

LOGGED_IN_SELECTORS: tuple[str, ...] = (
    'a[href*="logout"]',
    'a[href*="signout"]',
    'a[href*="sign-out"]',
    'button[data-action*="logout"]',
    ".user-menu",
    ".profile-menu",
    ".account-menu",
    '[data-testid*="user"]',
    '[data-testid*="profile"]',
    '[data-testid*="account"]',
    ".avatar",
    ".user-avatar",
    ".profile-picture",
    'img[alt*="profile"]',
    'img[alt*="avatar"]',
    '[class*="welcome"]',
    '[data-testid*="welcome"]',
    '[class*="username"]',
    '[class*="user-name"]',
    ".greeting",
    ".logged-in-nav",
    ".user-dashboard",
)

TITLE_KEYWORDS: tuple[str, ...] = ("dashboard", "welcome", "home", "profile")
BODY_KEYWORDS: tuple[str, ...] = ("welcome", "dashboard", "logged in", "signed in", "my account")
LOGIN_FLOW_KEYWORDS: tuple[str, ...] = ("login", "log in", "sign in", "password")

ERROR_SELECTORS: tuple[str, ...] = (
    ".alert-error",
    ".login-error",
    ".form-error",
    ".validation-error",
    ".error-message",
    ".alert-danger",
    ".field-error",
    ".input-error",
    '[data-testid*="error"]',
    '[role="alert"]',
)

CREDENTIAL_ERROR_PHRASES: tuple[str, ...] = (
    "invalid username",
    "invalid password",
    "login failed",
    "authentication failed",
    "incorrect username",
    "incorrect password",
    "invalid credentials",
)


class LoginVerifier:
    """Computes the ``Submitted -> VerifiedSuccess | VerifiedFailure`` transition."""

    def __init__(self, settle_ms: int = 2_000) -> None:
        self.settle_ms = settle_ms

    async def verify(
        self,
        page: Page,
        login_url: str,
        post_login_url: Optional[str] = None,
    ) -> VerificationResult:
        """Settle, capture the current URL, evaluate every signal and decide."""
        await page.wait_for_timeout(self.settle_ms)
        current_url = page.url
        logger.info("Verifying login, current URL: %s", current_url)

        url_signal = self.evaluate_url(login_url, post_login_url, current_url)
        if urlparse(current_url).scheme not in ("http", "https"):
            logger.warning("Login ended on a non-web page: %s", current_url)
            return VerificationResult(
                success=False,
                current_url=current_url,
                reason=f"Login ended on a non-web page: {current_url}",
                signals=[url_signal],
            )

        signals = [
            url_signal,
            await self._dom_signal(page),
            await self._content_signal(page),
            await self._form_absence_signal(page),
            await self._error_absence_signal(page),
        ]
        for sig in signals:
            logger.info(
                "  %-14s %s (%s)", sig.kind.value, "PASS" if sig.passed else "FAIL", sig.reason
            )

        success, reason = self.decide(signals)
        logger.info("Login %s: %s", "verified" if success else "not verified", reason)
        return VerificationResult(
            success=success, current_url=current_url, reason=reason, signals=signals
        )

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    @staticmethod
    def evaluate_url(
        login_url: str, post_login_url: Optional[str], current_url: str
    ) -> VerificationSignal:
        """Judge the post-submit URL against the login URL."""
        kind = SignalKind.URL_CHANGE
        try:
            login = urlparse(login_url)
            current = urlparse(current_url)
        except ValueError:
            return VerificationSignal(kind, False, "URL could not be parsed")

        if current.scheme not in ("http", "https") or not current.hostname:
            return VerificationSignal(kind, False, f"Not a web page after login ({current.scheme}:)")

        if current.hostname != login.hostname:
            return VerificationSignal(kind, True, "Redirected to different domain after login")

        if post_login_url and (current_url == post_login_url or post_login_url in current_url):
            return VerificationSignal(kind, True, "Redirected to expected post-login URL")

        current_path = current.path.lower()
        login_path = login.path.lower()
        if not any(marker in current_path for marker in LOGIN_PATH_MARKERS):
            if any(pattern in current_path for pattern in AUTHENTICATED_PATH_PATTERNS):
                return VerificationSignal(kind, True, "URL contains post-login pattern")
            if current_path.rstrip("/") != login_path.rstrip("/"):
                return VerificationSignal(kind, True, "Navigated away from login page")

        if current_url != login_url:
            tail = f"{current.query}#{current.fragment}".lower()
            if any(token in tail for token in SUCCESS_URL_TOKENS):
                return VerificationSignal(kind, True, "URL parameters suggest successful login")

        return VerificationSignal(kind, False, "Still on login page or similar URL")

    @staticmethod
    def decide(signals: list[VerificationSignal]) -> tuple[bool, str]:
        """Combine *signals* into a verdict and a human-readable reason."""
        by_kind = {sig.kind: sig for sig in signals}

        url = by_kind.get(SignalKind.URL_CHANGE)
        if url is not None and url.passed:
            return True, f"URL verification passed: {url.reason}"

        error = by_kind.get(SignalKind.ERROR_ABSENCE)
        if error is not None and not error.passed:
            return False, f"Login error shown: {error.reason}"

        corroborating = [
            by_kind[k]
            for k in (SignalKind.DOM_INDICATOR, SignalKind.CONTENT_MATCH, SignalKind.FORM_ABSENCE)
            if k in by_kind and by_kind[k].passed
        ]
        if len(corroborating) >= MIN_CORROBORATING_SIGNALS:
            kinds = ", ".join(sig.kind.value for sig in corroborating)
            return True, f"{len(corroborating)} corroborating signals passed ({kinds})"

        return False, (
            f"Only {len(corroborating)} of {MIN_CORROBORATING_SIGNALS} required "
            "corroborating signals passed"
        )

    # ------------------------------------------------------------------
    # DOM-backed signals
    # ------------------------------------------------------------------

    async def _dom_signal(self, page: Page) -> VerificationSignal:
        kind = SignalKind.DOM_INDICATOR
        for selector in LOGGED_IN_SELECTORS:
            try:
                if await page.query_selector_all(selector):
                    return VerificationSignal(kind, True, f"Found logged-in indicator {selector}")
            except PlaywrightError:
                continue
        return VerificationSignal(kind, False, "No logged-in indicators found")

    async def _content_signal(self, page: Page) -> VerificationSignal:
        kind = SignalKind.CONTENT_MATCH
        try:
            title = (await page.title()).lower()
            body = (await page.inner_text("body")).lower()
        except PlaywrightError as exc:
            return VerificationSignal(kind, False, f"Content unavailable: {exc}")

        if any(word in title for word in TITLE_KEYWORDS):
            return VerificationSignal(kind, True, "Page title indicates logged-in state")
        if any(word in body for word in BODY_KEYWORDS):
            return VerificationSignal(kind, True, "Page content indicates successful login")
        if not any(word in body for word in LOGIN_FLOW_KEYWORDS):
            return VerificationSignal(kind, True, "No login-related text found on page")
        return VerificationSignal(kind, False, "Page content suggests still on login flow")

    async def _form_absence_signal(self, page: Page) -> VerificationSignal:
        kind = SignalKind.FORM_ABSENCE
        try:
            password_fields = await page.query_selector_all('input[type="password"]')
        except PlaywrightError:
            return VerificationSignal(kind, False, "Password fields could not be queried")
        if password_fields:
            return VerificationSignal(
                kind, False, f"{len(password_fields)} password field(s) still present"
            )
        return VerificationSignal(kind, True, "No password field on page")

    async def _error_absence_signal(self, page: Page) -> VerificationSignal:
        kind = SignalKind.ERROR_ABSENCE
        for selector in ERROR_SELECTORS:
            try:
                elements = await page.query_selector_all(selector)
            except PlaywrightError:
                continue
            for element in elements:
                try:
                    if not await element.is_visible():
                        continue
                    text = (await element.inner_text()).strip()
                except PlaywrightError:
                    continue
                if text:
                    return VerificationSignal(kind, False, f"Visible error message: {text[:100]}")

        try:
            body = (await page.inner_text("body")).lower()
        except PlaywrightError:
            body = ""
        for phrase in CREDENTIAL_ERROR_PHRASES:
            if phrase in body:
                return VerificationSignal(kind, False, f"Found error text '{phrase}'")

        return VerificationSignal(kind, True, "No login errors visible")
