"""
Auth/Manager.py - Login orchestration for the accessibility tester.

Supports:
  - Login configuration from CLI flags or a JSON auth-script file
  - Form login against unknown markup: the username, password and submit
    controls are located by :class:`~Auth.Resolver.ElementResolver`
  - Multi-signal success verification by :class:`~Auth.Verifier.LoginVerifier`
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from playwright.async_api import Page

from Models import ElementRole, LoginConfig, LoginState, VerificationResult
from Spider.Stability import StabilityWaiter

from .Resolver import ElementResolver
from .Verifier import LoginVerifier

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = frozenset({"login_url", "username", "password"})
_OPTIONAL_KEYS = (
    "username_selector",
    "password_selector",
    "submit_selector",
    "post_login_url",
)


def load_login_config(path: str) -> Optional[LoginConfig]:
    """Parse a JSON auth-script into a :class:`LoginConfig`.

    Returns *None* (after logging the reason) when the file is missing,
    is not valid JSON, or lacks a required key.
    """
    try:
        with open(path) as fh:
            data = json.load(fh)
    except FileNotFoundError:
        logger.error("Auth script not found: %s", path)
        return None
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in auth script %s: %s", path, exc)
        return None

    if not isinstance(data, dict):
        logger.error("Auth script must contain a JSON object: %s", path)
        return None

    missing = _REQUIRED_KEYS - data.keys()
    if missing:
        logger.error("Auth script missing required keys: %s", sorted(missing))
        return None

    config = LoginConfig(
        login_url=data["login_url"],
        username=data["username"],
        password=data["password"],
        **{key: data.get(key) or None for key in _OPTIONAL_KEYS},
    )
    logger.debug("Login config loaded from %s", path)
    return config


class AuthManager:
    """Runs one login attempt and tracks its :class:`LoginState`.

    Usage::

        manager = AuthManager(config)
        verification = await manager.login(page)
        if verification.success:
            ...
    """

    def __init__(
        self,
        config: LoginConfig,
        resolver: Optional[ElementResolver] = None,
        verifier: Optional[LoginVerifier] = None,
        waiter: Optional[StabilityWaiter] = None,
        field_delay_ms: int = 1_000,
        post_submit_wait_ms: int = 5_000,
    ) -> None:
        self.config = config
        self.resolver = resolver or ElementResolver()
        self.verifier = verifier or LoginVerifier()
        self.waiter = waiter or StabilityWaiter()
        self.field_delay_ms = field_delay_ms
        self.post_submit_wait_ms = post_submit_wait_ms
        self.state: LoginState = LoginState.NOT_ATTEMPTED

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def login(self, page: Page) -> VerificationResult:
        """Navigate, fill the form, submit and verify.

        Raises :class:`~Models.ElementNotFound` if a control cannot be
        located; the attempt then stays in ``NOT_ATTEMPTED``.
        """
        config = self.config
        self.state = LoginState.NOT_ATTEMPTED

        logger.info("Navigating to login page: %s", config.login_url)
        await page.goto(config.login_url, wait_until="load", timeout=30_000)
        await self.waiter.wait(page, require_form=True)

        await self._fill(page, ElementRole.USERNAME, config.username)
        await page.wait_for_timeout(self.field_delay_ms)
        await self._fill(page, ElementRole.PASSWORD, config.password)
        await page.wait_for_timeout(self.field_delay_ms)

        submit = await self.resolver.resolve(
            page, ElementRole.SUBMIT, config.selectors_for(ElementRole.SUBMIT)
        )
        await submit.click()
        self.state = LoginState.SUBMITTED
        logger.info("Login form submitted, waiting for the application to respond")
        await page.wait_for_timeout(self.post_submit_wait_ms)

        verification = await self.verifier.verify(
            page, config.login_url, config.post_login_url
        )
        self.state = (
            LoginState.VERIFIED_SUCCESS if verification.success else LoginState.VERIFIED_FAILURE
        )
        return verification

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fill(self, page: Page, role: ElementRole, value: str) -> None:
        element = await self.resolver.resolve(page, role, self.config.selectors_for(role))
        await element.fill(value)
        logger.debug("%s field filled", role.value.capitalize())
