"""
Auth/Resolver.py - Adaptive login-form element resolution.

Locates the username, password and submit controls of a login form whose
markup is not known in advance.  Resolution walks an ordered cascade of
strategy tiers and returns the first validated hit:

  1. user-provided selectors, tried verbatim
  2. smart CSS selectors, every validated match ranked by :class:`ElementScorer`
  3. XPath text heuristics (placeholder / label text, positional fallbacks)
  4. generic form-field fallback

Per-candidate lookup failures (stale handles, selectors the engine rejects)
are swallowed and resolution moves on.  Only total exhaustion is reported,
as :class:`~Models.ElementNotFound`.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

from Models import Candidate, ElementNotFound, ElementRole, SelectorStrategy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scoring weights
# ---------------------------------------------------------------------------

BASE_SCORE = 10
TYPE_SELECTOR_BONUS = 20
NAME_SELECTOR_BONUS = 15
ID_SELECTOR_BONUS = 15
POSITION_BONUS = 10
POSITION_SLOTS = 2
LABEL_PRESENT_BONUS = 5
LABEL_KEYWORD_BONUS = 10
PLACEHOLDER_PRESENT_BONUS = 5
PLACEHOLDER_KEYWORD_BONUS = 10
SIZE_BONUS = 5
MIN_WIDTH = 50
MIN_HEIGHT = 20
STALE_SCORE = 1

ROLE_KEYWORDS: dict[ElementRole, tuple[str, ...]] = {
    ElementRole.USERNAME: ("user", "email"),
    ElementRole.PASSWORD: ("pass",),
    ElementRole.SUBMIT: ("login", "log in", "sign"),
}


# ---------------------------------------------------------------------------
# Strategy tables
# ---------------------------------------------------------------------------

def _css(*selectors: str) -> tuple[SelectorStrategy, ...]:
    return tuple(SelectorStrategy(selector=s) for s in selectors)


SMART_STRATEGIES: dict[ElementRole, tuple[SelectorStrategy, ...]] = {
    ElementRole.USERNAME: _css(
        # type / autocomplete
        'input[type="email"]',
        'input[autocomplete="username"]',
        'input[autocomplete="email"]',
        # exact name / id
        'input[name="username"]',
        'input[name="email"]',
        'input[name="login"]',
        'input[id="username"]',
        'input[id="email"]',
        'input[id="login"]',
        # substring name / id
        'input[name*="user"]',
        'input[name*="email"]',
        'input[id*="user"]',
        'input[id*="email"]',
        # placeholder
        'input[placeholder*="username" i]',
        'input[placeholder*="email" i]',
        'input[placeholder*="user" i]',
        # positional
        'input[type="text"]:first-of-type',
        'input:not([type]):first-of-type',
    ),
    ElementRole.PASSWORD: _css(
        'input[type="password"]',
        'input[autocomplete="current-password"]',
        'input[autocomplete="password"]',
        'input[name="password"]',
        'input[id="password"]',
        'input[name*="pass"]',
        'input[id*="pass"]',
        'input[placeholder*="password" i]',
    ),
    ElementRole.SUBMIT: _css(
        'button[type="submit"]',
        'input[type="submit"]',
        'button:has-text("Login")',
        'button:has-text("Sign in")',
        'button:has-text("Log in")',
        'button:has-text("Submit")',
        'button[class*="login"]',
        'button[class*="signin"]',
        'button[class*="submit"]',
        'button[id*="login"]',
        'button[id*="signin"]',
        'button[id*="submit"]',
        "form button:last-of-type",
        'form input[type="button"]',
    ),
}

_LOWER = "translate({}, 'ABCDEFGHIJKLMNOPQRSTUVWXYZ', 'abcdefghijklmnopqrstuvwxyz')"


def _placeholder_has(word: str) -> str:
    return f"//input[@placeholder[contains({_LOWER.format('.')}, '{word}')]]"


def _label_has(axis: str, word: str) -> str:
    return f"//input[{axis}label[contains({_LOWER.format('text()')}, '{word}')]]"


def _button_text_has(word: str) -> str:
    return f"//button[contains({_LOWER.format('.')}, '{word}')]"


def _button_value_has(word: str) -> str:
    return f"//input[@type='button'][@value[contains({_LOWER.format('.')}, '{word}')]]"


XPATH_STRATEGIES: dict[ElementRole, tuple[str, ...]] = {
    ElementRole.USERNAME: (
        _placeholder_has("username"),
        _placeholder_has("email"),
        _placeholder_has("user"),
        _placeholder_has("login"),
        _label_has("preceding-sibling::", "username"),
        _label_has("preceding-sibling::", "email"),
        _label_has("preceding-sibling::", "user"),
        _label_has("following-sibling::", "username"),
        _label_has("following-sibling::", "email"),
        _label_has("parent::*/", "username"),
        _label_has("parent::*/", "email"),
        "(//input[@type='text'])[1]",
        "(//input[@type='email'])[1]",
        "(//input[not(@type)])[1]",
    ),
    ElementRole.PASSWORD: (
        "//input[@type='password']",
        _placeholder_has("password"),
        _placeholder_has("pass"),
        _label_has("preceding-sibling::", "password"),
        _label_has("following-sibling::", "password"),
        _label_has("parent::*/", "password"),
    ),
    ElementRole.SUBMIT: (
        _button_text_has("login"),
        _button_text_has("sign in"),
        _button_text_has("log in"),
        _button_text_has("submit"),
        _button_text_has("enter"),
        _button_text_has("continue"),
        "//input[@type='submit']",
        _button_value_has("login"),
        _button_value_has("submit"),
        "(//form//button)[last()]",
        "//button[@type='submit']",
    ),
}

GENERIC_FALLBACKS: dict[ElementRole, tuple[str, ...]] = {
    ElementRole.USERNAME: (
        'input[type="text"]',
        'input[type="email"]',
        "input:not([type])",
        'input[type=""]',
    ),
    ElementRole.PASSWORD: ('input[type="password"]',),
    ElementRole.SUBMIT: (
        'button[type="submit"]',
        'input[type="submit"]',
        'input[type="button"]',
        "button:not([type])",
        "button",
        '[role="button"]',
    ),
}

_INTERACTIVE = SelectorStrategy(selector="", required_visible=True, required_enabled=True)
_VISIBLE_ONLY = SelectorStrategy(selector="", required_visible=True, required_enabled=False)

# Batched DOM reads for scoring: peer position, associated label text and
# placeholder, all in one round-trip.
_PROBE_JS = """
(el, role) => {
    let peerSelector;
    if (role === 'submit') {
        peerSelector = 'button, input[type="submit"], input[type="button"]';
    } else if (role === 'password') {
        peerSelector = 'input[type="password"]';
    } else {
        peerSelector = 'input:not([type="hidden"]):not([type="password"])'
            + ':not([type="submit"]):not([type="button"])'
            + ':not([type="checkbox"]):not([type="radio"])';
    }
    const peers = Array.from(document.querySelectorAll(peerSelector));
    let label = null;
    if (el.id) {
        const byFor = document.querySelector('label[for="' + CSS.escape(el.id) + '"]');
        if (byFor) label = byFor.textContent || '';
    }
    if (label === null) {
        const wrapping = el.closest('label');
        if (wrapping) label = wrapping.textContent || '';
    }
    return {
        index: peers.indexOf(el),
        label: label === null ? null : label.toLowerCase(),
        placeholder: (el.getAttribute('placeholder') || '').toLowerCase(),
    };
}
"""


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------


class ElementScorer:
    """Assigns a confidence score to a candidate element for a role.

    Scoring never raises: any failure while reading the element (stale or
    detached node, closed page) yields :data:`STALE_SCORE`.
    """

    async def score(self, element: ElementHandle, role: ElementRole, selector: str) -> int:
        try:
            score = BASE_SCORE + self.selector_bonus(selector)

            probe = await element.evaluate(_PROBE_JS, role.value)
            index = probe.get("index", -1)
            if 0 <= index < POSITION_SLOTS:
                score += POSITION_BONUS

            score += self.text_bonus(
                probe.get("label"), role, LABEL_PRESENT_BONUS, LABEL_KEYWORD_BONUS
            )
            score += self.text_bonus(
                probe.get("placeholder"), role, PLACEHOLDER_PRESENT_BONUS, PLACEHOLDER_KEYWORD_BONUS
            )

            box = await element.bounding_box()
            if box and box["width"] > MIN_WIDTH and box["height"] > MIN_HEIGHT:
                score += SIZE_BONUS

            return score
        except Exception as exc:
            logger.debug("Scoring failed for %s candidate (%s): %s", role.value, selector, exc)
            return STALE_SCORE

    @staticmethod
    def selector_bonus(selector: str) -> int:
        """Return the specificity bonus earned by the selector text itself."""
        bonus = 0
        if "type=" in selector:
            bonus += TYPE_SELECTOR_BONUS
        if "name" in selector:
            bonus += NAME_SELECTOR_BONUS
        if "id" in selector:
            bonus += ID_SELECTOR_BONUS
        return bonus

    @staticmethod
    def text_bonus(
        text: Optional[str],
        role: ElementRole,
        present_bonus: int,
        keyword_bonus: int,
    ) -> int:
        """Bonus for having *text* at all, plus more if it names the role."""
        if not text:
            return 0
        lowered = text.lower()
        bonus = present_bonus
        if any(word in lowered for word in ROLE_KEYWORDS[role]):
            bonus += keyword_bonus
        return bonus


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ElementResolver:
    """Resolve a login-form control through the strategy cascade.

    Usage::

        resolver = ElementResolver()
        field = await resolver.resolve(page, ElementRole.USERNAME, ["#email"])
    """

    def __init__(self, scorer: Optional[ElementScorer] = None) -> None:
        self.scorer = scorer or ElementScorer()
        self._tiers = (
            ("user-provided", self._from_user_selectors),
            ("smart", self._from_smart_strategies),
            ("xpath", self._from_xpath_heuristics),
            ("generic", self._from_generic_fallback),
        )

    async def resolve(
        self,
        page: Page,
        role: ElementRole,
        user_selectors: Sequence[str] = (),
    ) -> ElementHandle:
        """Return the element for *role*, or raise :class:`ElementNotFound`."""
        candidate = await self.resolve_candidate(page, role, user_selectors)
        return candidate.element

    async def resolve_candidate(
        self,
        page: Page,
        role: ElementRole,
        user_selectors: Sequence[str] = (),
    ) -> Candidate:
        """Like :meth:`resolve` but return the full :class:`Candidate`."""
        for tier_name, tier in self._tiers:
            candidate = await tier(page, role, user_selectors)
            if candidate is not None:
                logger.info(
                    "Found %s field via %s tier: %s (score %d)",
                    role.value,
                    tier_name,
                    candidate.strategy,
                    candidate.score,
                )
                return candidate
            logger.debug("No %s field from %s tier", role.value, tier_name)

        await self._log_page_elements(page, role)
        raise ElementNotFound(role)

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def _from_user_selectors(
        self, page: Page, role: ElementRole, user_selectors: Sequence[str]
    ) -> Optional[Candidate]:
        for selector in user_selectors:
            for element in await self._query(page, selector):
                if await self._validate(element, _VISIBLE_ONLY):
                    return Candidate(element=element, score=0, strategy=selector)
            logger.debug("User-provided selector gave no visible element: %s", selector)
        return None

    async def _from_smart_strategies(
        self, page: Page, role: ElementRole, user_selectors: Sequence[str]
    ) -> Optional[Candidate]:
        candidates: list[Candidate] = []
        for strategy in SMART_STRATEGIES[role]:
            for element in await self._query(page, strategy.selector):
                if not await self._validate(element, strategy):
                    continue
                score = await self.scorer.score(element, role, strategy.selector)
                candidates.append(
                    Candidate(element=element, score=score, strategy=strategy.selector)
                )

        if not candidates:
            return None
        # sorted() is stable: equal scores keep strategy-table order
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
        logger.debug(
            "%d %s candidate(s), best %s (score %d)",
            len(ranked),
            role.value,
            ranked[0].strategy,
            ranked[0].score,
        )
        return ranked[0]

    async def _from_xpath_heuristics(
        self, page: Page, role: ElementRole, user_selectors: Sequence[str]
    ) -> Optional[Candidate]:
        for xpath in XPATH_STRATEGIES[role]:
            for element in await self._query(page, f"xpath={xpath}"):
                if await self._validate(element, _INTERACTIVE):
                    return Candidate(element=element, score=0, strategy=xpath)
        return None

    async def _from_generic_fallback(
        self, page: Page, role: ElementRole, user_selectors: Sequence[str]
    ) -> Optional[Candidate]:
        for selector in GENERIC_FALLBACKS[role]:
            for element in await self._query(page, selector):
                if await self._validate(element, _INTERACTIVE):
                    return Candidate(element=element, score=0, strategy=f"generic {selector}")
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _query(page: Page, selector: str) -> list[Any]:
        """Return all matches for *selector*, or ``[]`` if the lookup fails."""
        try:
            return await page.query_selector_all(selector)
        except PlaywrightError as exc:
            logger.debug("Selector rejected '%s': %s", selector, exc)
            return []

    @staticmethod
    async def _validate(element: ElementHandle, strategy: SelectorStrategy) -> bool:
        try:
            if strategy.required_visible and not await element.is_visible():
                return False
            if strategy.required_enabled and not await element.is_enabled():
                return False
            return True
        except PlaywrightError:
            return False

    @staticmethod
    async def _log_page_elements(page: Page, role: ElementRole) -> None:
        """Dump the page's inputs, buttons and forms to the debug log."""
        if not logger.isEnabledFor(logging.DEBUG):
            return
        try:
            inputs = await page.eval_on_selector_all(
                "input",
                """els => els.slice(0, 10).map(e => ({
                    type: e.getAttribute('type') || 'text',
                    name: e.name || '', id: e.id || '',
                    placeholder: e.placeholder || '',
                    visible: !!(e.offsetWidth || e.offsetHeight),
                    disabled: e.disabled,
                }))""",
            )
            buttons = await page.eval_on_selector_all(
                'button, input[type="submit"], input[type="button"]',
                """els => els.slice(0, 5).map(e => ({
                    tag: e.tagName.toLowerCase(), id: e.id || '',
                    text: (e.innerText || e.value || '').trim().slice(0, 40),
                }))""",
            )
            forms = await page.eval_on_selector_all("form", "els => els.length")
        except PlaywrightError as exc:
            logger.debug("Could not inspect page while resolving %s: %s", role.value, exc)
            return

        logger.debug("No %s field on %s", role.value, page.url)
        for i, info in enumerate(inputs, start=1):
            logger.debug("  input %d: %s", i, info)
        for i, info in enumerate(buttons, start=1):
            logger.debug("  button %d: %s", i, info)
        logger.debug("  forms on page: %s", forms)
