"""
tests/fakes.py - In-memory stand-ins for Playwright ``Page`` / ``ElementHandle``.

Only the calls the application makes are implemented.  Selectors are matched
verbatim against the ``selectors`` mapping; anything unmapped matches
nothing, and selectors listed in ``invalid`` raise like a rejected selector.
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from Models import AnalysisResult, Violation

STABLE_SNAPSHOT = {
    "forms": 1,
    "formsWithInputs": 1,
    "inputs": 2,
    "buttons": 1,
    "images": 0,
    "links": 3,
    "divs": 5,
    "readyState": "complete",
    "loading": 0,
}


class FakeClock:
    """Monotonic clock in seconds, advanced explicitly."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class FakeElement:
    def __init__(
        self,
        name: str = "",
        visible: bool = True,
        enabled: bool = True,
        box: Optional[dict] = None,
        probe: Optional[dict] = None,
        text: str = "",
        stale: bool = False,
        on_click: Optional[Callable[[], None]] = None,
    ) -> None:
        self.name = name
        self.visible = visible
        self.enabled = enabled
        self.box = box if box is not None else {"x": 0, "y": 0, "width": 200, "height": 30}
        self.probe = probe if probe is not None else {"index": 0, "label": None, "placeholder": ""}
        self.text = text
        self.stale = stale
        self.on_click = on_click
        self.filled: Optional[str] = None
        self.clicks = 0

    def __repr__(self) -> str:
        return f"FakeElement({self.name!r})"

    def _check(self) -> None:
        if self.stale:
            raise PlaywrightError("Element is not attached to the DOM")

    async def is_visible(self) -> bool:
        self._check()
        return self.visible

    async def is_enabled(self) -> bool:
        self._check()
        return self.enabled

    async def bounding_box(self) -> Optional[dict]:
        self._check()
        return self.box

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self._check()
        return self.probe

    async def inner_text(self) -> str:
        self._check()
        return self.text

    async def fill(self, value: str) -> None:
        self._check()
        self.filled = value

    async def click(self) -> None:
        self._check()
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeResponse:
    def __init__(self, status: int = 200) -> None:
        self.status = status


class FakePage:
    """A single browser tab whose DOM is described by plain dictionaries."""

    def __init__(
        self,
        url: str = "about:blank",
        selectors: Optional[dict[str, list]] = None,
        invalid: Optional[set[str]] = None,
        title: str = "",
        body: str = "",
        snapshots: Optional[list] = None,
        clock: Optional[FakeClock] = None,
        links: Optional[dict[str, list[str]]] = None,
        statuses: Optional[dict[str, int]] = None,
        goto_errors: Optional[dict[str, Exception]] = None,
        redirects: Optional[dict[str, str]] = None,
        axe_loaded: bool = False,
        axe_result: Optional[dict] = None,
    ) -> None:
        self.url = url
        self.selectors = selectors or {}
        self.invalid = invalid or set()
        self.title_text = title
        self.body_text = body
        self.snapshots = list(snapshots or [])
        self.clock = clock
        self.links = links or {}
        self.statuses = statuses or {}
        self.goto_errors = goto_errors or {}
        self.redirects = redirects or {}
        self.axe_loaded = axe_loaded
        self.axe_result = axe_result or {"violations": [], "passes": [], "incomplete": []}

        self.visits: list[str] = []
        self.waits: list[int] = []
        self.queries: list[str] = []
        self.script_tags: list[dict] = []
        self.axe_options: list[Any] = []

    # -- navigation ------------------------------------------------------------

    async def goto(self, url: str, **kwargs) -> FakeResponse:
        self.visits.append(url)
        if url in self.goto_errors:
            raise self.goto_errors[url]
        self.url = self.redirects.get(url, url)
        return FakeResponse(self.statuses.get(url, 200))

    async def wait_for_timeout(self, ms: int) -> None:
        self.waits.append(ms)
        if self.clock is not None:
            self.clock.advance_ms(ms)

    # -- DOM -------------------------------------------------------------------

    async def query_selector_all(self, selector: str) -> list:
        self.queries.append(selector)
        if selector in self.invalid:
            raise PlaywrightError(f"Unexpected token in selector {selector!r}")
        return list(self.selectors.get(selector, []))

    async def eval_on_selector_all(self, selector: str, expression: str) -> Any:
        if selector == "a[href]":
            return list(self.links.get(self.url, []))
        return []

    async def title(self) -> str:
        return self.title_text

    async def inner_text(self, selector: str) -> str:
        return self.body_text

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        if "typeof window.axe" in expression:
            return self.axe_loaded
        if "axe.run" in expression:
            self.axe_options.append(arg)
            return self.axe_result
        if not self.snapshots:
            return dict(STABLE_SNAPSHOT)
        snapshot = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        if isinstance(snapshot, Exception):
            raise snapshot
        return snapshot

    async def add_script_tag(self, **kwargs) -> None:
        self.script_tags.append(kwargs)
        self.axe_loaded = True


class FakeWaiter:
    """Stability waiter that returns immediately."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []

    async def wait(self, page, require_form: bool = False) -> bool:
        self.calls.append((page.url, require_form))
        return True


def violation(rule_id: str, impact: Optional[str] = "serious") -> Violation:
    return Violation(
        id=rule_id,
        impact=impact,
        description=f"{rule_id} description",
        help_url=f"https://dequeuniversity.com/rules/axe/4.10/{rule_id}",
        nodes=[{"target": ["#main"]}],
    )


class FakeAnalyzer:
    """Returns canned results keyed by the page's current URL."""

    def __init__(
        self,
        results: Optional[dict[str, AnalysisResult]] = None,
        errors: Optional[dict[str, Exception]] = None,
    ) -> None:
        self.results = results or {}
        self.errors = errors or {}
        self.analyzed: list[str] = []

    async def analyze(self, page) -> AnalysisResult:
        self.analyzed.append(page.url)
        if page.url in self.errors:
            raise self.errors[page.url]
        return self.results.get(page.url, AnalysisResult())
