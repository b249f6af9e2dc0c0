"""
Analyzer/Axe.py - axe-core accessibility analysis of the current page.

Handles:
  - Injecting axe-core from a local file or the public CDN build
  - Running ``axe.run`` with optional rule tags (e.g. ``wcag2a``, ``wcag2aa``)
  - Mapping the raw JSON onto :class:`~Models.AnalysisResult`
  - Impact-weighted page scoring and letter grades
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from playwright.async_api import Page

from Models import AnalysisResult, Violation

logger = logging.getLogger(__name__)

AXE_CDN_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"

IMPACT_PENALTIES: dict[str, int] = {
    "critical": 20,
    "serious": 10,
    "moderate": 5,
    "minor": 2,
}
UNKNOWN_IMPACT_PENALTY = 3


@dataclass(frozen=True)
class Grade:
    """Letter grade for an accessibility score."""

    grade: str
    color: str
    description: str


_GRADES: tuple[tuple[int, Grade], ...] = (
    (90, Grade("A", "#4caf50", "Excellent")),
    (80, Grade("B", "#8bc34a", "Good")),
    (70, Grade("C", "#ffc107", "Fair")),
    (60, Grade("D", "#ff9800", "Poor")),
)
_FAILING_GRADE = Grade("F", "#f44336", "Critical Issues")


def accessibility_score(violations: Iterable[Violation]) -> int:
    """Return 100 minus the impact-weighted penalty of *violations*, floored at 0."""
    penalty = sum(
        IMPACT_PENALTIES.get(v.impact or "", UNKNOWN_IMPACT_PENALTY) for v in violations
    )
    return max(0, 100 - penalty)


def accessibility_grade(score: int) -> Grade:
    for threshold, grade in _GRADES:
        if score >= threshold:
            return grade
    return _FAILING_GRADE


class AxeAnalyzer:
    """Runs axe-core inside the page and returns its findings.

    Usage::

        analyzer = AxeAnalyzer(script_path="axe.min.js", tags=["wcag2aa"])
        result = await analyzer.analyze(page)
    """

    def __init__(
        self,
        script_path: Optional[str] = None,
        script_url: str = AXE_CDN_URL,
        tags: Optional[Sequence[str]] = None,
    ) -> None:
        self.script_path = script_path
        self.script_url = script_url
        self.tags = list(tags) if tags else []

    async def analyze(self, page: Page) -> AnalysisResult:
        """Inject axe-core if needed and analyse the current document.

        Playwright errors propagate so the crawl scheduler can record the
        page as failed.
        """
        await self._ensure_axe(page)

        options = {"runOnly": {"type": "tag", "values": self.tags}} if self.tags else {}
        raw = await page.evaluate(
            "async (options) => await window.axe.run(document, options)", options
        )
        result = self.parse(raw)
        logger.debug(
            "axe: %d violation(s), %d pass(es), %d incomplete on %s",
            len(result.violations),
            len(result.passes),
            len(result.incomplete),
            page.url,
        )
        return result

    @staticmethod
    def parse(raw: Optional[dict]) -> AnalysisResult:
        """Map the raw ``axe.run`` results onto :class:`AnalysisResult`."""
        raw = raw or {}
        return AnalysisResult(
            violations=[Violation.from_axe(v) for v in raw.get("violations") or []],
            passes=list(raw.get("passes") or []),
            incomplete=list(raw.get("incomplete") or []),
        )

    async def _ensure_axe(self, page: Page) -> None:
        if await page.evaluate("() => typeof window.axe !== 'undefined'"):
            return
        if self.script_path:
            await page.add_script_tag(path=self.script_path)
        else:
            await page.add_script_tag(url=self.script_url)
        logger.debug("axe-core injected into %s", page.url)
