"""
Models/Spider.py - Data types produced by the crawl scheduler and the
accessibility analyzer, and handed to the reporter.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

# Keys of an axe-core violation that the core understands; all other keys
# are carried through untouched.
_VIOLATION_KEYS = ("id", "impact", "description", "helpUrl", "nodes")


@dataclass(frozen=True)
class CrawlFrontierEntry:
    """A discovered URL waiting to be tested."""

    url: str
    """Normalised URL (fragment and, by default, query stripped)."""

    depth: int
    """Link distance from the crawl start URL (start URL is depth 0)."""

    priority: int
    """Higher values are tested first."""


@dataclass(frozen=True)
class Violation:
    """A single axe-core rule violation."""

    id: str
    impact: Optional[str]
    """One of ``critical``, ``serious``, ``moderate``, ``minor`` or *None*."""

    description: str
    help_url: str
    nodes: list[dict] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    """Opaque pass-through of every other key axe reported."""

    @classmethod
    def from_axe(cls, raw: dict) -> "Violation":
        """Build a :class:`Violation` from one entry of ``axe.run().violations``."""
        return cls(
            id=str(raw.get("id", "")),
            impact=raw.get("impact"),
            description=str(raw.get("description", "")),
            help_url=str(raw.get("helpUrl", "")),
            nodes=list(raw.get("nodes") or []),
            extra={k: v for k, v in raw.items() if k not in _VIOLATION_KEYS},
        )


@dataclass
class AnalysisResult:
    """Output of one accessibility analysis of the current page."""

    violations: list[Violation] = field(default_factory=list)
    passes: list[dict] = field(default_factory=list)
    incomplete: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class PageTestResult:
    """The recorded outcome of testing one crawled page."""

    url: str
    success: bool
    violations: list[Violation] = field(default_factory=list)
    passes: list[dict] = field(default_factory=list)
    incomplete: list[dict] = field(default_factory=list)
    browser_info: str = ""
    error: Optional[str] = None
    score: Optional[int] = None
    """Accessibility score 0-100, only set for successful tests."""

    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    """ISO-8601 UTC timestamp of the test."""
