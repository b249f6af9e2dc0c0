"""
Reporter/Reporter.py - Live console output and JSON report generation.

Provides the :class:`Reporter` used by all other modules to log page results
and status messages, and to produce the final summary and report file.
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from Analyzer import accessibility_grade
from Models import LoginConfig, PageTestResult

logger = logging.getLogger(__name__)

# Single shared console instance (stdout)
console = Console()

_IMPACTS = ("critical", "serious", "moderate", "minor")
_IMPACT_STYLES = {
    "critical": "bold red",
    "serious": "red",
    "moderate": "yellow",
    "minor": "cyan",
}

#: Number of most frequently violated rules listed in the summary.
TOP_VIOLATIONS = 5


class Reporter:
    """Collects page results and drives all user-visible output.

    Responsibilities:
    - Live rich-formatted one-liner per tested page
    - Informational / error logging helpers
    - Final JSON report persistence
    - End-of-run summary table
    """

    def __init__(self, output_file: str) -> None:
        self.output_file: str = output_file
        self.results: list[PageTestResult] = []
        self.login_used: bool = False
        self.login_config: Optional[LoginConfig] = None

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------

    def print_banner(self) -> None:
        """Print the tool banner to the console."""
        console.print(
            Panel(
                "[bold cyan]A11y Tester[/bold cyan]  |  Authenticated accessibility crawler\n"
                "[dim]Logs in, crawls the application and runs axe-core on every page.[/dim]",
                expand=False,
                style="bold white on black",
            )
        )

    def log_result(self, result: PageTestResult) -> None:
        """Record *result* and print a one-liner to the console."""
        self.results.append(result)
        if not result.success:
            console.print(
                f"[bold red on black] FAIL [/bold red on black] "
                f"[cyan]{escape(result.url)}[/cyan]  [red]{escape(str(result.error))}[/red]"
            )
            return

        grade = accessibility_grade(result.score if result.score is not None else 0)
        counts = Counter(v.impact or "unknown" for v in result.violations)
        breakdown = "  ".join(
            f"[{_IMPACT_STYLES[impact]}]{impact}={counts[impact]}[/{_IMPACT_STYLES[impact]}]"
            for impact in _IMPACTS
            if counts[impact]
        )
        console.print(
            f"[bold green on black]  OK  [/bold green on black] "
            f"[cyan]{escape(result.url)}[/cyan]  "
            f"score=[{grade.color}]{result.score} ({grade.grade})[/{grade.color}]  "
            f"violations=[yellow]{len(result.violations)}[/yellow]"
            + (f"  {breakdown}" if breakdown else "")
        )

    def log_info(self, message: str) -> None:
        """Print a standard informational message (supports Rich markup)."""
        console.print(f"[dim]\\[*][/dim] {message}")

    def log_error(self, message: str) -> None:
        """Print an error message (supports Rich markup)."""
        console.print(f"[bold red]\\[!][/bold red] {message}")

    # ------------------------------------------------------------------
    # Report document
    # ------------------------------------------------------------------

    @staticmethod
    def build_report(
        results: Iterable[PageTestResult],
        login_used: bool,
        login_config: Optional[LoginConfig] = None,
    ) -> dict[str, Any]:
        """Build the JSON-serialisable report document.

        The password is never written; only the login URL, username and
        post-login URL are recorded.
        """
        results = list(results)
        tested = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        impact_totals = Counter(
            v.impact or "unknown" for r in tested for v in r.violations
        )
        scores = [r.score for r in tested if r.score is not None]
        overall = round(sum(scores) / len(scores)) if scores else None
        grade = accessibility_grade(overall) if overall is not None else None

        login: dict[str, Any] = {"used": login_used}
        if login_used and login_config is not None:
            login.update(
                login_url=login_config.login_url,
                username=login_config.username,
                post_login_url=login_config.post_login_url,
            )

        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "pages_tested": len(results),
                "pages_succeeded": len(tested),
                "pages_failed": len(failed),
                "total_violations": sum(len(r.violations) for r in tested),
                "violations_by_impact": {
                    impact: impact_totals.get(impact, 0) for impact in (*_IMPACTS, "unknown")
                },
                "overall_score": overall,
                "grade": grade.grade if grade else None,
                "grade_description": grade.description if grade else None,
            },
            "login": login,
            "results": [_result_entry(r) for r in results],
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Serialise all recorded results to the JSON report file."""
        data = self.build_report(self.results, self.login_used, self.login_config)
        try:
            Path(self.output_file).write_text(json.dumps(data, indent=2))
            console.print(f"\n[green]\\[+][/green] Report saved: [bold]{escape(self.output_file)}[/bold]")
        except OSError as exc:
            console.print(f"[red]\\[!][/red] Failed to save report: {escape(str(exc))}")

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def print_summary(self) -> None:
        """Print an end-of-run summary table and the most violated rules."""
        summary = self.build_report(self.results, self.login_used, self.login_config)["summary"]

        table = Table(title="Scan Summary", box=box.ROUNDED, show_header=True)
        table.add_column("Metric", style="bold cyan", min_width=22)
        table.add_column("Value", style="white", justify="right")

        table.add_row("Login", "yes" if self.login_used else "no")
        table.add_row("Pages tested", str(summary["pages_tested"]))
        table.add_row("Pages failed", str(summary["pages_failed"]))

        total = summary["total_violations"]
        style = "bold red" if total else "bold green"
        table.add_row("Violations", f"[{style}]{total}[/{style}]")
        for impact in _IMPACTS:
            count = summary["violations_by_impact"][impact]
            if count:
                table.add_row(f"  {impact}", f"[{_IMPACT_STYLES[impact]}]{count}[/{_IMPACT_STYLES[impact]}]")

        if summary["overall_score"] is not None:
            table.add_row(
                "Overall score",
                f"{summary['overall_score']} ({summary['grade']}, {summary['grade_description']})",
            )

        console.print()
        console.print(table)

        top = self.top_violations()
        if top:
            rules = Table(title="Most Violated Rules", box=box.SIMPLE, show_header=True)
            rules.add_column("Rule", style="yellow")
            rules.add_column("Pages", justify="right")
            for rule_id, count in top:
                rules.add_row(escape(rule_id), str(count))
            console.print(rules)

    def top_violations(self, limit: int = TOP_VIOLATIONS) -> list[tuple[str, int]]:
        """Return ``(rule id, page count)`` for the most frequently violated rules."""
        counts = Counter(
            rule_id
            for r in self.results
            if r.success
            for rule_id in {v.id for v in r.violations}
        )
        return counts.most_common(limit)


def _result_entry(result: PageTestResult) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "url": result.url,
        "success": result.success,
        "timestamp": result.timestamp,
        "browser_info": result.browser_info,
    }
    if not result.success:
        entry["error"] = result.error
        return entry

    grade = accessibility_grade(result.score) if result.score is not None else None
    entry.update(
        score=result.score,
        grade=grade.grade if grade else None,
        violation_count=len(result.violations),
        passes=len(result.passes),
        incomplete=len(result.incomplete),
        violations=[
            {
                "id": v.id,
                "impact": v.impact,
                "description": v.description,
                "help_url": v.help_url,
                "nodes": len(v.nodes),
            }
            for v in result.violations
        ],
    )
    return entry
