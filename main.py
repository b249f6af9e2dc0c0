"""
main.py - Entry point for the authenticated accessibility tester.

Sets up the CLI, configures logging, builds the login configuration from
flags or a JSON auth-script, then drives :class:`~Tester.A11yTester` through
login, crawl and axe-core testing.  Handles SIGINT gracefully by stopping
between pages and saving partial results.

Usage::

    python main.py --url https://target.com [options]

See ``python main.py --help`` for full documentation.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from Analyzer import AxeAnalyzer
from Auth import load_login_config
from Models import DriverConnectionFailed, LoginConfig, LoginFailed
from Reporter import Reporter
from Spider.Spider import MAX_DEPTH
from Tester import A11yTester

logger = logging.getLogger(__name__)

EXIT_LOGIN_FAILED = 1
EXIT_DRIVER_FAILED = 2


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="a11y-tester",
        description="Authenticated accessibility crawler powered by Playwright and axe-core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=r"""
Examples
--------
  Public site, first 10 pages:
    python main.py --url https://target.com

  With form login (selectors detected automatically):
    python main.py --url https://target.com \
                   --login-url https://target.com/login \
                   --username alice --password 's3cret'

  With a JSON auth-script and WCAG AA rules only:
    python main.py --url https://target.com --auth-script auth.json \
                   --tags wcag2a wcag2aa

  Full example:
    python main.py --url https://target.com \
                   --auth-script auth.json \
                   --max-pages 25 --max-depth 2 --delay 0.5 \
                   --axe-script node_modules/axe-core/axe.min.js \
                   --browser firefox --no-headless \
                   --output a11y-report.json --verbose
        """,
    )

    # -- Target ----------------------------------------------------------------
    parser.add_argument(
        "--url",
        required=True,
        metavar="URL",
        help="Starting URL to crawl when no login is configured (required)",
    )

    # -- Authentication --------------------------------------------------------
    auth = parser.add_argument_group("authentication")
    auth.add_argument("--login-url", metavar="URL", help="URL of the login page")
    auth.add_argument("--username", metavar="USER", help="Login username or email")
    auth.add_argument("--password", metavar="PASS", help="Login password")
    auth.add_argument(
        "--username-selector",
        metavar="CSS",
        help="Selector for the username field (detected automatically if omitted)",
    )
    auth.add_argument(
        "--password-selector",
        metavar="CSS",
        help="Selector for the password field (detected automatically if omitted)",
    )
    auth.add_argument(
        "--submit-selector",
        metavar="CSS",
        help="Selector for the submit button (detected automatically if omitted)",
    )
    auth.add_argument(
        "--post-login-url",
        metavar="URL",
        help="Expected URL after login; also used as the crawl start",
    )
    auth.add_argument(
        "--auth-script",
        metavar="FILE",
        help="JSON file with login_url, username, password and optional selectors",
    )

    # -- Crawl limits ----------------------------------------------------------
    limits = parser.add_argument_group("crawl limits")
    limits.add_argument(
        "--max-pages",
        type=int,
        default=10,
        metavar="N",
        help="Maximum pages to test (default: 10)",
    )
    limits.add_argument(
        "--max-depth",
        type=int,
        default=MAX_DEPTH,
        choices=range(0, MAX_DEPTH + 1),
        metavar="N",
        help=f"Maximum link depth from the start page, 0-{MAX_DEPTH} (default: {MAX_DEPTH})",
    )
    limits.add_argument(
        "--delay",
        type=float,
        default=0.0,
        metavar="SECS",
        help="Delay in seconds between pages (default: 0)",
    )
    limits.add_argument(
        "--keep-query",
        action="store_true",
        help="Treat URLs that differ only by query string as distinct pages",
    )
    limits.add_argument(
        "--loose-filter",
        action="store_true",
        help="Also crawl admin, api, download and logout paths (may end the session)",
    )

    # -- Analysis --------------------------------------------------------------
    analysis = parser.add_argument_group("analysis")
    analysis.add_argument(
        "--axe-script",
        metavar="FILE",
        help="Local axe-core build to inject instead of the CDN copy",
    )
    analysis.add_argument(
        "--tags",
        nargs="+",
        metavar="TAG",
        default=[],
        help="Restrict axe rules to these tags (e.g. wcag2a wcag2aa best-practice)",
    )

    # -- Browser ---------------------------------------------------------------
    browser = parser.add_argument_group("browser")
    browser.add_argument(
        "--browser",
        default="chromium",
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine to launch (default: chromium)",
    )
    headless = browser.add_mutually_exclusive_group()
    headless.add_argument(
        "--headless",
        dest="headless",
        action="store_true",
        default=True,
        help="Run browser headlessly (default)",
    )
    headless.add_argument(
        "--no-headless",
        dest="headless",
        action="store_false",
        help="Show the browser UI (useful for debugging)",
    )
    browser.add_argument(
        "--cdp-endpoint",
        metavar="URL",
        help="Attach to a running Chromium over CDP instead of launching one",
    )

    # -- Output ----------------------------------------------------------------
    out = parser.add_argument_group("output")
    out.add_argument(
        "--output",
        default="a11y-report.json",
        metavar="FILE",
        help="JSON report output path (default: a11y-report.json)",
    )
    out.add_argument(
        "--verbose",
        action="store_true",
        help="Enable DEBUG-level logging",
    )

    return parser


# ---------------------------------------------------------------------------
# Login configuration
# ---------------------------------------------------------------------------


def build_login_config(
    args: argparse.Namespace, parser: argparse.ArgumentParser
) -> Optional[LoginConfig]:
    """Return the login configuration from ``--auth-script`` or the login flags.

    Exits through *parser* when the flags are incomplete or the auth-script
    cannot be loaded.
    """
    if args.auth_script:
        config = load_login_config(args.auth_script)
        if config is None:
            parser.error(f"could not load auth script {args.auth_script!r} (see log)")
        return config

    login_flags = (args.login_url, args.username, args.password)
    if not any(login_flags):
        return None
    if not all(login_flags):
        parser.error("--login-url, --username and --password must be given together")

    return LoginConfig(
        login_url=args.login_url,
        username=args.username,
        password=args.password,
        username_selector=args.username_selector,
        password_selector=args.password_selector,
        submit_selector=args.submit_selector,
        post_login_url=args.post_login_url,
    )


# ---------------------------------------------------------------------------
# Main async entry point
# ---------------------------------------------------------------------------


async def run(args: argparse.Namespace, login_config: Optional[LoginConfig]) -> int:
    """Orchestrate login, crawling, testing and reporting; return the exit code."""
    reporter = Reporter(output_file=args.output)
    reporter.print_banner()

    shutdown_event = asyncio.Event()

    # -- SIGINT handler --------------------------------------------------------
    def _on_sigint(*_) -> None:
        reporter.log_info(
            "[yellow]Ctrl-C received, saving partial results and exiting...[/yellow]"
        )
        shutdown_event.set()

    signal.signal(signal.SIGINT, _on_sigint)

    reporter.log_info(f"Target:      [bold cyan]{args.url}[/bold cyan]")
    reporter.log_info(f"Max pages:   {args.max_pages}   depth: {args.max_depth}")
    reporter.log_info(f"Browser:     {args.cdp_endpoint or args.browser}   delay: {args.delay}s")
    if login_config is not None:
        reporter.log_info(
            f"Login:       [bold cyan]{login_config.username}[/bold cyan] at {login_config.login_url}"
        )
    else:
        reporter.log_info("Login:       [yellow]None[/yellow]")
    if args.tags:
        reporter.log_info(f"Rule tags:   {', '.join(args.tags)}")

    tester = A11yTester(
        reporter=reporter,
        login_config=login_config,
        analyzer=AxeAnalyzer(script_path=args.axe_script, tags=args.tags),
        browser=args.browser,
        headless=args.headless,
        cdp_endpoint=args.cdp_endpoint,
        max_depth=args.max_depth,
        delay=args.delay,
        strip_query=not args.keep_query,
        strict_filtering=not args.loose_filter,
        shutdown_event=shutdown_event,
    )

    exit_code = 0
    try:
        async with tester:
            results = await tester.crawl_and_test(args.url, args.max_pages)
        reporter.log_info(f"Crawl complete, [bold]{len(results)}[/bold] page(s) tested.")
    except DriverConnectionFailed as exc:
        reporter.log_error(str(exc))
        return EXIT_DRIVER_FAILED
    except LoginFailed as exc:
        reporter.log_error(str(exc))
        exit_code = EXIT_LOGIN_FAILED

    # -- Persist and summarise -------------------------------------------------
    reporter.save()
    reporter.print_summary()
    return exit_code


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Parse arguments, configure logging, and run the async main loop."""
    parser = build_arg_parser()
    args = parser.parse_args()

    # -- Logging setup ---------------------------------------------------------
    log_level = logging.DEBUG if args.verbose else logging.ERROR
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Suppress noisy library logs unless in verbose mode
    if not args.verbose:
        for lib in ("playwright", "asyncio"):
            logging.getLogger(lib).setLevel(logging.WARNING)

    login_config = build_login_config(args, parser)

    try:
        sys.exit(asyncio.run(run(args, login_config)))
    except KeyboardInterrupt:
        # Second Ctrl-C while cleanup is running, exit immediately
        sys.exit(0)


if __name__ == "__main__":
    main()
