"""
Command-line interface for the link checker.
"""
from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional

from linkaudit.config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_USER_AGENT, CheckerConfig, DedupScope, StatusPolicy
from linkaudit.errors import SourceUnavailable
from linkaudit.report import CrawlReport
from linkaudit.session import check_links
from linkaudit.sources import SitemapSeedSource, StaticSeedSource

EXIT_CLEAN = 0
EXIT_DIRTY = 1
EXIT_NO_SOURCE = 2


def print_summary(report: CrawlReport) -> None:
    """Print check summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("LINK CHECK SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Pages visited:      {report.pages_visited}\n")
    sys.stderr.write(f"Links checked:      {report.links_checked}\n")
    sys.stderr.write(f"Broken links:       {report.broken_count}\n")
    sys.stderr.write(f"Failed requests:    {report.failed_count}\n")
    if report.page_failures:
        sys.stderr.write(f"Unloadable pages:   {len(report.page_failures)}\n")
    if report.timed_out:
        sys.stderr.write("Session timed out before all links were checked.\n")

    sys.stderr.write("\n")


def parse_header(value: str) -> tuple[str, str]:
    """Parse a ``Name: value`` header argument."""
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got {value!r}")
    return name.strip(), header_value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkaudit",
        description="Check the links on a set of seed pages and report broken links.",
    )
    parser.add_argument("seeds", nargs="*", help="Seed page URLs (e.g. https://example.com/)")
    parser.add_argument("--sitemap", help="Read seed pages from this sitemap.xml URL instead")
    parser.add_argument("--max-seeds", type=int, help="Randomly sample this many sitemap pages")
    parser.add_argument("--max-links", type=int, default=30, help="Maximum links checked per page (default: 30)")
    parser.add_argument("--no-link-limit", action="store_true", help="Check every selected link on each page")
    parser.add_argument("--timeout", type=float, default=15.0, help="Per-request timeout in seconds (default: 15)")
    parser.add_argument("--session-timeout", type=float, default=120.0,
                        help="Whole-run timeout in seconds (default: 120). Link checks still in flight at the "
                             "deadline are abandoned but keep running until --timeout expires, "
                             "so the process may exit up to that much later")
    parser.add_argument("--delay", type=float, default=0.2, help="Minimum seconds between requests to one host (default: 0.2)")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent probes (default: 1, sequential)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--header", action="append", type=parse_header, default=[], metavar="NAME:VALUE",
                        help="Extra request header (repeatable)")
    parser.add_argument("--check-external", action="store_true", help="Also check links to other hosts")
    parser.add_argument("--include-subdomains", action="store_true", help="Treat subdomains as part of the site")
    parser.add_argument("--exclude", action="append", default=[], metavar="PATTERN",
                        help="Extra case-insensitive substring to skip (repeatable)")
    parser.add_argument("--no-default-excludes", action="store_true", help="Drop the built-in exclusion patterns")
    parser.add_argument("--dedup-scope", choices=[s.value for s in DedupScope], default=DedupScope.SESSION.value,
                        help="Remember checked URLs for the whole run or per page (default: session)")
    parser.add_argument("--broken-status", action="append", type=int, default=[], metavar="CODE",
                        help="Status counted as broken (repeatable, default: 404)")
    parser.add_argument("--any-error", action="store_true", help="Count every status >= 400 as broken")
    parser.add_argument("--lenient", action="store_true", help="Do not fail the run on failed requests alone")
    parser.add_argument("--fail-on-page-errors", action="store_true",
                        help="Also fail the run when a seed page cannot be loaded")
    parser.add_argument("--retries", type=int, default=0, help="Retries for network errors and 429/502/503/504 (default: 0)")
    parser.add_argument("--retry-backoff", type=float, default=0.5, help="Base seconds for exponential backoff (default: 0.5)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible link sampling")
    parser.add_argument("--out", help="Also write the report as JSON to this path, or '-' for stdout")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    return parser


def config_from_args(args: argparse.Namespace) -> CheckerConfig:
    """Build a CheckerConfig from parsed command-line arguments."""
    patterns = () if args.no_default_excludes else DEFAULT_EXCLUDE_PATTERNS
    patterns = tuple(patterns) + tuple(args.exclude)
    headers: Dict[str, str] = dict(args.header)

    policy = StatusPolicy(
        broken_statuses=frozenset(args.broken_status or (404,)),
        any_error=args.any_error,
    )
    return CheckerConfig(
        max_links_per_page=None if args.no_link_limit else args.max_links,
        probe_timeout=args.timeout,
        session_timeout=args.session_timeout,
        delay=args.delay,
        workers=args.workers,
        user_agent=args.user_agent,
        extra_headers=headers,
        exclude_patterns=patterns,
        check_external=args.check_external,
        include_subdomains=args.include_subdomains,
        dedup_scope=DedupScope(args.dedup_scope),
        status_policy=policy,
        strict=not args.lenient,
        fail_on_page_errors=args.fail_on_page_errors,
        retries=args.retries,
        retry_backoff=args.retry_backoff,
        random_seed=args.seed,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the link checker CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if bool(args.seeds) == bool(args.sitemap):
        parser.error("give either seed URLs or --sitemap, not both")

    if args.max_seeds is not None:
        if not args.sitemap:
            parser.error("--max-seeds only applies together with --sitemap")
        if args.max_seeds < 1:
            parser.error("--max-seeds must be at least 1")

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    if args.sitemap:
        seed_source = SitemapSeedSource(
            args.sitemap,
            timeout=config.probe_timeout,
            headers=config.headers,
            max_seeds=args.max_seeds,
            rng=random.Random(args.seed),
        )
    else:
        seed_source = StaticSeedSource(args.seeds)

    try:
        report = check_links(seed_source, config=config)
    except SourceUnavailable as exc:
        sys.stderr.write(f"Seed source unavailable: {exc}\n")
        return EXIT_NO_SOURCE
    finally:
        if isinstance(seed_source, SitemapSeedSource):
            seed_source.close()

    print(report.render())

    # Print summary if verbose
    if args.verbose:
        print_summary(report)

    if args.out:
        json_text = json.dumps(report.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None)
        if args.out == "-":
            print(json_text)
        else:
            output_path = Path(args.out)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(json_text, encoding="utf-8")
            if args.verbose:
                sys.stderr.write(f"Results written to: {output_path}\n")

    return EXIT_CLEAN if report.is_clean else EXIT_DIRTY


if __name__ == "__main__":
    raise SystemExit(main())
