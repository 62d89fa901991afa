"""
Result aggregation, report rendering and the pass/fail verdict.
"""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Tuple

from linkaudit.models import CheckResult, Outcome


@dataclass(frozen=True, slots=True)
class PageFailure:
    """A seed page whose links could not be extracted."""
    page: str
    error: str


@dataclass(frozen=True, slots=True)
class CrawlReport:
    """Final, read-only outcome of a crawl session."""
    broken: Tuple[CheckResult, ...] = ()
    failed: Tuple[CheckResult, ...] = ()
    page_failures: Tuple[PageFailure, ...] = ()
    pages_visited: int = 0
    links_checked: int = 0
    timed_out: bool = False
    strict: bool = True
    fail_on_page_errors: bool = False

    @property
    def broken_count(self) -> int:
        return len(self.broken)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def is_clean(self) -> bool:
        """
        Verdict for the session.

        Broken links always fail it. In strict mode failed requests fail
        it too. Seed pages that could not be loaded only count when
        ``fail_on_page_errors`` is set.
        """
        if self.broken:
            return False
        if self.strict and self.failed:
            return False
        if self.fail_on_page_errors and self.page_failures:
            return False
        return True

    def render(self) -> str:
        """Render a plain-text report with one block per finding."""
        lines = [
            "=" * 50,
            "LINK CHECK REPORT",
            "=" * 50,
            f"Pages visited:    {self.pages_visited}",
            f"Links checked:    {self.links_checked}",
            f"Broken links:     {self.broken_count}",
            f"Failed requests:  {self.failed_count}",
        ]
        if self.page_failures:
            lines.append(f"Unloadable pages: {len(self.page_failures)}")
        if self.timed_out:
            lines.append("Session timed out; results are partial.")

        if self.broken:
            lines.extend(["", "Broken Links Found:"])
            for result in self.broken:
                lines.extend(["", format_finding(result)])

        if self.failed:
            lines.extend(["", "Failed Requests:"])
            for result in self.failed:
                lines.extend(["", format_finding(result)])

        if self.page_failures:
            lines.extend(["", "Pages Not Loaded:"])
            for failure in self.page_failures:
                lines.extend(["", f"- Page: {failure.page}\n  Error: {failure.error}"])

        lines.extend(["", f"Verdict: {'PASS' if self.is_clean else 'FAIL'}"])
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation."""
        return {
            "clean": self.is_clean,
            "strict": self.strict,
            "timed_out": self.timed_out,
            "pages_visited": self.pages_visited,
            "links_checked": self.links_checked,
            "broken": [_result_dict(r) for r in self.broken],
            "failed": [_result_dict(r) for r in self.failed],
            "page_failures": [asdict(f) for f in self.page_failures],
        }


def _result_dict(result: CheckResult) -> Dict[str, Any]:
    payload = asdict(result)
    payload["outcome"] = result.outcome.value
    return payload


def format_finding(result: CheckResult) -> str:
    """Format a broken or failed result as a four-line block."""
    if result.outcome is Outcome.BROKEN:
        detail = f"Status: {result.status}"
    elif result.outcome is Outcome.FAILED:
        detail = f"Error: {result.error}"
    else:
        raise ValueError(f"Not a finding: {result.outcome.value} result for {result.url}")
    return "\n".join((
        f"- Page: {result.source_page}",
        f"  Link: {result.raw_href}",
        f"  Text: {result.anchor_text}",
        f"  {detail}",
    ))


class ResultAggregator:
    """
    Collects check results from any number of worker threads.

    Once closed, further results are dropped so a report built at a
    session deadline is not changed by probes finishing late.
    """

    def __init__(self, strict: bool = True, fail_on_page_errors: bool = False) -> None:
        self.strict = strict
        self.fail_on_page_errors = fail_on_page_errors
        self._broken: List[CheckResult] = []
        self._failed: List[CheckResult] = []
        self._page_failures: List[PageFailure] = []
        self._pages_visited = 0
        self._links_checked = 0
        self._closed = False
        self._lock = threading.Lock()

    def record(self, result: CheckResult) -> bool:
        """Store ``result``; return False if the aggregator is already closed."""
        with self._lock:
            if self._closed:
                return False
            self._links_checked += 1
            if result.outcome is Outcome.BROKEN:
                self._broken.append(result)
            elif result.outcome is Outcome.FAILED:
                self._failed.append(result)
            return True

    def record_page(self) -> None:
        with self._lock:
            if not self._closed:
                self._pages_visited += 1

    def record_page_failure(self, page: str, error: str) -> None:
        with self._lock:
            if not self._closed:
                self._page_failures.append(PageFailure(page=page, error=error))

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def build_report(self, timed_out: bool = False) -> CrawlReport:
        with self._lock:
            return CrawlReport(
                broken=tuple(self._broken),
                failed=tuple(self._failed),
                page_failures=tuple(self._page_failures),
                pages_visited=self._pages_visited,
                links_checked=self._links_checked,
                timed_out=timed_out,
                strict=self.strict,
                fail_on_page_errors=self.fail_on_page_errors,
            )
