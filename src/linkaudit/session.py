"""
Crawl session: drives seeds through extraction, selection and probing.
"""
from __future__ import annotations

import logging
import random
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence, Tuple, Union

from linkaudit.config import CheckerConfig, DedupScope
from linkaudit.errors import PageLoadError
from linkaudit.filters import ExclusionFilter
from linkaudit.models import CheckResult, LinkCandidate, Outcome
from linkaudit.prober import LinkProber, describe_error
from linkaudit.registry import DedupRegistry
from linkaudit.report import CrawlReport, ResultAggregator
from linkaudit.sampler import sample_links
from linkaudit.sources import HtmlLinkSource, LinkSource, SeedSource
from linkaudit.urls import normalize_url

logger = logging.getLogger(__name__)


class CrawlSession:
    """
    One link-audit run over a list of seed pages.

    The session owns the dedup registry and the result aggregator; both
    live exactly as long as the session object. Pages are loaded one after
    another in the calling thread, probes run on a bounded thread pool.
    """

    def __init__(
        self,
        config: Optional[CheckerConfig] = None,
        link_source: Optional[LinkSource] = None,
        prober: Optional[LinkProber] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CheckerConfig()
        self.config.validate()
        # Components built here are closed by the session, injected ones are not
        self._owned: List[Union[HtmlLinkSource, LinkProber]] = []
        if link_source is None:
            link_source = HtmlLinkSource(timeout=self.config.probe_timeout, headers=self.config.headers)
            self._owned.append(link_source)
        if prober is None:
            prober = LinkProber.from_config(self.config)
            self._owned.append(prober)
        self.link_source = link_source
        self.prober = prober
        self.filter = ExclusionFilter(
            self.config.exclude_patterns,
            check_external=self.config.check_external,
            include_subdomains=self.config.include_subdomains,
        )
        self.registry = DedupRegistry()
        self.aggregator = ResultAggregator(
            strict=self.config.strict, fail_on_page_errors=self.config.fail_on_page_errors
        )
        self.rng = rng or random.Random(self.config.random_seed)
        self._clock = clock

    def close(self) -> None:
        """Release the HTTP sessions of the link source and prober it created."""
        owned, self._owned = self._owned, []
        for component in owned:
            component.close()

    def _registry_for_page(self) -> DedupRegistry:
        if self.config.dedup_scope is DedupScope.PAGE:
            return DedupRegistry()
        return self.registry

    def select_links(
        self,
        page_url: str,
        candidates: Sequence[LinkCandidate],
        registry: Optional[DedupRegistry] = None,
    ) -> List[Tuple[LinkCandidate, str]]:
        """
        Turn a page's anchors into the ``(candidate, url)`` pairs to probe.

        Anchors are normalized, filtered and deduplicated, then sampled
        down to ``max_links_per_page``. Only sampled URLs are inserted
        into the registry, so a URL left out here may still be picked
        from a later page.
        """
        registry = registry if registry is not None else self.registry
        pending = {}
        for candidate in candidates:
            url = normalize_url(candidate.raw_href, page_url)
            if url is None:
                continue
            if not self.filter.is_checkable(url, page_url):
                continue
            if url in pending or registry.contains(url):
                continue
            pending[url] = candidate

        chosen = sample_links(list(pending.items()), self.config.max_links_per_page, self.rng)
        return [(candidate, url) for url, candidate in chosen if registry.insert(url)]

    def _check(self, candidate: LinkCandidate, url: str) -> CheckResult:
        try:
            result = self.prober.probe(candidate, url)
        except Exception as exc:  # a single probe never aborts the session
            logger.exception("Unexpected error while checking %s", url)
            result = CheckResult.failed(candidate, url, describe_error(exc))

        if self.aggregator.record(result):
            if result.outcome is Outcome.BROKEN:
                logger.warning("Broken link on %s: %s (%s)", result.source_page, url, result.status)
            elif result.outcome is Outcome.FAILED:
                logger.warning("Failed to check %s on %s: %s", url, result.source_page, result.error)
        return result

    def run(self, seeds: Sequence[str]) -> CrawlReport:
        """
        Check the links on every seed page and build the report.

        When ``session_timeout`` expires, queued probes are cancelled and
        the report is built from the results gathered so far. Checks that
        are already running are not interrupted; they end at their own
        ``probe_timeout`` and their results are discarded.
        """
        deadline = self._clock() + self.config.session_timeout
        futures: List[Future] = []
        timed_out = False

        executor = ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="linkaudit-probe"
        )
        try:
            for page_url in seeds:
                if self._clock() >= deadline:
                    timed_out = True
                    break

                try:
                    candidates = self.link_source.links(page_url)
                except PageLoadError as exc:
                    logger.warning("Failed to process page %s: %s", page_url, exc.reason)
                    self.aggregator.record_page_failure(page_url, exc.reason)
                    continue

                self.aggregator.record_page()
                selected = self.select_links(page_url, candidates, self._registry_for_page())
                logger.info(
                    "Found %d link(s) on %s, checking %d", len(candidates), page_url, len(selected)
                )
                for candidate, url in selected:
                    futures.append(executor.submit(self._check, candidate, url))

            if not timed_out:
                # Completion barrier: every probe finishes or the deadline passes
                _, not_done = wait(futures, timeout=max(0.0, deadline - self._clock()))
                timed_out = bool(not_done)
        finally:
            if timed_out:
                self.aggregator.close()
            executor.shutdown(wait=not timed_out, cancel_futures=True)
            self.close()

        if timed_out:
            logger.warning(
                "Session timed out after %.1fs; reporting partial results",
                self.config.session_timeout,
            )
        return self.aggregator.build_report(timed_out=timed_out)


def check_links(
    seed_source: SeedSource,
    config: Optional[CheckerConfig] = None,
    link_source: Optional[LinkSource] = None,
    prober: Optional[LinkProber] = None,
) -> CrawlReport:
    """
    Run a complete link audit.

    Args:
        seed_source: Produces the seed pages. Raises SourceUnavailable when
                     it cannot, which aborts the audit before any probing.
        config: Session settings; defaults to ``CheckerConfig()``.
        link_source: Extracts anchors from a page; defaults to HtmlLinkSource.
        prober: Checks single URLs; defaults to a LinkProber built from config.

    Returns:
        The final CrawlReport.
    """
    seeds = seed_source.seeds()
    session = CrawlSession(config=config, link_source=link_source, prober=prober)
    return session.run(seeds)
