"""
Reachability probing for individual links.

A probe prefers a HEAD request and falls back to a streamed GET when the
target does not support HEAD. Results are classified into ok, broken and
failed; no per-URL error escapes ``LinkProber.probe``.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urlsplit

import requests

from linkaudit.config import CheckerConfig, StatusPolicy
from linkaudit.models import CheckResult, LinkCandidate

logger = logging.getLogger(__name__)

# Statuses meaning "HEAD is not supported here, ask again with GET"
HEAD_UNSUPPORTED: frozenset[int] = frozenset((405, 501))

# Throttling / transient statuses worth another attempt when retries are enabled
RETRY_STATUSES: frozenset[int] = frozenset((429, 502, 503, 504))


class ProbeTransport(Protocol):
    def check(self, url: str, timeout: float, headers: Mapping[str, str]) -> Tuple[int, str]:
        """Return ``(status, method)``; raise ``requests.RequestException`` on network failure."""
        ...


class RequestsTransport:
    """
    HEAD-then-GET transport backed by ``requests``.

    One ``requests.Session`` per thread, since sessions are not thread-safe.
    ``close()`` releases the pooled connections of every session created.
    """

    def __init__(self) -> None:
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def check(self, url: str, timeout: float, headers: Mapping[str, str]) -> Tuple[int, str]:
        session = self._session()
        try:
            resp = session.head(url, headers=dict(headers), timeout=timeout, allow_redirects=True)
            if resp.status_code not in HEAD_UNSUPPORTED:
                return resp.status_code, "HEAD"
            logger.debug("HEAD not supported for %s (%s), retrying with GET", url, resp.status_code)
        except (requests.Timeout, requests.ConnectionError):
            raise
        except requests.RequestException as exc:
            logger.debug("HEAD failed for %s (%s), retrying with GET", url, exc)

        # Stream so the body is never downloaded
        with session.get(
            url, headers=dict(headers), timeout=timeout, allow_redirects=True, stream=True
        ) as resp:
            return resp.status_code, "GET"


class RateLimiter:
    """
    Per-host politeness delay for link checks.

    Every probe waits here before its request, so links on one site are
    spaced at least ``delay`` seconds apart however many workers run.
    Hosts are keyed by netloc; links to different hosts do not wait on
    each other.
    """

    def __init__(
        self,
        min_interval_s: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_allowed_by_host: Dict[str, float] = {}

    def wait(self, url: str) -> None:
        if self._min_interval_s <= 0:
            return
        try:
            host = urlsplit(url).netloc.lower()
        except ValueError:
            host = ""

        while True:
            with self._lock:
                now = self._clock()
                next_allowed = self._next_allowed_by_host.get(host, now)
                if now >= next_allowed:
                    self._next_allowed_by_host[host] = now + self._min_interval_s
                    return
                sleep_for = next_allowed - now
            self._sleep(min(sleep_for, self._min_interval_s))


def describe_error(exc: BaseException) -> str:
    """Render an exception as ``Type: message`` for reports."""
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class LinkProber:
    """Checks one URL at a time and classifies the outcome."""

    def __init__(
        self,
        transport: Optional[ProbeTransport] = None,
        timeout: float = 15.0,
        headers: Optional[Mapping[str, str]] = None,
        status_policy: Optional[StatusPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retries: int = 0,
        retry_backoff: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport or RequestsTransport()
        self.timeout = timeout
        self.headers: Dict[str, str] = dict(headers or {})
        self.status_policy = status_policy or StatusPolicy()
        self.rate_limiter = rate_limiter
        self.retries = max(0, int(retries))
        self.retry_backoff = max(0.0, float(retry_backoff))
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: CheckerConfig,
        transport: Optional[ProbeTransport] = None,
    ) -> LinkProber:
        rate_limiter = RateLimiter(config.delay) if config.delay > 0 else None
        return cls(
            transport=transport,
            timeout=config.probe_timeout,
            headers=config.headers,
            status_policy=config.status_policy,
            rate_limiter=rate_limiter,
            retries=config.retries,
            retry_backoff=config.retry_backoff,
        )

    def close(self) -> None:
        """Release the transport's connections, if it holds any."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    def _backoff(self, attempt: int) -> None:
        self._sleep(self.retry_backoff * (2 ** attempt))

    def probe(self, candidate: LinkCandidate, url: str) -> CheckResult:
        """
        Check ``url`` (the normalized form of ``candidate.raw_href``).

        Returns a broken result for statuses the policy flags, a failed
        result when the request could not complete, and ok otherwise.
        """
        attempt = 0
        while True:
            if self.rate_limiter is not None:
                self.rate_limiter.wait(url)

            try:
                status, method = self.transport.check(url, self.timeout, self.headers)
            except requests.RequestException as exc:
                if attempt < self.retries:
                    logger.debug("Retrying %s after %s", url, exc)
                    self._backoff(attempt)
                    attempt += 1
                    continue
                return CheckResult.failed(candidate, url, describe_error(exc))

            if status in RETRY_STATUSES and attempt < self.retries:
                logger.debug("Retrying %s after HTTP %s", url, status)
                self._backoff(attempt)
                attempt += 1
                continue

            if self.status_policy.is_broken(status):
                return CheckResult.broken(candidate, url, status, method)
            return CheckResult.ok(candidate, url, status, method)
