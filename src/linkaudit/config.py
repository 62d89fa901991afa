"""
Runtime configuration for a link-audit session.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

# Case-insensitive substrings that make a URL not worth checking
DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    "#", "mailto:", "tel:", "javascript:", "data:",
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg",
    ".mp4", ".webm", ".mp3", ".wav",
    "localhost", "chrome-extension://", "about:",
)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LinkAudit/1.0)"


class DedupScope(str, enum.Enum):
    """How long a URL stays remembered once it has been scheduled."""

    SESSION = "session"
    PAGE = "page"


@dataclass(frozen=True, slots=True)
class StatusPolicy:
    """Decides which HTTP statuses count as a broken link."""

    broken_statuses: FrozenSet[int] = frozenset({404})
    any_error: bool = False

    def is_broken(self, status: int) -> bool:
        if status < 400:
            return False
        return self.any_error or status in self.broken_statuses


@dataclass(slots=True)
class CheckerConfig:
    """All knobs for one crawl session. Defaults suit a bounded QA run."""

    max_links_per_page: Optional[int] = 30
    probe_timeout: float = 15.0
    session_timeout: float = 120.0
    delay: float = 0.2
    workers: int = 1
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: Dict[str, str] = field(default_factory=dict)
    exclude_patterns: Tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    check_external: bool = False
    include_subdomains: bool = False
    dedup_scope: DedupScope = DedupScope.SESSION
    status_policy: StatusPolicy = field(default_factory=StatusPolicy)
    strict: bool = True
    fail_on_page_errors: bool = False
    retries: int = 0
    retry_backoff: float = 0.5
    random_seed: Optional[int] = None

    def validate(self) -> None:
        """Raise ValueError for settings a session cannot run with."""
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        if self.session_timeout <= 0:
            raise ValueError("session_timeout must be positive")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")
        if self.retries < 0:
            raise ValueError("retries must not be negative")
        if self.max_links_per_page is not None and self.max_links_per_page < 0:
            raise ValueError("max_links_per_page must not be negative")

    @property
    def headers(self) -> Dict[str, str]:
        """Request headers sent with every page load and probe."""
        headers = {"User-Agent": self.user_agent, "Accept": "*/*"}
        headers.update(self.extra_headers)
        return headers
