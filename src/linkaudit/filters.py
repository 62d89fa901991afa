"""
Exclusion filter deciding which normalized URLs are worth probing.
"""
from __future__ import annotations

from typing import Iterable, Tuple

from linkaudit.config import DEFAULT_EXCLUDE_PATTERNS
from linkaudit.urls import is_same_site


class ExclusionFilter:
    """Pattern and host-scope policy applied to every normalized URL."""

    def __init__(
        self,
        patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS,
        check_external: bool = False,
        include_subdomains: bool = False,
    ) -> None:
        self.patterns: Tuple[str, ...] = tuple(p.lower() for p in patterns if p)
        self.check_external = check_external
        self.include_subdomains = include_subdomains

    def matches_pattern(self, url: str) -> bool:
        """Check if any exclusion pattern occurs in ``url`` (case-insensitive)."""
        lowered = url.lower()
        return any(pattern in lowered for pattern in self.patterns)

    def is_checkable(self, url: str, site_url: str) -> bool:
        """
        Return True if ``url`` should be probed for a page on ``site_url``.

        URLs outside the site are excluded unless ``check_external`` is set.
        """
        if self.matches_pattern(url):
            return False
        if self.check_external:
            return True
        return is_same_site(url, site_url, include_subdomains=self.include_subdomains)
