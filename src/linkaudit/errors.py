"""
Exception taxonomy for link auditing.

Per-URL problems never surface as exceptions: normalization failures are
dropped, network and HTTP errors become check results. Only the errors
below cross module boundaries.
"""
from __future__ import annotations


class LinkAuditError(Exception):
    """Base class for all linkaudit errors."""


class SourceUnavailable(LinkAuditError):
    """The seed source could not be retrieved or parsed. Fatal for a session."""


class PageLoadError(LinkAuditError):
    """A seed page could not be loaded for link extraction."""

    def __init__(self, page_url: str, reason: str) -> None:
        super().__init__(f"{page_url}: {reason}")
        self.page_url = page_url
        self.reason = reason
