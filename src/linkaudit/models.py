"""
Data structures passed between the pipeline stages.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class Outcome(str, enum.Enum):
    """Terminal state of a single link check."""

    OK = "ok"
    BROKEN = "broken"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class LinkCandidate:
    """An anchor found on a page, before normalization."""
    source_page: str
    raw_href: str
    anchor_text: str = ""


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of probing one URL discovered on ``source_page``."""
    source_page: str
    url: str
    raw_href: str
    anchor_text: str
    outcome: Outcome
    status: Optional[int] = None
    error: Optional[str] = None
    method: Optional[str] = None

    @classmethod
    def ok(cls, candidate: LinkCandidate, url: str, status: int, method: str) -> CheckResult:
        return cls(candidate.source_page, url, candidate.raw_href, candidate.anchor_text,
                   Outcome.OK, status=status, method=method)

    @classmethod
    def broken(cls, candidate: LinkCandidate, url: str, status: int, method: str) -> CheckResult:
        return cls(candidate.source_page, url, candidate.raw_href, candidate.anchor_text,
                   Outcome.BROKEN, status=status, method=method)

    @classmethod
    def failed(cls, candidate: LinkCandidate, url: str, error: str) -> CheckResult:
        return cls(candidate.source_page, url, candidate.raw_href, candidate.anchor_text,
                   Outcome.FAILED, error=error)
