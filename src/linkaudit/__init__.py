"""
Link health checker: samples the links on a set of seed pages, probes them
under rate limits and reports broken links and failed requests.
"""
from linkaudit.config import CheckerConfig, DedupScope, StatusPolicy
from linkaudit.errors import LinkAuditError, PageLoadError, SourceUnavailable
from linkaudit.models import CheckResult, LinkCandidate, Outcome
from linkaudit.report import CrawlReport
from linkaudit.session import CrawlSession, check_links

__version__ = "1.0.0"
__all__ = [
    "check_links",
    "CrawlSession",
    "CrawlReport",
    "CheckerConfig",
    "DedupScope",
    "StatusPolicy",
    "CheckResult",
    "LinkCandidate",
    "Outcome",
    "LinkAuditError",
    "PageLoadError",
    "SourceUnavailable",
]
