"""
Seed and link sources: where crawl targets and their anchors come from.
"""
from __future__ import annotations

import logging
import random
from typing import List, Mapping, Optional, Protocol, Sequence, Union

import requests
from bs4 import BeautifulSoup, SoupStrainer

from linkaudit.errors import PageLoadError, SourceUnavailable
from linkaudit.models import LinkCandidate
from linkaudit.sampler import sample_links

logger = logging.getLogger(__name__)

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class SeedSource(Protocol):
    def seeds(self) -> List[str]:
        """Return the ordered list of seed page URLs."""
        ...


class LinkSource(Protocol):
    def links(self, page_url: str) -> List[LinkCandidate]:
        """Return the anchors found on ``page_url``; raise PageLoadError if it cannot be loaded."""
        ...


class StaticSeedSource:
    """A fixed, configured list of seed pages."""

    def __init__(self, urls: Sequence[str]) -> None:
        self._urls = [u.strip() for u in urls if u and u.strip()]

    def seeds(self) -> List[str]:
        if not self._urls:
            raise SourceUnavailable("No seed URLs configured")
        return list(self._urls)


def parse_sitemap(xml: Union[str, bytes]) -> tuple[List[str], List[str]]:
    """
    Parse sitemap XML.

    Returns ``(page_urls, nested_sitemap_urls)``; the second list is only
    populated for a ``<sitemapindex>`` document.
    """
    soup = BeautifulSoup(xml, "xml")
    if soup.find("urlset") is not None:
        return _locs(soup, "url"), []
    if soup.find("sitemapindex") is not None:
        return [], _locs(soup, "sitemap")
    raise SourceUnavailable("Document is neither a <urlset> nor a <sitemapindex>")


def _locs(soup: BeautifulSoup, entry_tag: str) -> List[str]:
    locs = []
    for entry in soup.find_all(entry_tag):
        loc = entry.find("loc")
        if loc is not None and loc.get_text(strip=True):
            locs.append(loc.get_text(strip=True))
    return locs


class SitemapSeedSource:
    """
    Seeds taken from the ``<loc>`` entries of a sitemap.

    A sitemap index is followed one level deep. With ``max_seeds`` set, a
    random sample of that many pages is returned.
    """

    def __init__(
        self,
        sitemap_url: str,
        timeout: float = 15.0,
        headers: Optional[Mapping[str, str]] = None,
        max_seeds: Optional[int] = None,
        rng: Optional[random.Random] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.sitemap_url = sitemap_url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self.max_seeds = max_seeds
        self.rng = rng
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        """Close the HTTP session unless it was passed in by the caller."""
        if self._owns_session:
            self.session.close()

    def _fetch(self, url: str) -> bytes:
        try:
            resp = self.session.get(url, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Could not fetch sitemap {url}: {exc}") from exc
        return resp.content

    def seeds(self) -> List[str]:
        pages, nested = parse_sitemap(self._fetch(self.sitemap_url))
        for child_url in nested:
            child_pages, _ = parse_sitemap(self._fetch(child_url))
            pages.extend(child_pages)

        # Preserve order while removing duplicates
        pages = [u for u in dict.fromkeys(pages) if u]
        if not pages:
            raise SourceUnavailable(f"Sitemap {self.sitemap_url} lists no pages")

        logger.info("Sitemap %s lists %d page(s)", self.sitemap_url, len(pages))
        return sample_links(pages, self.max_seeds, self.rng)


def extract_anchors(page_url: str, html: str) -> List[LinkCandidate]:
    """Extract all ``<a href>`` anchors with their visible text."""
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)
    candidates = []
    for a in soup.find_all("a", href=True):
        href = a.get("href")
        if not href:
            continue
        text = " ".join(a.get_text(" ", strip=True).split())
        candidates.append(LinkCandidate(source_page=page_url, raw_href=href, anchor_text=text))
    return candidates


class HtmlLinkSource:
    """Loads a page over HTTP and returns the anchors in its static HTML."""

    def __init__(
        self,
        timeout: float = 15.0,
        headers: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        """Close the HTTP session unless it was passed in by the caller."""
        if self._owns_session:
            self.session.close()

    def links(self, page_url: str) -> List[LinkCandidate]:
        try:
            resp = self.session.get(
                page_url, headers=self.headers, timeout=self.timeout, allow_redirects=True
            )
        except requests.RequestException as exc:
            raise PageLoadError(page_url, f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code >= 400:
            raise PageLoadError(page_url, f"HTTP {resp.status_code}")

        # Only parse HTML content
        content_type = (resp.headers.get("content-type") or "").lower()
        if not any(t in content_type for t in HTML_CONTENT_TYPES):
            logger.info("Skipping non-HTML page %s (%s)", page_url, content_type or "no content type")
            return []

        return extract_anchors(page_url, resp.text)
