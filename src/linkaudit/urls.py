"""
URL normalization and host-scope helpers.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from requests.utils import requote_uri

_ABSOLUTE_PREFIXES = ("http://", "https://")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _ascii_host(hostname: str) -> Optional[str]:
    """Lower-case ``hostname`` and convert non-ASCII labels to punycode."""
    hostname = hostname.lower()
    if hostname.isascii():
        return hostname
    try:
        return hostname.encode("idna").decode("ascii")
    except UnicodeError:
        return None


def _canonicalize(url: str) -> Optional[str]:
    """Return a canonical form of an absolute http(s) URL, or None if invalid."""
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        return None

    hostname = _ascii_host(parsed.hostname or "")
    if not hostname or any(ch.isspace() for ch in hostname):
        return None
    if ":" in hostname:
        hostname = f"[{hostname}]"

    # Normalize hostname and port
    if port is None or port == _DEFAULT_PORTS[scheme]:
        netloc = hostname
    else:
        netloc = f"{hostname}:{port}"
    if parsed.username is not None:
        userinfo = parsed.username
        if parsed.password is not None:
            userinfo = f"{userinfo}:{parsed.password}"
        netloc = f"{userinfo}@{netloc}"

    rebuilt = urlunsplit((
        scheme,
        netloc,
        parsed.path or "/",
        parsed.query,
        parsed.fragment,
    ))
    return requote_uri(rebuilt)


def normalize_url(href: Optional[str], base: str) -> Optional[str]:
    """
    Resolve a raw href found on ``base`` to a canonical absolute URL.

    - Root-relative hrefs (``/path``) are joined to the base's scheme and host
    - Absolute ``http://`` and ``https://`` hrefs are validated and canonicalized
    - Anything else (``//host``, ``#frag``, ``?q``, ``mailto:``, ``tel:``,
      ``javascript:``, ``data:``, relative paths, garbage) yields None

    Never raises; malformed input degrades to None.
    """
    if not href:
        return None
    href = href.strip()

    if href.startswith("//"):
        return None

    if href.startswith("/"):
        base_url = _canonicalize(base.strip()) if base else None
        if base_url is None:
            return None
        return _canonicalize(urljoin(base_url, href))

    if href.lower().startswith(_ABSOLUTE_PREFIXES):
        return _canonicalize(href)

    return None


def site_host(url: str) -> str:
    """Return the lower-cased ASCII host of ``url`` without a leading ``www.``."""
    try:
        hostname = _ascii_host(urlsplit(url).hostname or "")
    except ValueError:
        return ""
    if hostname is None:
        return ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def is_same_site(url: str, site_url: str, include_subdomains: bool = False) -> bool:
    """Check if ``url`` lives on the same site as ``site_url``."""
    host = site_host(url)
    root = site_host(site_url)
    if not host or not root:
        return False
    if host == root:
        return True
    return include_subdomains and host.endswith("." + root)
