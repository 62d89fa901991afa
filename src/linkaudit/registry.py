"""
Session-scoped registry of URLs already scheduled for checking.
"""
from __future__ import annotations

import threading
from typing import Set


class DedupRegistry:
    """Thread-safe set of normalized URLs."""

    def __init__(self) -> None:
        self._urls: Set[str] = set()
        self._lock = threading.Lock()

    def contains(self, url: str) -> bool:
        with self._lock:
            return url in self._urls

    def insert(self, url: str) -> bool:
        """Add ``url``; return True only if it was not already present."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.contains(url)

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)
