"""Tests for the dedup registry and the link sampler."""

from __future__ import annotations

import random
import threading

import pytest

from linkaudit.registry import DedupRegistry
from linkaudit.sampler import sample_links


class TestDedupRegistry:
    def test_insert_same_url_twice_keeps_one(self) -> None:
        registry = DedupRegistry()
        assert registry.insert("https://example.com/a") is True
        assert registry.insert("https://example.com/a") is False
        assert len(registry) == 1

    def test_contains(self) -> None:
        registry = DedupRegistry()
        assert registry.contains("https://example.com/a") is False
        registry.insert("https://example.com/a")
        assert registry.contains("https://example.com/a") is True
        assert "https://example.com/a" in registry
        assert 42 not in registry

    def test_concurrent_inserts_report_each_url_once(self) -> None:
        registry = DedupRegistry()
        urls = [f"https://example.com/{i}" for i in range(200)]
        wins = []
        lock = threading.Lock()

        def worker() -> None:
            mine = sum(1 for url in urls if registry.insert(url))
            with lock:
                wins.append(mine)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(wins) == len(urls)
        assert len(registry) == len(urls)


class TestSampleLinks:
    def test_large_input_is_sampled_down(self) -> None:
        candidates = [f"https://example.com/{i}" for i in range(50)]
        picked = sample_links(candidates, 30, random.Random(1))
        assert len(picked) == 30
        assert len(set(picked)) == 30
        assert set(picked) <= set(candidates)

    def test_small_input_is_returned_unchanged(self) -> None:
        candidates = [f"https://example.com/{i}" for i in range(10)]
        assert sample_links(candidates, 30) == candidates

    def test_input_at_limit_is_unchanged(self) -> None:
        candidates = ["a", "b", "c"]
        assert sample_links(candidates, 3) == candidates

    def test_seeded_rng_is_reproducible(self) -> None:
        candidates = list(range(100))
        first = sample_links(candidates, 10, random.Random(42))
        second = sample_links(candidates, 10, random.Random(42))
        assert first == second

    def test_no_limit_returns_everything(self) -> None:
        candidates = list(range(100))
        assert sample_links(candidates, None) == candidates

    def test_zero_limit_returns_nothing(self) -> None:
        assert sample_links([1, 2, 3], 0) == []

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            sample_links([1, 2, 3], -1)
