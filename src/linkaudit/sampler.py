"""
Bounded sampling of per-page link candidates.
"""
from __future__ import annotations

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def sample_links(
    candidates: Sequence[T],
    max_count: Optional[int],
    rng: Optional[random.Random] = None,
) -> List[T]:
    """
    Return at most ``max_count`` items from ``candidates``.

    Inputs at or under the limit come back unchanged and in order. Larger
    inputs yield a uniformly random subset drawn without replacement from
    ``rng`` (pass a seeded ``random.Random`` for reproducible runs).
    A ``max_count`` of None disables the limit.
    """
    if max_count is not None and max_count < 0:
        raise ValueError("max_count must not be negative")
    if max_count is None or len(candidates) <= max_count:
        return list(candidates)
    rng = rng or random.Random()
    return rng.sample(list(candidates), max_count)
