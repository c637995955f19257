"""Replacement policy implementations for the cache engine.

Each policy works over the blocks of one set and offers the same small API so
the cache can call them interchangeably:

- select_victim(blocks): index of the way to evict from a full set
- order(blocks): valid ways in eviction order, first = next victim (for UI/debug)
- reset(): clear any policy-private state

LRU and FIFO keep no private state: they read the recency stamp
(`last_access`) and insertion sequence (`inserted`) stored on each block.
Random draws from an injectable random.Random so runs can be reproduced.

The policy object is chosen once, when the cache is configured.
"""

import random
from typing import List, Optional, Sequence

from cachesim.core.config import ReplacementKind


def _valid_ways(blocks) -> List[int]:
    return [i for i, b in enumerate(blocks) if b.valid]


def first_invalid(blocks) -> Optional[int]:
    """Lowest-index free way, or None if the set is full."""
    for i, b in enumerate(blocks):
        if not b.valid:
            return i
    return None


class ReplacementPolicy:
    name = "?"

    def select_victim(self, blocks: Sequence) -> int:
        raise NotImplementedError

    def order(self, blocks: Sequence) -> List[int]:
        raise NotImplementedError

    def reset(self) -> None:
        pass

    def choose_slot(self, blocks: Sequence) -> int:
        """Destination way for an install: free way first, else a victim."""
        free = first_invalid(blocks)
        if free is not None:
            return free
        return self.select_victim(blocks)

    def __repr__(self):
        return f"{type(self).__name__}()"


class LRUReplacement(ReplacementPolicy):
    """Least-Recently-Used: evict the smallest recency stamp.

    Ties go to the lowest way index (min() keeps the first minimum).
    """

    name = "LRU"

    def select_victim(self, blocks):
        return min(_valid_ways(blocks), key=lambda i: blocks[i].last_access)

    def order(self, blocks):
        return sorted(_valid_ways(blocks), key=lambda i: (blocks[i].last_access, i))


class FIFOReplacement(ReplacementPolicy):
    """First-In-First-Out: evict the oldest insertion, hits do not reorder."""

    name = "FIFO"

    def select_victim(self, blocks):
        return min(_valid_ways(blocks), key=lambda i: blocks[i].inserted)

    def order(self, blocks):
        return sorted(_valid_ways(blocks), key=lambda i: (blocks[i].inserted, i))


class RandomReplacement(ReplacementPolicy):
    """Random replacement picks uniformly among occupied ways."""

    name = "RANDOM"

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.seed = seed
        self.rng = rng if rng is not None else random.Random(seed)

    def select_victim(self, blocks):
        return self.rng.choice(_valid_ways(blocks))

    def order(self, blocks):
        # no meaningful order; show the occupied ways
        return _valid_ways(blocks)

    def reset(self):
        # replay the same victim sequence after a reset when a seed was given
        if self.seed is not None:
            self.rng.seed(self.seed)

    def __repr__(self):
        return f"RandomReplacement(seed={self.seed!r})"


def make_policy(kind, rng: Optional[random.Random] = None, seed: Optional[int] = None) -> ReplacementPolicy:
    kind = ReplacementKind.parse(kind)
    if kind is ReplacementKind.LRU:
        return LRUReplacement()
    if kind is ReplacementKind.FIFO:
        return FIFOReplacement()
    return RandomReplacement(rng=rng, seed=seed)


__all__ = [
    "FIFOReplacement",
    "LRUReplacement",
    "RandomReplacement",
    "ReplacementPolicy",
    "first_invalid",
    "make_policy",
]
