"""Preset cache organizations.

Thin helpers that build a CacheConfig for the usual textbook layouts so
callers don't have to remember that associativity 0 means fully associative.
Extra keyword arguments (replacement, write_policy, write_miss_policy, seed)
are passed straight to CacheConfig.
"""
from cachesim.core.config import CacheConfig
from cachesim.core.errors import ConfigurationError


def direct_mapped(cache_size: int, block_size: int, **policies) -> CacheConfig:
    return CacheConfig(cache_size=cache_size, block_size=block_size, associativity=1, **policies)


def two_way_set_associative(cache_size: int, block_size: int, **policies) -> CacheConfig:
    return CacheConfig(cache_size=cache_size, block_size=block_size, associativity=2, **policies)


def four_way_set_associative(cache_size: int, block_size: int, **policies) -> CacheConfig:
    return CacheConfig(cache_size=cache_size, block_size=block_size, associativity=4, **policies)


def fully_associative(cache_size: int, block_size: int, **policies) -> CacheConfig:
    # one set holding every block
    return CacheConfig(cache_size=cache_size, block_size=block_size, associativity=0, **policies)


def k_associative(cache_size: int, block_size: int, k: int, **policies) -> CacheConfig:
    """Generic k-way layout; k equal to the block count is the same as fully associative."""
    if k == cache_size // max(block_size, 1):
        k = 0
    return CacheConfig(cache_size=cache_size, block_size=block_size, associativity=k, **policies)


PRESETS = {
    'direct': direct_mapped,
    'direct-mapped': direct_mapped,
    '2-way': two_way_set_associative,
    '4-way': four_way_set_associative,
    'fully': fully_associative,
    'fully-associative': fully_associative,
}


def build_preset(name: str, cache_size: int, block_size: int, **policies) -> CacheConfig:
    key = name.strip().lower().replace('_', '-')
    if key not in PRESETS:
        raise ConfigurationError(f"unknown cache organization {name!r} (expected one of: {', '.join(PRESETS)})")
    return PRESETS[key](cache_size, block_size, **policies)


__all__ = [
    "PRESETS",
    "build_preset",
    "direct_mapped",
    "four_way_set_associative",
    "fully_associative",
    "k_associative",
    "two_way_set_associative",
]
