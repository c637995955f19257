"""Consolidated unit tests for core cache behaviors.

These tests focus on the cache core (no CLI). They cover:

- write policies (write-back vs write-through)
- write-miss policies (write-allocate vs no-write-allocate)
- eviction behavior and writeback accounting
- contents snapshots, reset and statistics
- the end-to-end 1 KiB / 32 B / 4-way example
"""

import random
import threading

import pytest
from cachesim.core.cache import Cache
from cachesim.core.config import AccessResult, CacheConfig, Operation
from cachesim.core.errors import AddressError


def test_end_to_end_example():
    # Input: 1024 B cache, 32 B blocks, 4-way, LRU, write-back, write-allocate.
    # Sequence: R 0x1000, R 0x1000, W 0x2000, R 0x1000.
    # Expected: MISS, HIT, WRITE MISS (block left dirty), HIT; 4 accesses, 50/50 rates.
    c = Cache(cache_size=1024, block_size=32, associativity=4, replacement='LRU',
              write_policy='WRITE_BACK', write_miss_policy='WRITE_ALLOCATE')
    assert c.num_sets == 8
    assert c.access(0x1000, Operation.READ)[0] is AccessResult.READ_MISS
    assert c.access(0x1000, Operation.READ)[0] is AccessResult.READ_HIT
    result, _ = c.access(0x2000, Operation.WRITE)
    assert result is AccessResult.WRITE_MISS
    # 0x2000 -> set 0, tag 0x20; it went to the second way
    set0 = c.contents()[0]
    assert set0[1].valid and set0[1].tag == 0x20 and set0[1].dirty is True
    result, stats = c.access(0x1000, Operation.READ)
    assert result is AccessResult.READ_HIT
    assert (stats.total, stats.hits, stats.misses) == (4, 2, 2)
    assert stats.hit_rate == 50.0
    assert stats.miss_rate == 50.0


def test_miss_then_hit_on_repeated_read():
    c = Cache(cache_size=256, block_size=16, associativity=2)
    assert c.access(0x40)[0] is AccessResult.READ_MISS
    assert c.access(0x40)[0] is AccessResult.READ_HIT
    # same block, different offset
    assert c.access(0x4F)[0] is AccessResult.READ_HIT


def test_write_hit_behavior():
    # Input: For each write policy create Cache(4 B, 1 B blocks, 2-way). Do a read then a write to 0.
    # Expected: write-back -> block dirty, no memory write. write-through -> clean block, memory write.
    for wp in ("write-back", "write-through"):
        c = Cache(cache_size=4, block_size=1, associativity=2, write_policy=wp)
        assert c.access(0, Operation.READ)[0] is AccessResult.READ_MISS
        rec = c.access_detailed(0, Operation.WRITE)
        assert rec.result is AccessResult.WRITE_HIT
        block = c.sets[rec.set_index][rec.way_index]
        if wp == 'write-back':
            assert block.dirty is True
            assert rec.mem_write is False
        else:
            assert block.dirty is False
            assert rec.mem_write is True


def test_read_hit_never_dirties():
    c = Cache(cache_size=4, block_size=1, associativity=2, write_policy='WRITE_BACK')
    c.access(0)
    c.access(0)
    assert all(not b.dirty for s in c.contents() for b in s)


@pytest.mark.parametrize("write_miss_policy", ["WRITE_ALLOCATE", "NO_WRITE_ALLOCATE"])
def test_write_miss_policies(write_miss_policy):
    # Input: write-through cache, write miss to address 8.
    # Expected: no-write-allocate -> nothing installed, memory write.
    # write-allocate -> block installed clean, memory read and write.
    c = Cache(cache_size=4, block_size=1, associativity=2, write_policy='WRITE_THROUGH',
              write_miss_policy=write_miss_policy)
    before = c.contents()
    rec = c.access_detailed(8, Operation.WRITE)
    assert rec.result is AccessResult.WRITE_MISS
    assert rec.mem_write is True
    if write_miss_policy == "NO_WRITE_ALLOCATE":
        assert rec.way_index is None
        assert rec.mem_read is False
        assert c.contents() == before
    else:
        assert rec.way_index is not None
        assert rec.mem_read is True
        block = c.contents()[rec.set_index][rec.way_index]
        assert block.valid and not block.dirty


def test_write_no_allocate_with_write_back_still_counts_miss():
    c = Cache(cache_size=4, block_size=1, associativity=2, write_policy='write-back',
              write_miss_policy='write-no-allocate')
    result, stats = c.access(7, Operation.WRITE)
    assert result is AccessResult.WRITE_MISS
    assert stats.misses == 1 and stats.accesses == 1
    assert all(not b.valid for s in c.contents() for b in s)
    # the write bypassed the cache, so a later read still misses
    assert c.access(7)[0] is AccessResult.READ_MISS


def test_write_allocate_with_write_back_marks_dirty():
    c = Cache(cache_size=4, block_size=1, associativity=2, write_policy='WRITE_BACK')
    rec = c.access_detailed(3, Operation.WRITE)
    assert rec.result is AccessResult.WRITE_MISS
    assert rec.mem_write is False
    assert c.contents()[rec.set_index][rec.way_index].dirty is True


def test_evict_dirty_counts_writeback():
    # Input: 2 B direct-mapped write-back cache. Write 0, then read 2 (same set).
    # Expected: the evicted block was dirty and a writeback is recorded.
    c = Cache(cache_size=2, block_size=1, associativity=1, write_policy='write-back')
    c.access(0, Operation.WRITE)
    rec = c.access_detailed(2, Operation.READ)
    assert rec.evicted is not None
    assert rec.evicted.dirty is True
    assert rec.evicted.tag == 0
    assert rec.writeback is True
    assert rec.stats.writebacks == 1
    # the replacement is clean
    assert c.contents()[0][0].dirty is False


def test_clean_eviction_is_not_a_writeback():
    c = Cache(cache_size=2, block_size=1, associativity=1, write_policy='write-back')
    c.access(0)
    rec = c.access_detailed(2)
    assert rec.evicted is not None and rec.evicted.dirty is False
    assert rec.writeback is False
    assert rec.stats.writebacks == 0


def test_contents_shape_and_view():
    c = Cache(cache_size=256, block_size=16, associativity=4)
    sets = c.contents()
    assert len(sets) == 4
    assert all(len(s) == 4 for s in sets)
    c.access(0x10)
    d = c.contents_as_dict()
    assert d['num_sets'] == 4
    assert d['sets'][1]['blocks'][0] == {'valid': True, 'dirty': False, 'tag': 0}


def test_fully_associative_uses_one_set():
    c = Cache(cache_size=128, block_size=32, associativity=0)
    assert c.num_sets == 1
    assert c.associativity == 4
    for a in (0x0, 0x1000, 0x2000, 0x3000):
        assert c.access(a)[0] is AccessResult.READ_MISS
    # every block fits, nothing was evicted
    assert all(b.valid for b in c.contents()[0])
    assert c.access(0x1000)[0] is AccessResult.READ_HIT


def test_reset_clears_blocks_and_statistics():
    c = Cache(cache_size=4, block_size=1, associativity=2, write_policy='write-back')
    c.access(0, Operation.WRITE)
    c.access(2, Operation.WRITE)
    assert any(b.dirty for s in c.contents() for b in s)
    for _ in range(2):
        stats = c.reset()
        assert (stats.accesses, stats.hits, stats.misses) == (0, 0, 0)
        for s in c.contents():
            for b in s:
                assert b.valid is False
                assert b.dirty is False
    # configuration survives a reset
    assert c.config.write_policy.name == 'WRITE_BACK'
    assert c.access(0)[0] is AccessResult.READ_MISS


def test_empty_cache_rates_are_zero():
    c = Cache()
    info = c.info()
    assert info.stats.accesses == 0
    assert info.stats.hit_rate == 0.0
    assert info.stats.miss_rate == 0.0
    assert info.config == CacheConfig()


def test_single_miss_rates():
    c = Cache()
    _, stats = c.access(0)
    assert stats.hit_rate == 0.0
    assert stats.miss_rate == 100.0


@pytest.mark.parametrize("address", [-1, 1 << 64, "0x10", 1.5, True])
def test_invalid_addresses_rejected_without_state_change(address):
    c = Cache()
    with pytest.raises(AddressError):
        c.access(address)
    assert c.info().stats.accesses == 0


def test_max_address_is_accepted():
    c = Cache()
    result, _ = c.access((1 << 64) - 1)
    assert result is AccessResult.READ_MISS


def test_caches_are_independent():
    a = Cache(cache_size=64, block_size=16, associativity=2)
    b = Cache(cache_size=64, block_size=16, associativity=2)
    a.access(0)
    assert b.access(0)[0] is AccessResult.READ_MISS
    assert a.info().stats.accesses == 1
    assert b.info().stats.accesses == 1


def test_hit_rate_history_follows_accesses():
    c = Cache(cache_size=64, block_size=16, associativity=2)
    c.access(0)
    c.access(0)
    assert list(c.hit_rate_history) == [0.0, 50.0]
    c.reset()
    assert list(c.hit_rate_history) == []


def test_hit_rate_history_is_bounded():
    c = Cache(cache_size=64, block_size=16, associativity=2, history_limit=3)
    for _ in range(10):
        c.access(0)
    assert len(c.hit_rate_history) == 3
    # the newest samples are the ones kept
    assert list(c.hit_rate_history) == [87.5, pytest.approx(800 / 9), 90.0]
    assert c.statistics().accesses == 10


@pytest.mark.parametrize('size,block,assoc', [
    (4, 1, 1),
    (4, 1, 2),
    (16, 2, 2),
    (16, 2, 4),
    (64, 4, 0),
])
def test_various_configurations_smoke(size, block, assoc):
    # initial read -> miss, write -> hit after allocation, read -> hit
    c = Cache(cache_size=size, block_size=block, associativity=assoc, write_policy='write-back')
    assert c.access(0, Operation.READ)[0] is AccessResult.READ_MISS
    assert c.access(0, Operation.WRITE)[0] is AccessResult.WRITE_HIT
    assert c.access(0, Operation.READ)[0] is AccessResult.READ_HIT


def _check_invariants(cache):
    stats = cache.info().stats
    assert stats.accesses == stats.hits + stats.misses
    for blocks in cache.contents():
        assert sum(b.valid for b in blocks) <= cache.associativity
        tags = [b.tag for b in blocks if b.valid]
        assert len(tags) == len(set(tags))
        for b in blocks:
            if not b.valid:
                assert b.dirty is False


@pytest.mark.parametrize("policy", ["LRU", "FIFO", "RANDOM"])
@pytest.mark.parametrize("wmp", ["WRITE_ALLOCATE", "NO_WRITE_ALLOCATE"])
def test_randomized_small_stress(policy, wmp):
    """A short seeded mixed read/write sequence; invariants must hold after each access."""
    rng = random.Random(1234)
    c = Cache(cache_size=32, block_size=2, associativity=4, replacement=policy,
              write_policy='write-back', write_miss_policy=wmp, seed=7)
    for _ in range(200):
        op = Operation.WRITE if rng.random() < 0.35 else Operation.READ
        c.access(rng.randint(0, 127), op)
        _check_invariants(c)
    assert c.info().stats.accesses == 200


def test_concurrent_access_and_snapshots_stay_consistent():
    c = Cache(cache_size=64, block_size=4, associativity=2, write_policy='write-back')
    errors = []

    def writer(seed):
        rng = random.Random(seed)
        for _ in range(300):
            c.access(rng.randint(0, 255), Operation.WRITE if rng.random() < 0.5 else Operation.READ)

    def reader():
        try:
            for _ in range(100):
                _check_invariants(c)
        except AssertionError as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(s,)) for s in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors
    assert c.info().stats.accesses == 1200
