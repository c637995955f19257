"""Core cache implementation

This file provides the set-associative cache model used by the simulator and CLI.
Behavior:
- Cache is composed of `num_sets` sets; each set has `blocks_per_set` ways.
  offset = address & (block_size - 1)
  set_index = (address >> offset_bits) & (num_sets - 1)
  tag = address >> (offset_bits + index_bits)
- access() returns (AccessResult, StatisticsSnapshot); access_detailed()
  returns an AccessRecord with the set/way touched and any evicted block.
- Every public method runs under the cache's lock, so readers never see a
  half-installed block or a half-updated counter.
"""

import logging
import random
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, NamedTuple, Optional

from cachesim.core.address import AddressLayout, check_address
from cachesim.core.config import AccessResult, CacheConfig, Operation
from cachesim.core.replacement_policies import make_policy
from cachesim.core.trace import TraceReport, TraceResult, coerce_entry
from cachesim.core.write_policy import on_hit, on_miss
from cachesim.core.errors import ParseError
from cachesim.data.stats_export import Statistics, StatisticsSnapshot

logger = logging.getLogger(__name__)

# hit-rate samples kept for charts; older samples are dropped first
HISTORY_LIMIT = 100_000


@dataclass
class CacheBlock:
    """container for a cache line (way).

    Fields:
    - tag: the tag stored in the line
    - valid: whether the line currently holds useful data
    - dirty: whether the line was written (write-back only); never set while invalid
    - last_access / inserted: recency stamp (LRU) and insertion sequence (FIFO)
    """

    tag: int = 0
    valid: bool = False
    dirty: bool = False
    last_access: int = 0
    inserted: int = 0

    def view(self) -> "BlockView":
        return BlockView(valid=self.valid, dirty=self.dirty, tag=self.tag)


@dataclass(frozen=True)
class BlockView:
    valid: bool
    dirty: bool
    tag: int

    def as_dict(self) -> dict:
        return {"valid": self.valid, "dirty": self.dirty, "tag": self.tag}

    def __str__(self):
        if not self.valid:
            return "[Invalid]"
        return f"[V:1 D:{int(self.dirty)} Tag:{self.tag:#x}]"


class BlockStore:
    """Fixed matrix of num_sets x blocks_per_set blocks."""

    def __init__(self, num_sets: int, blocks_per_set: int):
        self.num_sets = num_sets
        self.blocks_per_set = blocks_per_set
        self.sets: List[List[CacheBlock]] = [
            [CacheBlock() for _ in range(blocks_per_set)] for _ in range(num_sets)
        ]

    def lookup(self, index: int, tag: int) -> Optional[int]:
        """Way holding `tag` in set `index`, or None."""
        # wi = way-index
        for wi, block in enumerate(self.sets[index]):
            if block.valid and block.tag == tag:
                return wi
        return None

    def slots_for(self, index: int) -> List[CacheBlock]:
        return self.sets[index]

    def install(self, index: int, way: int, tag: int, dirty: bool, stamp: int = 0, sequence: int = 0) -> BlockView:
        """Place a block in (index, way); returns what was there before."""
        block = self.sets[index][way]
        previous = block.view()
        block.tag = tag
        block.valid = True
        block.dirty = dirty
        block.last_access = stamp
        block.inserted = sequence
        return previous

    def clear(self):
        for s in self.sets:
            for b in s:
                b.tag = 0
                b.valid = False
                b.dirty = False
                b.last_access = 0
                b.inserted = 0

    def occupancy(self, index: int) -> int:
        return sum(1 for b in self.sets[index] if b.valid)

    def snapshot(self) -> List[List[BlockView]]:
        return [[b.view() for b in s] for s in self.sets]


class AccessRecord(NamedTuple):
    address: int
    operation: Operation
    result: AccessResult
    tag: int
    set_index: int
    offset: int
    way_index: Optional[int]
    evicted: Optional[BlockView]
    writeback: bool
    mem_read: bool
    mem_write: bool
    stats: StatisticsSnapshot

    @property
    def hit(self) -> bool:
        return self.result.is_hit

    def as_dict(self) -> dict:
        return {
            'address': self.address,
            'is_write': self.operation is Operation.WRITE,
            'result': self.result.name,
            'hit': self.hit,
            'tag': self.tag,
            'set_index': self.set_index,
            'offset': self.offset,
            'way_index': self.way_index,
            'evicted': self.evicted.as_dict() if self.evicted is not None else None,
            'writeback': self.writeback,
            'mem_read': self.mem_read,
            'mem_write': self.mem_write,
            'stats': self.stats.as_dict(),
        }


class CacheInfo(NamedTuple):
    config: CacheConfig
    stats: StatisticsSnapshot


class Cache:
    """Set-associative cache model.

    Build it from a CacheConfig or from the same keyword arguments. `rng`
    overrides the random source of the RANDOM policy (otherwise seeded from
    config.seed).
    """

    def __init__(self, config: Optional[CacheConfig] = None, rng: Optional[random.Random] = None,
                 history_limit: Optional[int] = HISTORY_LIMIT, **kwargs):
        if config is None:
            config = CacheConfig(**kwargs)
        elif kwargs:
            raise TypeError("pass either a CacheConfig or keyword arguments, not both")
        self.config = config
        self.layout = AddressLayout(config)
        self.policy = make_policy(config.replacement, rng=rng, seed=config.seed)
        self.store = BlockStore(config.num_sets, config.blocks_per_set)
        self.stats = Statistics()
        self.hit_rate_history: Deque[float] = deque(maxlen=history_limit)
        self._clock = 0
        self._sequence = 0
        self._lock = threading.RLock()
        logger.info("configured %s cache: %d sets x %d ways, %d-byte blocks, %s/%s/%s",
                    config.organization, config.num_sets, config.blocks_per_set, config.block_size,
                    config.replacement.name, config.write_policy.name, config.write_miss_policy.name)

    @property
    def num_sets(self) -> int:
        return self.config.num_sets

    @property
    def associativity(self) -> int:
        return self.config.blocks_per_set

    @property
    def sets(self) -> List[List[CacheBlock]]:
        return self.store.sets

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def access(self, address: int, operation=Operation.READ):
        """Perform one access; returns (AccessResult, StatisticsSnapshot)."""
        record = self.access_detailed(address, operation)
        return record.result, record.stats

    def access_detailed(self, address: int, operation=Operation.READ) -> AccessRecord:
        address = check_address(address)
        operation = Operation.parse(operation)
        with self._lock:
            return self._access_locked(address, operation)

    def _access_locked(self, address: int, operation: Operation) -> AccessRecord:
        config = self.config
        tag, set_index, offset = self.layout.decode(address)
        way = self.store.lookup(set_index, tag)
        evicted = None
        writeback = False

        if way is not None:
            action = on_hit(operation, config.write_policy)
            block = self.store.sets[set_index][way]
            block.last_access = self._tick()
            if action.mark_dirty:
                block.dirty = True
            result = AccessResult.of(operation, hit=True)
            mem_read, mem_write = False, action.mem_write
            logger.debug("%s hit at %#x: set %d way %d", operation.name, address, set_index, way)
        else:
            action = on_miss(operation, config.write_policy, config.write_miss_policy)
            result = AccessResult.of(operation, hit=False)
            mem_read, mem_write = action.mem_read, action.mem_write
            if action.allocate:
                way = self.policy.choose_slot(self.store.slots_for(set_index))
                previous = self.store.install(set_index, way, tag, action.dirty,
                                              stamp=self._tick(), sequence=self._next_sequence())
                if previous.valid:
                    evicted = previous
                    writeback = previous.dirty
                    logger.debug("evicting tag %#x from set %d way %d%s", previous.tag, set_index, way,
                                 " (writeback)" if writeback else "")
                logger.debug("%s miss at %#x: installed in set %d way %d", operation.name, address, set_index, way)
            else:
                logger.debug("write miss at %#x bypasses the cache", address)

        self.stats.record(result, mem_read=mem_read, mem_write=mem_write, writeback=writeback)
        snapshot = self.stats.snapshot()
        self.hit_rate_history.append(snapshot.hit_rate)
        return AccessRecord(address, operation, result, tag, set_index, offset, way, evicted,
                            writeback, mem_read, mem_write, snapshot)

    def run_trace(self, entries: Iterable) -> TraceReport:
        """Replay entries in order; a bad entry is recorded and skipped."""
        results = []
        with self._lock:
            for raw in entries:
                try:
                    entry = coerce_entry(raw)
                except ParseError as e:
                    logger.warning("trace entry %r rejected: %s", raw, e)
                    results.append(TraceResult(raw, error=e))
                    continue
                record = self._access_locked(entry.address, entry.operation)
                results.append(TraceResult(entry, result=record.result))
            report = TraceReport(results, self.stats.snapshot())
        logger.info("trace finished: %d entries, %d errors, hit rate %.2f%%",
                    len(report), len(report.errors), report.stats.hit_rate)
        return report

    def reset(self) -> StatisticsSnapshot:
        """Clear cache contents and statistics; the configuration is kept."""
        with self._lock:
            self.store.clear()
            self.stats.reset()
            self.policy.reset()
            self.hit_rate_history.clear()
            self._clock = 0
            self._sequence = 0
            logger.info("cache reset")
            return self.stats.snapshot()

    def statistics(self) -> StatisticsSnapshot:
        with self._lock:
            return self.stats.snapshot()

    def info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(self.config, self.stats.snapshot())

    def contents(self) -> List[List[BlockView]]:
        with self._lock:
            return self.store.snapshot()

    def contents_as_dict(self) -> dict:
        sets = self.contents()
        return {
            'num_sets': len(sets),
            'blocks_per_set': self.config.blocks_per_set,
            'sets': [
                {'index': i, 'blocks': [b.as_dict() for b in blocks]}
                for i, blocks in enumerate(sets)
            ],
        }

    def eviction_order(self, set_index: int) -> List[int]:
        """Valid ways of a set in the order the policy would evict them."""
        with self._lock:
            return self.policy.order(self.store.slots_for(set_index))

    def format_contents(self) -> str:
        lines = ["Cache Contents:", "================"]
        for i, blocks in enumerate(self.contents()):
            lines.append(f"Set {i}: " + " ".join(str(b) for b in blocks))
        lines.append("================")
        return "\n".join(lines) + "\n"


__all__ = ["AccessRecord", "BlockStore", "BlockView", "Cache", "CacheBlock", "CacheInfo"]
