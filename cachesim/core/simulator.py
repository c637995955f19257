"""CacheSimulator: the caller-facing handle around one configured Cache.

It exposes the operation set used by front ends (configure, access, reset,
info, contents, trace) and the step-by-step playback of a loaded sequence.
Anything other than configure raises NotConfiguredError until a cache exists.
"""
import logging
import random
import threading
from typing import Callable, Iterable, List, Optional, Tuple

from .cache import Cache, CacheInfo
from .config import CacheConfig, Operation
from .errors import NotConfiguredError
from .trace import TraceEntry, TraceReport, entries_from_lists

logger = logging.getLogger(__name__)


class CacheSimulator:
    def __init__(self, cache: Optional[Cache] = None):
        self._cache = cache
        self._lock = threading.Lock()
        self.sequence: List[TraceEntry] = []
        self.index = 0

    def configure(self, config: Optional[CacheConfig] = None, rng: Optional[random.Random] = None, **kwargs) -> Cache:
        """Build a new cache, replacing the current one only if it validates."""
        # CacheConfig raises ConfigurationError before anything is touched
        if config is None:
            config = CacheConfig(**kwargs)
        cache = Cache(config, rng=rng)
        with self._lock:
            self._cache = cache
            self.sequence = []
            self.index = 0
        return cache

    @property
    def configured(self) -> bool:
        return self._cache is not None

    @property
    def cache(self) -> Cache:
        cache = self._cache
        if cache is None:
            raise NotConfiguredError("no cache configured; call configure() first")
        return cache

    @property
    def stats(self):
        return self.cache.statistics()

    def access(self, address: int, operation=Operation.READ):
        return self.cache.access(address, operation)

    def reset(self):
        # clear stats and contents and rewind the sequence pointer
        snapshot = self.cache.reset()
        with self._lock:
            self.index = 0
        return snapshot

    def info(self) -> CacheInfo:
        return self.cache.info()

    def contents(self):
        return self.cache.contents()

    def trace(self, entries: Iterable) -> TraceReport:
        return self.cache.run_trace(entries)

    def load_sequence(self, addresses: List[int], writes: Optional[List[bool]] = None):
        if writes is None:
            writes = [False] * len(addresses)
        self.load_entries(entries_from_lists(addresses, writes))

    def load_entries(self, entries: Iterable[TraceEntry]):
        entries = list(entries)
        with self._lock:
            self.sequence = entries
            self.index = 0

    def has_next(self) -> bool:
        with self._lock:
            return self.index < len(self.sequence)

    def step(self) -> Optional[dict]:
        """Play the next loaded entry; None once the sequence is exhausted."""
        cache = self.cache
        # claim the entry under the lock so concurrent callers never share one
        with self._lock:
            if self.index >= len(self.sequence):
                return None
            entry = self.sequence[self.index]
            self.index += 1
            step = self.index
        record = cache.access_detailed(entry.address, entry.operation)
        info = record.as_dict()
        info['step'] = step
        return info

    def run_all(self, callback: Optional[Callable[[dict], None]] = None) -> List[dict]:
        steps = []
        while True:
            info = self.step()
            if info is None:
                break
            steps.append(info)
            if callback:
                callback(info)
        return steps

    def split_address(self, address: int) -> Tuple[int, int, int]:
        return tuple(self.cache.layout.decode(address))


__all__ = ["CacheSimulator"]
