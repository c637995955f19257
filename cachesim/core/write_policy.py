"""Write-hit and write-miss policy decisions.

The cache asks this module what a hit or a miss should do; it never decides
these rules inline. Only the cache's access path calls into here.

  hit  + READ                      -> nothing changes
  hit  + WRITE + WRITE_BACK        -> block becomes dirty
  hit  + WRITE + WRITE_THROUGH     -> memory write, dirty untouched
  miss + READ                      -> install clean block (memory read)
  miss + WRITE + NO_WRITE_ALLOCATE -> no install, memory write
  miss + WRITE + WRITE_ALLOCATE    -> install (memory read), dirty iff WRITE_BACK,
                                      memory write iff WRITE_THROUGH
"""

from typing import NamedTuple

from cachesim.core.config import Operation, WriteMissPolicy, WritePolicy


class HitAction(NamedTuple):
    mark_dirty: bool
    mem_write: bool


class MissAction(NamedTuple):
    allocate: bool
    dirty: bool
    mem_read: bool
    mem_write: bool


def on_hit(operation: Operation, write_policy: WritePolicy) -> HitAction:
    if operation is not Operation.WRITE:
        return HitAction(mark_dirty=False, mem_write=False)
    if write_policy is WritePolicy.WRITE_BACK:
        return HitAction(mark_dirty=True, mem_write=False)
    return HitAction(mark_dirty=False, mem_write=True)


def on_miss(operation: Operation, write_policy: WritePolicy, write_miss_policy: WriteMissPolicy) -> MissAction:
    if operation is not Operation.WRITE:
        return MissAction(allocate=True, dirty=False, mem_read=True, mem_write=False)
    if write_miss_policy is WriteMissPolicy.NO_WRITE_ALLOCATE:
        # bypass: the write goes straight to memory
        return MissAction(allocate=False, dirty=False, mem_read=False, mem_write=True)
    write_back = write_policy is WritePolicy.WRITE_BACK
    return MissAction(allocate=True, dirty=write_back, mem_read=True, mem_write=not write_back)


__all__ = ["HitAction", "MissAction", "on_hit", "on_miss"]
