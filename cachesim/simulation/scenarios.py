"""Predefined access scenarios.

Each scenario is a list of TraceEntry values. The random ones take a seed
so a seeded run replays the same addresses.
"""
import random
from typing import List, Optional

from cachesim.core.config import Operation
from cachesim.core.errors import ConfigurationError
from cachesim.core.trace import TraceEntry

# pattern the CLI runs when given no trace, addresses or scenario
DEFAULT_PATTERN = [
    (0x0, 'READ'), (0x20, 'WRITE'), (0x40, 'READ'), (0x60, 'WRITE'),
    (0x80, 'READ'), (0x100, 'WRITE'), (0x0, 'READ'), (0x0, 'WRITE'),
]


def matrix_traversal(n: int = 10, element_size: int = 1, column_major: bool = False) -> List[TraceEntry]:
    """Walk an n x n row-major matrix, by rows or (worse locality) by columns."""
    seq = []
    for i in range(n):
        for j in range(n):
            r, c = (j, i) if column_major else (i, j)
            seq.append(TraceEntry((r * n + c) * element_size, Operation.READ))
    return seq


def random_access(count: int = 16, span: int = 256, write_ratio: float = 0.0,
                  seed: Optional[int] = None) -> List[TraceEntry]:
    rng = random.Random(seed)
    seq = []
    for _ in range(count):
        op = Operation.WRITE if rng.random() < write_ratio else Operation.READ
        seq.append(TraceEntry(rng.randrange(span), op))
    return seq


def default_pattern() -> List[TraceEntry]:
    return [TraceEntry(a, Operation.parse(o)) for a, o in DEFAULT_PATTERN]


PREDEFINED_SCENARIOS = {
    'Matrix Traversal': matrix_traversal,
    'Column Traversal': lambda **kw: matrix_traversal(column_major=True, **kw),
    'Random Access': random_access,
    'Default Pattern': default_pattern,
}


# scenarios whose addresses come from a random source
SEEDED_SCENARIOS = {"Random Access"}


def scenario(name: str, seed: Optional[int] = None, **kwargs) -> List[TraceEntry]:
    """Build a predefined scenario by name; `seed` fixes the random ones."""
    for key, factory in PREDEFINED_SCENARIOS.items():
        if key.lower() == name.strip().lower():
            if key in SEEDED_SCENARIOS:
                kwargs["seed"] = seed
            return factory(**kwargs)
    raise ConfigurationError(f"unknown scenario {name!r} (expected one of: {', '.join(PREDEFINED_SCENARIOS)})")


__all__ = ["DEFAULT_PATTERN", "PREDEFINED_SCENARIOS", "SEEDED_SCENARIOS", "default_pattern", "matrix_traversal", "random_access", "scenario"]
