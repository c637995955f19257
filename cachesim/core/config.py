"""Cache configuration and the small enums shared by the engine.

CacheConfig is validated as soon as it is built, so an instance that exists
always describes a usable power-of-two geometry:

  blocks_per_set = cache_size // block_size        (associativity == 0, fully associative)
                 = associativity                   (otherwise)
  num_sets       = 1                               (associativity == 0)
                 = cache_size // (block_size * associativity)

Policy fields accept either enum members or the loose spellings used by the
UI and the CLI ("write-back", "WRITE_BACK", "lru", "Random", ...).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cachesim.core.errors import ConfigurationError, ParseError

# the engine models a 64-bit unsigned address space
ADDRESS_BITS = 64
MAX_ADDRESS = (1 << ADDRESS_BITS) - 1

DEFAULT_CACHE_SIZE = 1024
DEFAULT_BLOCK_SIZE = 32
DEFAULT_ASSOCIATIVITY = 4


def _normalize(text: str) -> str:
    return str(text).strip().upper().replace("-", "_").replace(" ", "_")


class _ParsableEnum(Enum):
    """Enum that can be built from loose user text."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = _normalize(value)
        key = cls._aliases().get(key, key)
        try:
            return cls[key]
        except KeyError:
            choices = ", ".join(m.name for m in cls)
            raise ConfigurationError(f"unknown {cls.__name__} {value!r} (expected one of: {choices})") from None

    @classmethod
    def _aliases(cls):
        return {}

    def __str__(self):
        return self.name


class ReplacementKind(_ParsableEnum):
    LRU = "LRU"
    FIFO = "FIFO"
    RANDOM = "RANDOM"


class WritePolicy(_ParsableEnum):
    WRITE_THROUGH = "WRITE_THROUGH"
    WRITE_BACK = "WRITE_BACK"

    @classmethod
    def _aliases(cls):
        return {"WT": "WRITE_THROUGH", "THROUGH": "WRITE_THROUGH", "WB": "WRITE_BACK", "BACK": "WRITE_BACK"}


class WriteMissPolicy(_ParsableEnum):
    WRITE_ALLOCATE = "WRITE_ALLOCATE"
    NO_WRITE_ALLOCATE = "NO_WRITE_ALLOCATE"

    @classmethod
    def _aliases(cls):
        return {
            "ALLOCATE": "WRITE_ALLOCATE",
            "WRITE_NO_ALLOCATE": "NO_WRITE_ALLOCATE",
            "NO_ALLOCATE": "NO_WRITE_ALLOCATE",
        }


class Operation(Enum):
    READ = "READ"
    WRITE = "WRITE"

    @classmethod
    def parse(cls, value) -> "Operation":
        """Accept R/READ/W/WRITE in any case (or a bool meaning is_write)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.WRITE if value else cls.READ
        key = _normalize(value) if isinstance(value, str) else None
        if key in ("R", "READ", "LOAD"):
            return cls.READ
        if key in ("W", "WRITE", "STORE"):
            return cls.WRITE
        raise ParseError(f"unknown operation {value!r} (expected READ or WRITE)", text=value)

    @property
    def is_write(self) -> bool:
        return self is Operation.WRITE

    def __str__(self):
        return self.name


class AccessResult(Enum):
    READ_HIT = "READ_HIT"
    READ_MISS = "READ_MISS"
    WRITE_HIT = "WRITE_HIT"
    WRITE_MISS = "WRITE_MISS"

    @classmethod
    def of(cls, operation: Operation, hit: bool) -> "AccessResult":
        if operation is Operation.WRITE:
            return cls.WRITE_HIT if hit else cls.WRITE_MISS
        return cls.READ_HIT if hit else cls.READ_MISS

    @property
    def is_hit(self) -> bool:
        return self in (AccessResult.READ_HIT, AccessResult.WRITE_HIT)

    @property
    def label(self) -> str:
        """Short text used by reports: HIT, MISS, WRITE HIT, WRITE MISS."""
        return {
            AccessResult.READ_HIT: "HIT",
            AccessResult.READ_MISS: "MISS",
            AccessResult.WRITE_HIT: "WRITE HIT",
            AccessResult.WRITE_MISS: "WRITE MISS",
        }[self]

    def __str__(self):
        return self.name


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _as_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value), 0)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    return value


@dataclass(frozen=True)
class CacheConfig:
    cache_size: int = DEFAULT_CACHE_SIZE
    block_size: int = DEFAULT_BLOCK_SIZE
    associativity: int = DEFAULT_ASSOCIATIVITY
    replacement: ReplacementKind = ReplacementKind.LRU
    write_policy: WritePolicy = WritePolicy.WRITE_THROUGH
    write_miss_policy: WriteMissPolicy = WriteMissPolicy.WRITE_ALLOCATE
    # seed for the RANDOM policy; None draws a fresh seed
    seed: Optional[int] = field(default=None, compare=False)

    def __post_init__(self):
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "cache_size", _as_int("cache_size", self.cache_size))
        object.__setattr__(self, "block_size", _as_int("block_size", self.block_size))
        object.__setattr__(self, "associativity", _as_int("associativity", self.associativity))
        object.__setattr__(self, "replacement", ReplacementKind.parse(self.replacement))
        object.__setattr__(self, "write_policy", WritePolicy.parse(self.write_policy))
        object.__setattr__(self, "write_miss_policy", WriteMissPolicy.parse(self.write_miss_policy))
        self._validate()

    def _validate(self):
        if self.cache_size <= 0:
            raise ConfigurationError(f"cache size must be positive, got {self.cache_size}")
        if self.block_size <= 0:
            raise ConfigurationError(f"block size must be positive, got {self.block_size}")
        if self.associativity < 0:
            raise ConfigurationError(f"associativity must be >= 0, got {self.associativity}")
        if not is_power_of_two(self.block_size):
            raise ConfigurationError(f"block size must be a power of two, got {self.block_size}")
        if self.associativity != 0 and not is_power_of_two(self.associativity):
            raise ConfigurationError(f"associativity must be a power of two, got {self.associativity}")
        set_bytes = self.block_size * (self.associativity or 1)
        if self.cache_size % set_bytes != 0:
            raise ConfigurationError(
                f"cache size {self.cache_size} is not a multiple of block_size*associativity ({set_bytes})"
            )
        if not is_power_of_two(self.num_sets):
            raise ConfigurationError(f"number of sets must be a power of two, got {self.num_sets}")

    @property
    def num_blocks(self) -> int:
        return self.cache_size // self.block_size

    @property
    def is_fully_associative(self) -> bool:
        return self.associativity == 0

    @property
    def blocks_per_set(self) -> int:
        return self.num_blocks if self.associativity == 0 else self.associativity

    @property
    def num_sets(self) -> int:
        if self.associativity == 0:
            return 1
        return self.cache_size // (self.block_size * self.associativity)

    @property
    def offset_bits(self) -> int:
        return self.block_size.bit_length() - 1

    @property
    def index_bits(self) -> int:
        return self.num_sets.bit_length() - 1

    @property
    def tag_bits(self) -> int:
        return ADDRESS_BITS - self.offset_bits - self.index_bits

    @property
    def organization(self) -> str:
        """Human label: Direct Mapped, N-way, Fully Associative."""
        if self.associativity == 0 or (self.blocks_per_set == self.num_blocks and self.num_blocks > 1):
            return "Fully Associative"
        if self.blocks_per_set == 1:
            return "Direct Mapped"
        return f"{self.blocks_per_set}-way"

    def describe(self) -> str:
        lines = [
            "Cache Configuration:",
            f"  Cache Size: {self.cache_size} bytes",
            f"  Block Size: {self.block_size} bytes",
            f"  Associativity: {self.organization}",
            f"  Number of Sets: {self.num_sets}",
            f"  Number of Blocks: {self.num_blocks}",
            f"  Offset Bits: {self.offset_bits}",
            f"  Index Bits: {self.index_bits}",
            f"  Tag Bits: {self.tag_bits}",
            f"  Replacement Policy: {self.replacement.name}",
            f"  Write Policy: {self.write_policy.name}",
            f"  Write Miss Policy: {self.write_miss_policy.name}",
        ]
        return "\n".join(lines) + "\n"

    def as_dict(self) -> dict:
        return {
            "cache_size": self.cache_size,
            "block_size": self.block_size,
            "associativity": self.associativity,
            "num_sets": self.num_sets,
            "blocks_per_set": self.blocks_per_set,
            "num_blocks": self.num_blocks,
            "offset_bits": self.offset_bits,
            "index_bits": self.index_bits,
            "tag_bits": self.tag_bits,
            "replacement": self.replacement.name,
            "write_policy": self.write_policy.name,
            "write_miss_policy": self.write_miss_policy.name,
        }


__all__ = [
    "ADDRESS_BITS",
    "MAX_ADDRESS",
    "AccessResult",
    "CacheConfig",
    "Operation",
    "ReplacementKind",
    "WriteMissPolicy",
    "WritePolicy",
    "is_power_of_two",
]
