"""Trace entries and trace text parsing.

Trace file format, one access per line:

    R 0x400000
    W 0x400004
    READ 0x400008
    WRITE 0x40000C

Blank lines and lines starting with '#' are skipped. Addresses accept any
Python integer literal prefix (0x, 0o, 0b) or plain decimal.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

from cachesim.core.config import AccessResult, MAX_ADDRESS, Operation
from cachesim.core.errors import ParseError
from cachesim.data.stats_export import StatisticsSnapshot

logger = logging.getLogger(__name__)

# unprefixed hex is only recognized when it has a hex letter
_BARE_HEX = re.compile(r"[0-9a-fA-F]*[a-fA-F][0-9a-fA-F]*")


@dataclass(frozen=True)
class TraceEntry:
    address: int
    operation: Operation = Operation.READ

    def __str__(self):
        return f"{self.operation.name} {self.address:#x}"


@dataclass(frozen=True)
class TraceResult:
    """Outcome slot for one trace entry.

    Exactly one of `result` and `error` is set. `entry` is the parsed
    TraceEntry, or the raw input when it could not be parsed.
    """

    entry: object
    result: Optional[AccessResult] = None
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TraceReport:
    results: List[TraceResult]
    stats: StatisticsSnapshot

    @property
    def errors(self) -> List[TraceResult]:
        return [r for r in self.results if r.error is not None]

    def __iter__(self) -> Iterator[TraceResult]:
        return iter(self.results)

    def __len__(self):
        return len(self.results)


def parse_address(text: Union[str, int]) -> int:
    if isinstance(text, bool):
        raise ParseError(f"invalid address {text!r}", text=text)
    if isinstance(text, int):
        value = text
    else:
        s = str(text).strip()
        try:
            # plain digits are decimal even with leading zeros ("010" is 10)
            value = int(s, 10) if s.isdigit() else int(s, 0)
        except ValueError:
            if not _BARE_HEX.fullmatch(s):
                raise ParseError(f"invalid address {text!r}", text=text) from None
            # bare hex without prefix, e.g. "1a2b"
            value = int(s, 16)
    if value < 0 or value > MAX_ADDRESS:
        raise ParseError(f"address {text!r} out of range", text=text)
    return value


def parse_trace_line(line: str, line_number: Optional[int] = None) -> Optional[TraceEntry]:
    """Parse `<operation> <address>`; returns None for blank/comment lines."""
    stripped = line.strip()
    if not stripped or stripped.startswith('#'):
        return None
    parts = stripped.split()
    if len(parts) < 2:
        raise ParseError(f"invalid trace line {line!r}", text=line, line_number=line_number)
    try:
        operation = Operation.parse(parts[0])
        address = parse_address(parts[1])
    except ParseError as e:
        raise ParseError(str(e), text=line, line_number=line_number) from None
    return TraceEntry(address, operation)


def coerce_entry(raw) -> TraceEntry:
    """Turn a TraceEntry, an (address, operation) pair or a trace line into a TraceEntry."""
    if isinstance(raw, TraceEntry):
        return raw
    if isinstance(raw, str):
        entry = parse_trace_line(raw)
        if entry is None:
            raise ParseError(f"empty trace entry {raw!r}", text=raw)
        return entry
    try:
        address, operation = raw
    except (TypeError, ValueError):
        raise ParseError(f"malformed trace entry {raw!r}", text=raw) from None
    return TraceEntry(parse_address(address), Operation.parse(operation))


def parse_trace(lines: Iterable[str], strict: bool = False) -> List[TraceEntry]:
    """Parse trace lines, skipping (and logging) bad ones unless strict."""
    entries = []
    for n, line in enumerate(lines, 1):
        try:
            entry = parse_trace_line(line, n)
        except ParseError as e:
            if strict:
                raise
            logger.warning("skipping line %d: %s", n, e)
            continue
        if entry is not None:
            entries.append(entry)
    return entries


def read_trace_file(path: str, strict: bool = False) -> List[TraceEntry]:
    with open(path, 'r', encoding='utf-8') as fh:
        entries = parse_trace(fh, strict=strict)
    logger.info("loaded %d memory accesses from %s", len(entries), path)
    return entries


def entries_from_lists(addresses: Iterable, operations: Iterable = ()) -> List[TraceEntry]:
    """Zip addresses with operations; missing operations default to READ."""
    addresses = list(addresses)
    operations = list(operations)
    operations += [Operation.READ] * (len(addresses) - len(operations))
    return [TraceEntry(parse_address(a), Operation.parse(o)) for a, o in zip(addresses, operations)]


__all__ = [
    "TraceEntry",
    "TraceReport",
    "TraceResult",
    "coerce_entry",
    "entries_from_lists",
    "parse_address",
    "parse_trace",
    "parse_trace_line",
    "read_trace_file",
]
