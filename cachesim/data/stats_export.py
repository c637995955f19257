"""Statistics and exporters.

Statistics is the mutable counter set owned by one Cache. Callers only ever
see StatisticsSnapshot values, so a snapshot can't change under them.

Rates are percentages. On an empty cache (no accesses) both hit_rate and
miss_rate are 0.0.
"""
import csv
import json
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from cachesim.core.config import AccessResult


def _rate(part: int, whole: int) -> float:
    return (part / whole) * 100.0 if whole else 0.0


@dataclass(frozen=True)
class StatisticsSnapshot:
    accesses: int = 0
    hits: int = 0
    misses: int = 0
    reads: int = 0
    writes: int = 0
    read_hits: int = 0
    read_misses: int = 0
    write_hits: int = 0
    write_misses: int = 0
    writebacks: int = 0
    memory_reads: int = 0
    memory_writes: int = 0

    @property
    def total(self) -> int:
        return self.accesses

    @property
    def hit_rate(self) -> float:
        return _rate(self.hits, self.accesses)

    @property
    def miss_rate(self) -> float:
        # exact complement, except an empty cache reports 0 for both
        return 100.0 - self.hit_rate if self.accesses else 0.0

    @property
    def read_hit_rate(self) -> float:
        return _rate(self.read_hits, self.reads)

    @property
    def write_hit_rate(self) -> float:
        return _rate(self.write_hits, self.writes)

    def as_dict(self) -> Dict[str, float]:
        d = asdict(self)
        d["total"] = self.accesses
        d["hit_rate"] = self.hit_rate
        d["miss_rate"] = self.miss_rate
        d["read_hit_rate"] = self.read_hit_rate
        d["write_hit_rate"] = self.write_hit_rate
        return d

    def describe(self) -> str:
        return "\n".join([
            "Cache Statistics:",
            f"  Total Accesses: {self.accesses}",
            f"  Hits: {self.hits}",
            f"  Misses: {self.misses}",
            f"  Hit Rate: {self.hit_rate:.2f}%",
            f"  Miss Rate: {self.miss_rate:.2f}%",
            "",
            f"  Read Accesses: {self.reads}",
            f"  Write Accesses: {self.writes}",
            f"  Read Hit Rate: {self.read_hit_rate:.2f}%",
            f"  Write Hit Rate: {self.write_hit_rate:.2f}%",
            "",
            f"  Read Hits: {self.read_hits}",
            f"  Read Misses: {self.read_misses}",
            f"  Write Hits: {self.write_hits}",
            f"  Write Misses: {self.write_misses}",
            "",
            f"  Writebacks: {self.writebacks}",
            f"  Memory Reads: {self.memory_reads}",
            f"  Memory Writes: {self.memory_writes}",
        ]) + "\n"


class Statistics:
    def __init__(self):
        self.reset()

    def reset(self):
        # counters start from zero
        self.accesses = 0
        self.hits = 0
        self.misses = 0
        self.reads = 0
        self.writes = 0
        self.read_hits = 0
        self.write_hits = 0
        self.writebacks = 0
        self.memory_reads = 0
        self.memory_writes = 0
        self.start_time = time.time()

    def record(self, result: AccessResult, mem_read: bool = False, mem_write: bool = False, writeback: bool = False):
        """Count one completed access. accesses == hits + misses always holds."""
        self.accesses += 1
        if result.is_hit:
            self.hits += 1
        else:
            self.misses += 1
        if result in (AccessResult.WRITE_HIT, AccessResult.WRITE_MISS):
            self.writes += 1
            if result is AccessResult.WRITE_HIT:
                self.write_hits += 1
        else:
            self.reads += 1
            if result is AccessResult.READ_HIT:
                self.read_hits += 1
        if mem_read:
            self.memory_reads += 1
        if mem_write:
            self.memory_writes += 1
        if writeback:
            self.writebacks += 1
            self.memory_writes += 1

    @property
    def hit_rate(self):
        return self.snapshot().hit_rate

    @property
    def miss_rate(self):
        return self.snapshot().miss_rate

    def snapshot(self) -> StatisticsSnapshot:
        return StatisticsSnapshot(
            accesses=self.accesses,
            hits=self.hits,
            misses=self.misses,
            reads=self.reads,
            writes=self.writes,
            read_hits=self.read_hits,
            read_misses=self.reads - self.read_hits,
            write_hits=self.write_hits,
            write_misses=self.writes - self.write_hits,
            writebacks=self.writebacks,
            memory_reads=self.memory_reads,
            memory_writes=self.memory_writes,
        )


def export_chart_json(hit_rate_history: Iterable[float], stats: StatisticsSnapshot, fpath: str,
                      config: Optional[dict] = None) -> str:
    """Export hit-rate history and stats to a JSON file. Returns the saved path."""
    data = {
        'hit_rate_history': list(hit_rate_history),
        'stats': stats.as_dict(),
    }
    if config is not None:
        data['config'] = config
    with open(fpath, 'w', encoding='utf-8') as fh:
        json.dump(data, fh, indent=2)
    return fpath


def export_chart_pdf(hit_rate_history: Iterable[float], fpath: str) -> str:
    """Render the hit-rate history (percent per access) to a PDF with matplotlib."""
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    data = list(hit_rate_history) or [0]
    fig, ax = plt.subplots(figsize=(6, 2))
    ax.plot(range(len(data)), data, color='#FFA500', linewidth=2)
    ax.fill_between(range(len(data)), data, color='#FFA500', alpha=0.1)
    ax.set_ylim(0, 100)
    ax.set_xlabel('Access')
    ax.set_ylabel('Hit rate (%)')
    ax.grid(False)
    fig.tight_layout()
    fig.savefig(fpath, format='pdf', dpi=150)
    plt.close(fig)
    return fpath


class Exporter:
    CSV_FIELDS = ['accesses', 'hits', 'misses', 'hit_rate', 'miss_rate', 'reads', 'writes',
                  'writebacks', 'memory_reads', 'memory_writes']

    @staticmethod
    def export_stats_csv(path: str, stats: StatisticsSnapshot):
        row = stats.as_dict()
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(Exporter.CSV_FIELDS)
            writer.writerow([row[k] for k in Exporter.CSV_FIELDS])

    @staticmethod
    def format_report(config, stats: StatisticsSnapshot, results: Iterable = (), elapsed: float = 0.0,
                      trace_file: Optional[str] = None, verbose: bool = False) -> str:
        """Plain-text statistics report.

        `results` holds trace results (objects with .entry, .result, .error).
        Per-access details are listed when verbose or for at most 100 entries.
        """
        results = list(results)
        bar = "=" * 40
        out = [bar, "Cache Simulator Statistics Report", bar,
               f"Generated: {datetime.now():%Y-%m-%d %H:%M:%S}", "",
               "CACHE CONFIGURATION:", "-" * 19, config.describe(),
               "SIMULATION DETAILS:", "-" * 18,
               f"Total Memory Accesses: {len(results)}",
               f"Simulation Time: {elapsed:.6f} seconds"]
        if trace_file:
            out.append(f"Input Trace File: {trace_file}")
        out += ["", "CACHE STATISTICS:", "-" * 17, stats.describe()]
        if results and (verbose or len(results) <= 100):
            out += ["ACCESS DETAILS:", "-" * 14]
            for i, r in enumerate(results, 1):
                if r.error is not None:
                    out.append(f"{i:6d}: {r.error}")
                    continue
                out.append(f"{i:6d}: 0x{r.entry.address:08x} ({r.entry.operation.name:>5}) -> {r.result.label}")
            out.append("")
        if results and elapsed > 0:
            out += ["PERFORMANCE SUMMARY:", "-" * 19,
                    f"Accesses per second: {len(results) / elapsed:.0f}",
                    f"Average access time: {elapsed * 1000000 / len(results):.3f} microseconds", ""]
        out += [bar, "End of Report", bar]
        return "\n".join(out) + "\n"

    @staticmethod
    def write_report(path: str, config, stats: StatisticsSnapshot, results: Iterable = (), elapsed: float = 0.0,
                     trace_file: Optional[str] = None, verbose: bool = False) -> str:
        text = Exporter.format_report(config, stats, results, elapsed, trace_file, verbose)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        return path


__all__ = ["Exporter", "Statistics", "StatisticsSnapshot", "export_chart_json", "export_chart_pdf"]
