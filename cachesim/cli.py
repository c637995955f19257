"""Command line front end.

Usage examples:
    python run.py --cache-size 2048 --associativity 8 --replacement LRU
    python run.py -s 512 -b 16 -a 2 -r FIFO --addresses 0x0,0x10,0x20
    python run.py --interactive
    python run.py -t trace.txt -o results.txt -q

Without a trace file, addresses or scenario the default test pattern runs.
"""
import argparse
import logging
import sys
import time

from cachesim.core.config import (
    DEFAULT_ASSOCIATIVITY,
    DEFAULT_BLOCK_SIZE,
    DEFAULT_CACHE_SIZE,
    CacheConfig,
)
from cachesim.core.errors import CacheSimError, ConfigurationError
from cachesim.core.simulator import CacheSimulator
from cachesim.core.trace import read_trace_file
from cachesim.data.stats_export import Exporter, export_chart_json, export_chart_pdf
from cachesim.simulation.interactive import InteractiveSession
from cachesim.simulation.scenarios import PREDEFINED_SCENARIOS, default_pattern, scenario

logger = logging.getLogger("cachesim")


def _split(text):
    return [t.strip() for t in text.split(',') if t.strip()] if text else []


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cachesim", description="Cache Simulator - Command Line Interface")
    p.add_argument('-s', '--cache-size', type=int, default=DEFAULT_CACHE_SIZE, help='cache size in bytes (default: 1024)')
    p.add_argument('-b', '--block-size', type=int, default=DEFAULT_BLOCK_SIZE, help='block size in bytes (default: 32)')
    p.add_argument('-a', '--associativity', type=int, default=DEFAULT_ASSOCIATIVITY,
                   help='associativity (1=direct, 0=fully, default: 4)')
    p.add_argument('-r', '--replacement', default='LRU', help='LRU|FIFO|RANDOM (default: LRU)')
    p.add_argument('-w', '--write-policy', default='WRITE_THROUGH', help='WRITE_THROUGH|WRITE_BACK')
    p.add_argument('-m', '--write-miss', default='WRITE_ALLOCATE', help='WRITE_ALLOCATE|NO_WRITE_ALLOCATE')
    p.add_argument('--seed', type=int, default=None, help='seed for RANDOM replacement and the Random Access scenario')
    p.add_argument('-t', '--trace-file', help='input trace file with memory accesses')
    p.add_argument('-o', '--output-file', default='stats.txt', help="statistics report file ('' to skip)")
    p.add_argument('-A', '--addresses', help='comma-separated addresses, e.g. 0x0,0x20,0x40')
    p.add_argument('-O', '--operations', help='comma-separated operations, e.g. read,WRITE,read')
    p.add_argument('--scenario', choices=sorted(PREDEFINED_SCENARIOS), help='run a predefined access scenario')
    p.add_argument('--csv', help='also export statistics as CSV')
    p.add_argument('--json', help='also export statistics and hit-rate history as JSON')
    p.add_argument('--chart', help='also export the hit-rate history chart as PDF')
    p.add_argument('-i', '--interactive', action='store_true', help='interactive mode')
    p.add_argument('-v', '--verbose', action='store_true', help='verbose output')
    p.add_argument('-q', '--quiet', action='store_true', help='suppress console output')
    return p


def _config_from_args(args) -> CacheConfig:
    return CacheConfig(
        cache_size=args.cache_size,
        block_size=args.block_size,
        associativity=args.associativity,
        replacement=args.replacement,
        write_policy=args.write_policy,
        write_miss_policy=args.write_miss,
        seed=args.seed,
    )


def _entries_from_args(args):
    if args.trace_file:
        entries = read_trace_file(args.trace_file)
        if not entries:
            raise CacheSimError(f"no valid memory accesses found in trace file '{args.trace_file}'")
        return entries
    if args.addresses:
        addrs = _split(args.addresses)
        ops = _split(args.operations)
        ops += ['READ'] * (len(addrs) - len(ops))
        # raw pairs: bad items become per-entry errors in the trace report
        return list(zip(addrs, ops))
    if args.scenario:
        return scenario(args.scenario, seed=args.seed)
    if not args.quiet:
        print("Using default test pattern.\n")
    return default_pattern()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.ERROR if args.quiet else (logging.INFO if args.verbose else logging.WARNING)
    logging.basicConfig(level=level, format='%(levelname)s: %(message)s')

    try:
        config = _config_from_args(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    sim = CacheSimulator()
    cache = sim.configure(config)
    if not args.quiet:
        print("Cache Simulator CLI")
        print("==================")
        print(config.describe())

    if args.interactive:
        InteractiveSession(sim, verbose=args.verbose).run()
        return 0

    try:
        entries = _entries_from_args(args)
    except (OSError, CacheSimError) as e:
        logger.error("cannot load accesses: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2

    start = time.perf_counter()
    report = sim.trace(entries)
    elapsed = time.perf_counter() - start

    if not args.quiet:
        print("Memory Access Simulation:")
        print("========================")
        for r in report:
            if r.error is not None:
                print(f"Skipped {r.entry!r}: {r.error}")
            else:
                print(f"Access 0x{r.entry.address:x} ({r.entry.operation.name}) -> {r.result.label}")
        print()
        print(report.stats.describe())
        if args.verbose:
            print(cache.format_contents())

    if args.output_file:
        Exporter.write_report(args.output_file, config, report.stats, report.results, elapsed,
                              trace_file=args.trace_file, verbose=args.verbose)
        if not args.quiet:
            print(f"Statistics written to {args.output_file}")
    if args.csv:
        Exporter.export_stats_csv(args.csv, report.stats)
    if args.json:
        export_chart_json(cache.hit_rate_history, report.stats, args.json, config=config.as_dict())
    if args.chart:
        export_chart_pdf(cache.hit_rate_history, args.chart)
    return 0


if __name__ == '__main__':
    sys.exit(main())
