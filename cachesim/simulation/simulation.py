"""Simulation runner used by the CLI

Turns an input string or a predefined scenario into a sequence of accesses
and replays it through one CacheSimulator over several passes.
"""
import logging

from cachesim.core.config import CacheConfig, Operation
from cachesim.core.errors import ParseError
from cachesim.core.simulator import CacheSimulator
from cachesim.core.trace import parse_address
from cachesim.simulation.scenarios import scenario

logger = logging.getLogger(__name__)


def parse_items(text: str):
    """Parse "1,2,3,40-ff" style input.

    Plain items are reads. "addr-data" is a store: the data part is shown to
    the user but not modelled.
    """
    items = []
    for raw in text.split(','):
        raw = raw.strip()
        if not raw:
            continue
        if '-' in raw:
            addr, data = map(str.strip, raw.split('-', 1))
            items.append((addr, Operation.WRITE, data))
        else:
            items.append((raw, Operation.READ, None))
    return items


class Simulation:
    def __init__(self, config: CacheConfig):
        self.config = config
        self.simulator = None

    def _create_cache(self):
        # Only create a cache if one does not already exist.
        if self.simulator is not None:
            return
        self.simulator = CacheSimulator()
        self.simulator.configure(self.config)

    def run_simulation(self, input_text: str = '', scenario_name: str = 'Matrix Traversal', num_passes: int = 1):
        # Create the cache on first use and keep it afterwards. This preserves
        # state (replacement metadata, dirty bits, statistics) across
        # multiple traversals of the same scenario.
        self._create_cache()
        if input_text.strip():
            items = parse_items(input_text)
        else:
            items = [(e.address, e.operation, None) for e in scenario(scenario_name, seed=self.config.seed)]

        results = []
        for p in range(num_passes):
            for idx, (addr, op, data) in enumerate(items):
                try:
                    address = parse_address(addr)
                except ParseError as e:
                    logger.warning("skipping input %r: %s", addr, e)
                    results.append({'error': str(e), 'input': addr, '_pass': p, '_idx': idx})
                    continue
                record = self.simulator.cache.access_detailed(address, op)
                info = record.as_dict()
                if data is not None:
                    # attach store value so the caller can display what was written
                    info['value'] = data
                info['_pass'] = p
                info['_idx'] = idx
                results.append(info)
        return results
