"""Interactive (REPL) mode over a CacheSimulator."""
import sys

from cachesim.core.errors import CacheSimError
from cachesim.core.trace import parse_address
from cachesim.core.config import Operation

HELP_TEXT = """
  access <address> <READ|WRITE>        - access one address
  batch <a1,a2,...> <op1,op2,...>      - access several addresses in order
  stats                                - show current statistics
  reset                                - reset cache and statistics
  config                               - show cache configuration
  contents                             - show cache contents
  help                                 - show this help
  quit | exit                          - leave interactive mode"""
PROMPT = "cache> "


class InteractiveSession:
    def __init__(self, simulator, verbose: bool = False):
        self.simulator = simulator
        self.verbose = verbose
        self.running = True

    def _format_access(self, address: int, operation: Operation) -> str:
        record = self.simulator.cache.access_detailed(address, operation)
        line = f"Access {address:#x} ({operation.name}) -> {record.result.label}"
        if self.verbose:
            line += f"  [tag={record.tag:#x} set={record.set_index} way={record.way_index}]"
            if record.evicted is not None:
                line += f" evicted tag {record.evicted.tag:#x}" + (" (writeback)" if record.writeback else "")
        return line

    def execute(self, line: str) -> str:
        """Run one command line and return the text to show."""
        parts = line.split()
        if not parts:
            return ""
        command, args = parts[0].lower(), parts[1:]
        try:
            if command in ("quit", "exit"):
                self.running = False
                return ""
            if command == "access":
                if len(args) < 2:
                    return "Usage: access <address> <READ|WRITE>"
                return self._format_access(parse_address(args[0]), Operation.parse(args[1]))
            if command == "batch":
                if len(args) < 2:
                    return "Usage: batch <addr1,addr2,...> <op1,op2,...>"
                addrs = [a for a in args[0].split(",") if a]
                ops = [o for o in args[1].split(",") if o]
                lines = []
                for a, o in zip(addrs, ops):
                    try:
                        lines.append(self._format_access(parse_address(a), Operation.parse(o)))
                    except CacheSimError as e:
                        lines.append(f"Error: {e}")
                return "\n".join(lines)
            if command == "stats":
                return self.simulator.stats.describe()
            if command == "reset":
                self.simulator.reset()
                return "Cache reset successfully."
            if command == "config":
                return self.simulator.info().config.describe()
            if command == "contents":
                return self.simulator.cache.format_contents()
            if command == "help":
                return "Commands:" + HELP_TEXT
        except CacheSimError as e:
            return f"Error: {e}"
        return "Unknown command. Type 'help' for available commands."

    def run(self, stdin=None, stdout=None):
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        print("\n=== Interactive Mode ===", file=stdout)
        print("Commands:" + HELP_TEXT + "\n", file=stdout)
        while self.running:
            stdout.write(PROMPT)
            stdout.flush()
            line = stdin.readline()
            if not line:
                break
            out = self.execute(line)
            if out:
                print(out, file=stdout)
