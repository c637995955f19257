"""Entry point for the Cache Memory Simulator.

Usage:
    python run.py                # runs the default access pattern
    python run.py --interactive  # starts the interactive prompt
    python run.py --help         # lists every option
"""
import sys

from cachesim.cli import main


if __name__ == '__main__':
    sys.exit(main())
