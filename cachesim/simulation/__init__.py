"""Simulation package shim.

This module exposes the Simulation class and the interactive session at
`cachesim.simulation` so callers can write `from cachesim.simulation import Simulation`.
"""
from .simulation import Simulation
from .interactive import InteractiveSession

__all__ = ["InteractiveSession", "Simulation"]
