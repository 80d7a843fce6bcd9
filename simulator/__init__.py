"""Simulated bucket scheduler for exercising the harness without a kernel."""

from simulator.events import Event
from simulator.fair_share import SimulatedProcess, SimulatedScheduler
from simulator.stats import SimulationStats

__all__ = [
    "Event",
    "SimulatedProcess",
    "SimulatedScheduler",
    "SimulationStats",
]
