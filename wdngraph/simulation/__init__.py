"""Simulation overlay and solver integration."""

from wdngraph.simulation.report import replace_ids_with_labels
from wdngraph.simulation.results import (
    SimulationOverlay,
    SimulationResult,
    SimulationStatus,
    attach_simulation,
)
from wdngraph.simulation.run import Solver, run_simulation

__all__ = [
    "SimulationStatus",
    "SimulationResult",
    "SimulationOverlay",
    "attach_simulation",
    "run_simulation",
    "Solver",
    "replace_ids_with_labels",
]
