"""Running an external hydraulic solver against a model."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Callable

from wdngraph.inp.writer import build_inp
from wdngraph.logging import get_logger
from wdngraph.simulation.results import (
    SimulationOverlay,
    SimulationResult,
    attach_simulation,
)

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel

logger = get_logger(__name__)

#: Solver contract: INP text in, status/report/series out.
Solver = Callable[[str], SimulationResult]


def run_simulation(
    model: "HydraulicModel",
    solver: Solver,
    customer_demands: bool = True,
) -> SimulationOverlay:
    """Export ``model``, solve it and attach the results.

    The overlay is stamped with the version captured before the solver is
    called, so edits made while the solve was in flight make it stale.

    Args:
        model: The model to simulate.
        solver: Callable taking INP text and returning a SimulationResult.
        customer_demands: Export demands from allocated customer points.

    Returns:
        The attached overlay.
    """
    version = model.version
    inp = build_inp(model, customer_demands=customer_demands)
    start = perf_counter()
    result = solver(inp)
    elapsed = perf_counter() - start
    logger.info(
        "Simulation finished with status %s in %.3f s (version %s)",
        result.status.value,
        elapsed,
        version,
    )
    return attach_simulation(model, result, version=version)
