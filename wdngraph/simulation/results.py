"""Simulation results attached to a model as a read-only overlay.

The overlay is stamped with the model version the solve started from. The
model may keep changing afterwards; an overlay whose version differs from
the model's is stale and must be discarded by the caller, never merged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from wdngraph.logging import get_logger

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel

logger = get_logger(__name__)

#: Asset id -> property name -> values per reporting step.
Series = Dict[str, Dict[str, List[float]]]


class SimulationStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"


@dataclass
class SimulationResult:
    """What a solver returns for one INP document.

    Attributes:
        status: Outcome of the solve.
        report: Solver report text (asset ids as written in the INP).
        nodes: Per-node series, e.g. ``{"J1": {"pressure": [..]}}``.
        links: Per-link series, e.g. ``{"P1": {"flow": [..]}}``.
    """

    status: SimulationStatus
    report: str = ""
    nodes: Series = field(default_factory=dict)
    links: Series = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.status, str) and not isinstance(
            self.status, SimulationStatus
        ):
            self.status = SimulationStatus(self.status)


def _freeze(series: Series) -> Mapping[str, Mapping[str, Sequence[float]]]:
    return MappingProxyType(
        {
            asset_id: MappingProxyType(
                {name: tuple(values) for name, values in properties.items()}
            )
            for asset_id, properties in series.items()
        }
    )


def _frame(series: Mapping[str, Mapping[str, Sequence[float]]]) -> pd.DataFrame:
    rows = [
        {"id": asset_id, "property": name, "step": step, "value": value}
        for asset_id, properties in series.items()
        for name, values in properties.items()
        for step, value in enumerate(values)
    ]
    return pd.DataFrame(rows, columns=["id", "property", "step", "value"])


@dataclass(frozen=True)
class SimulationOverlay:
    """Immutable view over one simulation's results.

    Attributes:
        version: Model version the solve started from.
        status: Solver outcome.
        report: Solver report text.
        nodes: Read-only per-node series.
        links: Read-only per-link series.
    """

    version: str
    status: SimulationStatus
    report: str
    nodes: Mapping[str, Mapping[str, Sequence[float]]]
    links: Mapping[str, Mapping[str, Sequence[float]]]

    def is_stale(self, model: "HydraulicModel") -> bool:
        return model.version != self.version

    def value(self, asset_id: str, name: str, step: int = 0) -> Optional[float]:
        """Value of ``name`` for a node or link at ``step``; None if absent."""
        properties = self.nodes.get(asset_id) or self.links.get(asset_id)
        if not properties or name not in properties:
            return None
        values = properties[name]
        if not -len(values) <= step < len(values):
            return None
        return values[step]

    def to_frame(self, kind: str = "nodes") -> pd.DataFrame:
        """Long-format table with columns ``id, property, step, value``.

        Args:
            kind: ``"nodes"`` or ``"links"``.
        """
        if kind == "nodes":
            return _frame(self.nodes)
        if kind == "links":
            return _frame(self.links)
        raise ValueError(f"Unknown result kind '{kind}', expected nodes or links")

    def to_wide(self, name: str, kind: str = "nodes") -> pd.DataFrame:
        """One column per asset, one row per step, for a single property."""
        frame = self.to_frame(kind)
        frame = frame[frame["property"] == name]
        return frame.pivot(index="step", columns="id", values="value")


def attach_simulation(
    model: "HydraulicModel",
    result: SimulationResult,
    version: Optional[str] = None,
) -> SimulationOverlay:
    """Store ``result`` on ``model`` as its simulation overlay.

    Assets, topology and the version are not touched.

    Args:
        model: Target model.
        result: Solver output.
        version: Version the solve started from; defaults to the current
            model version.

    Returns:
        The attached overlay.
    """
    overlay = SimulationOverlay(
        version=model.version if version is None else version,
        status=result.status,
        report=result.report,
        nodes=_freeze(result.nodes),
        links=_freeze(result.links),
    )
    model.simulation = overlay
    if overlay.is_stale(model):
        logger.warning(
            "Attached simulation for version %s to model at version %s (stale)",
            overlay.version,
            model.version,
        )
    return overlay
