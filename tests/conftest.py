"""Global pytest configuration and shared model fixtures.

`ModelBuilder` assembles small hydraulic models fluently. Link coordinates
default to the straight line between the endpoint node coordinates. The
finished model is produced through ``apply_moment`` so every derived index
is populated the same way an edit would populate it.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from wdngraph.config import ModelConfig
from wdngraph.model.assets import (
    Asset,
    Junction,
    Pipe,
    Pump,
    Reservoir,
    Tank,
    Valve,
)
from wdngraph.model.customer_points import CustomerPoint
from wdngraph.model.hydraulic_model import HydraulicModel, initialize_hydraulic_model
from wdngraph.model.moment import Moment, apply_moment
from wdngraph.types import Position
from wdngraph.utils.ids import IdGenerator, SequentialVersionGenerator


class ModelBuilder:
    """Fluent builder of test models.

    Example:
        model = (
            ModelBuilder()
            .a_junction("J1", (0, 0))
            .a_junction("J2", (10, 0))
            .a_pipe("P1", "J1", "J2")
            .build()
        )
    """

    def __init__(self, config: Optional[ModelConfig] = None) -> None:
        self.config = config
        self._nodes: Dict[str, Asset] = {}
        self._links: List[Asset] = []
        self._points: List[CustomerPoint] = []

    def _line(
        self, start: str, end: str, vertices: Sequence[Position]
    ) -> Optional[Tuple[Position, ...]]:
        a = self._nodes[start].coordinates
        b = self._nodes[end].coordinates
        if a is None or b is None:
            return None
        return (a, *vertices, b)

    def a_junction(
        self, node_id: str, coordinates: Optional[Position] = (0, 0), **values
    ) -> "ModelBuilder":
        values.setdefault("label", node_id)
        self._nodes[node_id] = Junction(id=node_id, coordinates=coordinates, **values)
        return self

    def a_reservoir(
        self, node_id: str, coordinates: Optional[Position] = (0, 0), **values
    ) -> "ModelBuilder":
        values.setdefault("label", node_id)
        self._nodes[node_id] = Reservoir(id=node_id, coordinates=coordinates, **values)
        return self

    def a_tank(
        self, node_id: str, coordinates: Optional[Position] = (0, 0), **values
    ) -> "ModelBuilder":
        values.setdefault("label", node_id)
        self._nodes[node_id] = Tank(id=node_id, coordinates=coordinates, **values)
        return self

    def _link(self, cls, link_id, start, end, vertices, values) -> "ModelBuilder":
        values.setdefault("label", link_id)
        if "coordinates" not in values:
            values["coordinates"] = self._line(start, end, vertices)
        self._links.append(cls(id=link_id, connections=(start, end), **values))
        return self

    def a_pipe(
        self, link_id: str, start: str, end: str, vertices=(), **values
    ) -> "ModelBuilder":
        return self._link(Pipe, link_id, start, end, vertices, values)

    def a_pump(
        self, link_id: str, start: str, end: str, vertices=(), **values
    ) -> "ModelBuilder":
        return self._link(Pump, link_id, start, end, vertices, values)

    def a_valve(
        self, link_id: str, start: str, end: str, vertices=(), **values
    ) -> "ModelBuilder":
        return self._link(Valve, link_id, start, end, vertices, values)

    def a_customer_point(
        self, point_id: str, coordinates: Position, demand: float = 0.0
    ) -> "ModelBuilder":
        self._points.append(CustomerPoint(point_id, coordinates, demand=demand))
        return self

    def build(self) -> HydraulicModel:
        model = initialize_hydraulic_model(
            config=self.config,
            id_generator=IdGenerator(start=1000),
            version_generator=SequentialVersionGenerator(),
        )
        apply_moment(
            model,
            Moment(
                note="Build test model",
                put_assets=tuple(self._nodes.values()) + tuple(self._links),
                put_customer_points=tuple(self._points),
            ),
        )
        return model


@pytest.fixture
def builder() -> ModelBuilder:
    """A fresh builder with the default engine configuration."""
    return ModelBuilder()


@pytest.fixture
def simple_model() -> HydraulicModel:
    """Reservoir feeding two junctions through a pump and a pipe.

    R1 --PU1--> J1 --P1--> J2, with one bend in P1.
    """
    return (
        ModelBuilder()
        .a_reservoir("R1", (0, 0), elevation=50.0)
        .a_junction("J1", (10, 0), elevation=5.0, base_demand=1.5)
        .a_junction("J2", (20, 10), elevation=3.0, base_demand=2.5)
        .a_pump("PU1", "R1", "J1", power=15.0)
        .a_pipe(
            "P1", "J1", "J2", vertices=[(15, 0)], length=100.0, diameter=200.0
        )
        .build()
    )


SAMPLE_INP = """\
[TITLE]
Sample network

[JUNCTIONS]
;ID   Elev   Demand   Pattern
 J1   10     1.5      PAT1
 J2   12     0

[RESERVOIRS]
 R1   100

[TANKS]
 T1   20   5   1   10   15   0   *   NO

[PIPES]
 P1   J1   J2   100   200   130   0     Open
 P2   J2   T1   50    150   120   0.5   CV

[PUMPS]
 PU1  R1   J1   HEAD C1   SPEED 1.2

[VALVES]
 V1   J2   T1   150   PRV   30   0

[STATUS]
 PU1  Closed
 V1   Open

[PATTERNS]
 PAT1  1  1.2  0.8

[CURVES]
;PUMP: main pump
 C1   100   50

[OPTIONS]
 Units              LPS
 Headloss           D-W
 Demand Multiplier  1.0

[TIMES]
 Duration            24:00
 Hydraulic Timestep  1:00

[COORDINATES]
 J1   1   1
 J2   2   1
 R1   0   1
 T1   3   1

[VERTICES]
 P1   1.5   1.2

[END]
"""


@pytest.fixture
def sample_inp() -> str:
    """A small INP document touching every supported section."""
    return SAMPLE_INP
