"""Customer points: geolocated demand sources allocated onto pipes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from wdngraph.types import Position


@dataclass(frozen=True)
class CustomerPoint:
    """A metered customer with a demand at a position.

    Which pipe the point is allocated to is derived data kept by
    :class:`~wdngraph.model.customer_points_lookup.CustomerPointsLookup`.

    Attributes:
        id: Stable identifier.
        coordinates: Position of the customer.
        demand: Demand quantity in the model's flow units.
        label: Display label.
    """

    id: str
    coordinates: Position
    demand: float = 0.0
    label: str = ""

    def __post_init__(self) -> None:
        x, y = self.coordinates
        object.__setattr__(self, "coordinates", (float(x), float(y)))


#: Customer points keyed by id.
CustomerPoints = Dict[str, CustomerPoint]


def initialize_customer_points() -> CustomerPoints:
    return {}
