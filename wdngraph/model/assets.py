"""Asset value types: the tagged variants of a water network.

Each asset kind is its own frozen dataclass carrying a ``type`` tag. There is
no inheritance between kinds; consumers dispatch on ``asset.type`` (or the
``is_node``/``is_link`` helpers). Changing an asset means building a new value
with the same id via :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union

from wdngraph.types import LineCoordinates, Position


class AssetType(str, Enum):
    JUNCTION = "junction"
    RESERVOIR = "reservoir"
    TANK = "tank"
    PIPE = "pipe"
    PUMP = "pump"
    VALVE = "valve"


NODE_TYPES = frozenset({AssetType.JUNCTION, AssetType.RESERVOIR, AssetType.TANK})
LINK_TYPES = frozenset({AssetType.PIPE, AssetType.PUMP, AssetType.VALVE})


class PipeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CV = "cv"


class PumpStatus(str, Enum):
    ON = "on"
    OFF = "off"


class PumpDefinition(str, Enum):
    CURVE = "curve"
    POWER = "power"


class ValveKind(str, Enum):
    PRV = "prv"
    PSV = "psv"
    PBV = "pbv"
    FCV = "fcv"
    TCV = "tcv"
    GPV = "gpv"


class ValveStatus(str, Enum):
    ACTIVE = "active"
    OPEN = "open"
    CLOSED = "closed"


def _as_position(value) -> Optional[Position]:
    if value is None:
        return None
    x, y = value
    return (float(x), float(y))


def _as_line(value) -> Optional[LineCoordinates]:
    if value is None:
        return None
    line = tuple(_as_position(v) for v in value)
    if len(line) < 2:
        raise ValueError(f"A link polyline needs at least 2 vertices, got {len(line)}")
    return line


@dataclass(frozen=True)
class Junction:
    """Demand node.

    Attributes:
        id: Stable identifier.
        label: Display label (unique among nodes).
        coordinates: Position, or None when geometry is missing.
        elevation: Elevation above datum.
        base_demand: Manually entered demand.
        demand_pattern: Optional id of the multiplier pattern.
    """

    id: str
    label: str = ""
    coordinates: Optional[Position] = None
    elevation: float = 0.0
    base_demand: float = 0.0
    demand_pattern: Optional[str] = None
    type: AssetType = field(default=AssetType.JUNCTION, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "coordinates", _as_position(self.coordinates))


@dataclass(frozen=True)
class Reservoir:
    """Fixed-head source. ``elevation`` is the total head."""

    id: str
    label: str = ""
    coordinates: Optional[Position] = None
    elevation: float = 0.0
    head_pattern: Optional[str] = None
    type: AssetType = field(default=AssetType.RESERVOIR, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "coordinates", _as_position(self.coordinates))


@dataclass(frozen=True)
class Tank:
    """Storage node; levels are measured from ``elevation``."""

    id: str
    label: str = ""
    coordinates: Optional[Position] = None
    elevation: float = 0.0
    initial_level: float = 0.0
    min_level: float = 0.0
    max_level: float = 0.0
    diameter: float = 0.0
    min_volume: float = 0.0
    volume_curve: Optional[str] = None
    overflow: bool = False
    type: AssetType = field(default=AssetType.TANK, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "coordinates", _as_position(self.coordinates))


@dataclass(frozen=True)
class Pipe:
    """Pipe link between two nodes.

    Attributes:
        connections: ``(start_node_id, end_node_id)``.
        coordinates: Polyline from start node to end node, or None.
        length: Pipe length (not derived from the polyline).
        diameter: Internal diameter.
        roughness: Coefficient for the model's headloss formula.
        minor_loss: Minor loss coefficient.
        status: Initial status; ``cv`` makes the pipe a check valve.
    """

    id: str
    connections: Tuple[str, str]
    label: str = ""
    coordinates: Optional[LineCoordinates] = None
    length: float = 0.0
    diameter: float = 0.0
    roughness: float = 0.0
    minor_loss: float = 0.0
    status: PipeStatus = PipeStatus.OPEN
    type: AssetType = field(default=AssetType.PIPE, init=False)

    def __post_init__(self) -> None:
        _init_link(self)

    @property
    def start_node_id(self) -> str:
        return self.connections[0]

    @property
    def end_node_id(self) -> str:
        return self.connections[1]


@dataclass(frozen=True)
class Pump:
    """Pump defined by a head curve or by constant power."""

    id: str
    connections: Tuple[str, str]
    label: str = ""
    coordinates: Optional[LineCoordinates] = None
    definition: PumpDefinition = PumpDefinition.POWER
    curve_id: Optional[str] = None
    power: float = 0.0
    speed: float = 1.0
    speed_pattern: Optional[str] = None
    status: PumpStatus = PumpStatus.ON
    type: AssetType = field(default=AssetType.PUMP, init=False)

    def __post_init__(self) -> None:
        _init_link(self)

    @property
    def start_node_id(self) -> str:
        return self.connections[0]

    @property
    def end_node_id(self) -> str:
        return self.connections[1]


@dataclass(frozen=True)
class Valve:
    """Control valve; GPV valves reference a headloss curve instead of a setting."""

    id: str
    connections: Tuple[str, str]
    label: str = ""
    coordinates: Optional[LineCoordinates] = None
    valve_kind: ValveKind = ValveKind.PRV
    diameter: float = 0.0
    setting: float = 0.0
    curve_id: Optional[str] = None
    minor_loss: float = 0.0
    status: ValveStatus = ValveStatus.ACTIVE
    type: AssetType = field(default=AssetType.VALVE, init=False)

    def __post_init__(self) -> None:
        _init_link(self)

    @property
    def start_node_id(self) -> str:
        return self.connections[0]

    @property
    def end_node_id(self) -> str:
        return self.connections[1]


def _init_link(link) -> None:
    start, end = link.connections
    object.__setattr__(link, "connections", (str(start), str(end)))
    object.__setattr__(link, "coordinates", _as_line(link.coordinates))


NodeAsset = Union[Junction, Reservoir, Tank]
LinkAsset = Union[Pipe, Pump, Valve]
Asset = Union[Junction, Reservoir, Tank, Pipe, Pump, Valve]

ASSET_CLASSES = {
    AssetType.JUNCTION: Junction,
    AssetType.RESERVOIR: Reservoir,
    AssetType.TANK: Tank,
    AssetType.PIPE: Pipe,
    AssetType.PUMP: Pump,
    AssetType.VALVE: Valve,
}

# Fields that define identity or structure rather than engineering data
STRUCTURAL_FIELDS = frozenset({"id", "type", "connections", "coordinates", "label"})


def is_node(asset: Asset) -> bool:
    return asset.type in NODE_TYPES


def is_link(asset: Asset) -> bool:
    return asset.type in LINK_TYPES


def reversed_link(link: LinkAsset) -> LinkAsset:
    """Return ``link`` with its connections swapped and vertices reversed.

    Every other attribute (id, label, diameter, status, settings) is kept.
    Applying this twice yields a value equal to the original.
    """
    start, end = link.connections
    coordinates = None
    if link.coordinates is not None:
        coordinates = tuple(reversed(link.coordinates))
    return replace(link, connections=(end, start), coordinates=coordinates)
