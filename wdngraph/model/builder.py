"""AssetBuilder: new asset values with default quantities, ids and labels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from wdngraph.model.assets import (
    AssetType,
    Junction,
    Pipe,
    Pump,
    PumpDefinition,
    Reservoir,
    Tank,
    Valve,
    ValveKind,
)
from wdngraph.model.labels import LabelManager
from wdngraph.types import Position
from wdngraph.utils.ids import IdGenerator


@dataclass(frozen=True)
class DefaultQuantities:
    """Engineering defaults for newly drawn assets (SI units)."""

    junction_elevation: float = 0.0
    junction_base_demand: float = 0.0
    reservoir_head: float = 0.0
    tank_elevation: float = 0.0
    tank_initial_level: float = 10.0
    tank_min_level: float = 0.0
    tank_max_level: float = 20.0
    tank_diameter: float = 50.0
    pipe_length: float = 1000.0
    pipe_diameter: float = 300.0
    pipe_roughness: float = 130.0
    pipe_minor_loss: float = 0.0
    pump_power: float = 20.0
    pump_speed: float = 1.0
    valve_diameter: float = 300.0
    valve_setting: float = 0.0


class AssetBuilder:
    """Builds assets, drawing a fresh id and a fresh label for each.

    Explicit keyword overrides win over the defaults.
    """

    def __init__(
        self,
        defaults: Optional[DefaultQuantities] = None,
        id_generator: Optional[IdGenerator] = None,
        label_manager: Optional[LabelManager] = None,
    ) -> None:
        self.defaults = defaults or DefaultQuantities()
        self.id_generator = id_generator or IdGenerator()
        self.label_manager = label_manager or LabelManager()

    def _identity(self, asset_type: AssetType, overrides: dict) -> Tuple[str, str]:
        asset_id = overrides.pop("id", None)
        if asset_id is None:
            asset_id = self.id_generator.new_id()
        else:
            self.id_generator.observe(asset_id)
        label = overrides.pop("label", None)
        if label is None:
            label = self.label_manager.generate_for(asset_type, asset_id)
        return asset_id, label

    def build_junction(self, coordinates: Position, **overrides: Any) -> Junction:
        asset_id, label = self._identity(AssetType.JUNCTION, overrides)
        d = self.defaults
        values = {
            "elevation": d.junction_elevation,
            "base_demand": d.junction_base_demand,
        }
        values.update(overrides)
        return Junction(id=asset_id, label=label, coordinates=coordinates, **values)

    def build_reservoir(self, coordinates: Position, **overrides: Any) -> Reservoir:
        asset_id, label = self._identity(AssetType.RESERVOIR, overrides)
        values = {"elevation": self.defaults.reservoir_head}
        values.update(overrides)
        return Reservoir(id=asset_id, label=label, coordinates=coordinates, **values)

    def build_tank(self, coordinates: Position, **overrides: Any) -> Tank:
        asset_id, label = self._identity(AssetType.TANK, overrides)
        d = self.defaults
        values = {
            "elevation": d.tank_elevation,
            "initial_level": d.tank_initial_level,
            "min_level": d.tank_min_level,
            "max_level": d.tank_max_level,
            "diameter": d.tank_diameter,
        }
        values.update(overrides)
        return Tank(id=asset_id, label=label, coordinates=coordinates, **values)

    def build_pipe(
        self,
        connections: Tuple[str, str],
        coordinates: Sequence[Position],
        **overrides: Any,
    ) -> Pipe:
        asset_id, label = self._identity(AssetType.PIPE, overrides)
        d = self.defaults
        values = {
            "length": d.pipe_length,
            "diameter": d.pipe_diameter,
            "roughness": d.pipe_roughness,
            "minor_loss": d.pipe_minor_loss,
        }
        values.update(overrides)
        return Pipe(
            id=asset_id,
            label=label,
            connections=connections,
            coordinates=tuple(coordinates),
            **values,
        )

    def build_pump(
        self,
        connections: Tuple[str, str],
        coordinates: Sequence[Position],
        **overrides: Any,
    ) -> Pump:
        asset_id, label = self._identity(AssetType.PUMP, overrides)
        values = {
            "definition": PumpDefinition.POWER,
            "power": self.defaults.pump_power,
            "speed": self.defaults.pump_speed,
        }
        values.update(overrides)
        return Pump(
            id=asset_id,
            label=label,
            connections=connections,
            coordinates=tuple(coordinates),
            **values,
        )

    def build_valve(
        self,
        connections: Tuple[str, str],
        coordinates: Sequence[Position],
        **overrides: Any,
    ) -> Valve:
        asset_id, label = self._identity(AssetType.VALVE, overrides)
        values = {
            "valve_kind": ValveKind.PRV,
            "diameter": self.defaults.valve_diameter,
            "setting": self.defaults.valve_setting,
        }
        values.update(overrides)
        return Valve(
            id=asset_id,
            label=label,
            connections=connections,
            coordinates=tuple(coordinates),
            **values,
        )
