"""Hydraulic network model package.

Assets, the topology index, customer point allocation, demands, and the
Moment-based transaction log that keeps them consistent.
"""

from wdngraph.model.assets import (
    Asset,
    AssetType,
    Junction,
    Pipe,
    PipeStatus,
    Pump,
    PumpDefinition,
    PumpStatus,
    Reservoir,
    Tank,
    Valve,
    ValveKind,
    ValveStatus,
)
from wdngraph.model.assets_map import AssetsMap
from wdngraph.model.customer_points import CustomerPoint
from wdngraph.model.customer_points_lookup import Allocation, CustomerPointsLookup
from wdngraph.model.demands import compute_demands, compute_junction_demand
from wdngraph.model.history import ModelHistory
from wdngraph.model.hydraulic_model import (
    Curve,
    HydraulicModel,
    initialize_hydraulic_model,
)
from wdngraph.model.moment import Moment, apply_moment
from wdngraph.model.topology import Topology

__all__ = [
    # Assets
    "Asset",
    "AssetType",
    "Junction",
    "Reservoir",
    "Tank",
    "Pipe",
    "Pump",
    "Valve",
    "PipeStatus",
    "PumpStatus",
    "PumpDefinition",
    "ValveKind",
    "ValveStatus",
    # Stores and indices
    "AssetsMap",
    "Topology",
    "CustomerPoint",
    "CustomerPointsLookup",
    "Allocation",
    # Model
    "Curve",
    "HydraulicModel",
    "initialize_hydraulic_model",
    # Demands
    "compute_demands",
    "compute_junction_demand",
    # Transactions
    "Moment",
    "apply_moment",
    "ModelHistory",
]
