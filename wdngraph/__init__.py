"""wdngraph: water distribution network model engine.

wdngraph keeps a hydraulic network (junctions, reservoirs, tanks, pipes,
pumps, valves) consistent under edits: an asset store with a topology index,
spatial allocation of customer demand points onto pipes, computed junction
demands, invertible transactions with undo/redo, and an EPANET INP codec.

Example:
    from wdngraph import parse_inp, reverse_link, ModelHistory, build_inp

    model, issues = parse_inp(text)
    history = ModelHistory(model)
    history.transact(reverse_link(model, "P1"))
    history.undo()
    inp = build_inp(model)
"""

from __future__ import annotations

from wdngraph import cli, logging
from wdngraph._version import __version__
from wdngraph.config import MODEL_CONFIG, ModelConfig, load_config
from wdngraph.errors import (
    InvariantViolation,
    NotALink,
    NotFound,
    ParseError,
    WdnGraphError,
)
from wdngraph.inp import IssueKind, ParserIssues, ValidationIssue, build_inp, parse_inp
from wdngraph.model import (
    AssetType,
    CustomerPoint,
    HydraulicModel,
    ModelHistory,
    Moment,
    apply_moment,
    compute_demands,
    compute_junction_demand,
    initialize_hydraulic_model,
)
from wdngraph.model.operations import (
    add_customer_points,
    add_link,
    add_node,
    change_property,
    delete_assets,
    delete_customer_points,
    move_customer_point,
    move_node,
    replace_link_geometry,
    reverse_link,
)
from wdngraph.model.stats import compute_property_stats
from wdngraph.simulation import (
    SimulationResult,
    SimulationStatus,
    attach_simulation,
    replace_ids_with_labels,
    run_simulation,
)
from wdngraph.types import DemandPolicy, DemandSplit

__all__ = [
    # Version
    "__version__",
    # Configuration
    "ModelConfig",
    "MODEL_CONFIG",
    "load_config",
    "DemandPolicy",
    "DemandSplit",
    # Errors
    "WdnGraphError",
    "NotFound",
    "NotALink",
    "ParseError",
    "InvariantViolation",
    # Model
    "AssetType",
    "CustomerPoint",
    "HydraulicModel",
    "initialize_hydraulic_model",
    "compute_demands",
    "compute_junction_demand",
    "compute_property_stats",
    # Transactions
    "Moment",
    "apply_moment",
    "ModelHistory",
    # Operations
    "reverse_link",
    "add_node",
    "add_link",
    "delete_assets",
    "move_node",
    "replace_link_geometry",
    "change_property",
    "add_customer_points",
    "move_customer_point",
    "delete_customer_points",
    # INP codec
    "parse_inp",
    "build_inp",
    "IssueKind",
    "ParserIssues",
    "ValidationIssue",
    # Simulation
    "SimulationStatus",
    "SimulationResult",
    "attach_simulation",
    "run_simulation",
    "replace_ids_with_labels",
    # Utilities
    "cli",
    "logging",
]
