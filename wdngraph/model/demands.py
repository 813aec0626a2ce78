"""Effective junction demands under an allocation policy.

Demands are never stored; they are computed on read from the junction base
demands or from the customer points allocated to incident pipes.

Split convention for a customer point with demand ``d`` allocated at
``fraction`` along a pipe whose both endpoints are junctions:

- ``PROPORTIONAL``: the start node receives ``(1 - fraction) * d`` and the
  end node receives the remainder;
- ``NEAREST``: the whole of ``d`` goes to the start node when
  ``fraction <= 0.5``, otherwise to the end node;
- ``EQUAL``: each endpoint receives ``d / 2``.

If only one endpoint is a junction it receives all of ``d``. Demand that
cannot reach a junction (unallocated point, or a pipe between two
non-junction nodes) is reported as unassigned by :func:`compute_demands`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from wdngraph.errors import NotFound
from wdngraph.model.assets import AssetType, Pipe
from wdngraph.model.customer_points_lookup import Allocation
from wdngraph.types import DemandPolicy, DemandSplit

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel


@dataclass(frozen=True)
class Demands:
    """Demand settings carried by a model."""

    policy: DemandPolicy = DemandPolicy.NONE
    split: DemandSplit = DemandSplit.PROPORTIONAL


@dataclass
class DemandAllocation:
    """Result of :func:`compute_demands`.

    Attributes:
        junctions: Demand per junction id.
        unassigned: Customer point id -> demand that reached no junction.
    """

    junctions: Dict[str, float] = field(default_factory=dict)
    unassigned: Dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return sum(self.junctions.values()) + sum(self.unassigned.values())


def split_demand(
    demand: float,
    allocation: Allocation,
    pipe: Pipe,
    junction_ids: Tuple[bool, bool],
    split: DemandSplit,
) -> List[Tuple[str, float]]:
    """Shares of ``demand`` per pipe endpoint that is a junction.

    Args:
        demand: Customer point demand.
        allocation: Where the point attaches to ``pipe``.
        pipe: The allocated pipe.
        junction_ids: Whether the start/end node is a junction.
        split: Split convention.

    Returns:
        ``(node_id, share)`` pairs summing to ``demand``, or an empty list
        when neither endpoint is a junction.
    """
    start, end = pipe.connections
    start_ok, end_ok = junction_ids
    if not start_ok and not end_ok:
        return []
    if start_ok and not end_ok:
        return [(start, demand)]
    if end_ok and not start_ok:
        return [(end, demand)]
    if start == end:
        return [(start, demand)]

    if split == DemandSplit.NEAREST:
        return [(start, demand)] if allocation.fraction <= 0.5 else [(end, demand)]
    if split == DemandSplit.EQUAL:
        half = demand / 2.0
        return [(start, demand - half), (end, half)]
    start_share = (1.0 - allocation.fraction) * demand
    return [(start, start_share), (end, demand - start_share)]


def _is_junction(model: "HydraulicModel", node_id: str) -> bool:
    node = model.assets.get(node_id)
    return node is not None and node.type == AssetType.JUNCTION


def compute_junction_demand(
    model: "HydraulicModel",
    node_id: str,
    policy: Optional[DemandPolicy] = None,
    split: Optional[DemandSplit] = None,
) -> float:
    """Effective demand of a single junction.

    Only the pipes incident on ``node_id`` and their allocated points are
    visited.

    Args:
        model: The hydraulic model.
        node_id: Junction id.
        policy: Policy override; defaults to ``model.demands.policy``.
        split: Split override; defaults to ``model.demands.split``.

    Returns:
        The demand; 0.0 for reservoirs and tanks.

    Raises:
        NotFound: If ``node_id`` does not exist.
    """
    asset = model.assets.get(node_id)
    if asset is None:
        raise NotFound(node_id, "Node")
    if asset.type != AssetType.JUNCTION:
        return 0.0
    policy = policy or model.demands.policy
    split = split or model.demands.split
    if policy == DemandPolicy.NONE:
        return asset.base_demand

    total = 0.0
    for link_id in model.topology.neighbors(node_id):
        pipe = model.assets.get(link_id)
        if pipe is None or pipe.type != AssetType.PIPE:
            continue
        endpoints = tuple(_is_junction(model, n) for n in pipe.connections)
        for point_id in model.customer_points_lookup.get_customer_points(link_id):
            point = model.customer_points[point_id]
            allocation = model.customer_points_lookup.allocation(point_id)
            for target, share in split_demand(
                point.demand, allocation, pipe, endpoints, split
            ):
                if target == node_id:
                    total += share
    return total


def compute_demands(
    model: "HydraulicModel",
    policy: Optional[DemandPolicy] = None,
    split: Optional[DemandSplit] = None,
) -> DemandAllocation:
    """Demand of every junction plus whatever could not be assigned.

    Under ``CUSTOMER_DEMANDS`` each customer point contributes its full
    demand exactly once, to junctions or to ``unassigned``.
    """
    policy = policy or model.demands.policy
    split = split or model.demands.split
    result = DemandAllocation()
    for asset in model.assets.by_type(AssetType.JUNCTION):
        result.junctions[asset.id] = (
            asset.base_demand if policy == DemandPolicy.NONE else 0.0
        )
    if policy == DemandPolicy.NONE:
        return result

    lookup = model.customer_points_lookup
    for point_id, point in model.customer_points.items():
        allocation = lookup.allocation(point_id)
        pipe = model.assets.get(allocation.pipe_id) if allocation else None
        if pipe is None or pipe.type != AssetType.PIPE:
            result.unassigned[point_id] = point.demand
            continue
        endpoints = tuple(_is_junction(model, n) for n in pipe.connections)
        shares = split_demand(point.demand, allocation, pipe, endpoints, split)
        if not shares:
            result.unassigned[point_id] = point.demand
        for node_id, share in shares:
            result.junctions[node_id] += share
    return result
