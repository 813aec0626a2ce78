"""Moments: invertible transactions over a hydraulic model.

A :class:`Moment` lists asset and customer point upserts and deletions.
:func:`apply_moment` validates the state the model would reach, commits it to
every structure that must stay in lock-step (assets, topology, customer
points, labels, customer point lookup), regenerates the model version and
returns the inverse Moment built from pre-mutation snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple

from wdngraph.errors import InvariantViolation
from wdngraph.logging import get_logger
from wdngraph.model.assets import Asset, AssetType, is_link, is_node
from wdngraph.model.customer_points import CustomerPoint
from wdngraph.model.topology import Topology

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel

logger = get_logger(__name__)


@dataclass(frozen=True)
class Moment:
    """A unit of undo/redo.

    Attributes:
        note: Human readable description, e.g. "Reverse pipe".
        put_assets: Asset values to insert or replace, by id.
        delete_asset_ids: Asset ids to remove.
        put_customer_points: Customer points to insert or replace.
        delete_customer_point_ids: Customer point ids to remove.
    """

    note: str
    put_assets: Tuple[Asset, ...] = ()
    delete_asset_ids: Tuple[str, ...] = ()
    put_customer_points: Tuple[CustomerPoint, ...] = ()
    delete_customer_point_ids: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in (
            "put_assets",
            "delete_asset_ids",
            "put_customer_points",
            "delete_customer_point_ids",
        ):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def is_empty(self) -> bool:
        return not (
            self.put_assets
            or self.delete_asset_ids
            or self.put_customer_points
            or self.delete_customer_point_ids
        )


def _check_unique(ids: Iterable[str], what: str) -> Set[str]:
    seen: Set[str] = set()
    for item_id in ids:
        if item_id in seen:
            raise InvariantViolation(f"{what} {item_id} appears twice in one moment")
        seen.add(item_id)
    return seen


def _validate(model: "HydraulicModel", moment: Moment) -> None:
    """Check the staged post-state; raise before anything is mutated."""
    put_ids = _check_unique((a.id for a in moment.put_assets), "Asset")
    delete_ids = _check_unique(moment.delete_asset_ids, "Asset")
    both = put_ids & delete_ids
    if both:
        raise InvariantViolation(
            f"Assets both put and deleted in one moment: {sorted(both)}"
        )
    point_put_ids = _check_unique(
        (p.id for p in moment.put_customer_points), "Customer point"
    )
    point_delete_ids = _check_unique(
        moment.delete_customer_point_ids, "Customer point"
    )
    both = point_put_ids & point_delete_ids
    if both:
        raise InvariantViolation(
            f"Customer points both put and deleted in one moment: {sorted(both)}"
        )

    staged: Dict[str, Optional[Asset]] = {a.id: a for a in moment.put_assets}
    for asset_id in delete_ids:
        staged[asset_id] = None

    def staged_get(asset_id: str) -> Optional[Asset]:
        if asset_id in staged:
            return staged[asset_id]
        return model.assets.get(asset_id)

    for asset in moment.put_assets:
        if not is_link(asset):
            continue
        for node_id in asset.connections:
            node = staged_get(node_id)
            if node is None or not is_node(node):
                raise InvariantViolation(
                    f"Link {asset.id} references missing node {node_id}"
                )

    # Nodes that disappear (or stop being nodes) must not keep incident links
    for asset_id, new_value in staged.items():
        old_value = model.assets.get(asset_id)
        if old_value is None or not is_node(old_value):
            continue
        if new_value is not None and is_node(new_value):
            continue
        for link_id in model.topology.neighbors(asset_id):
            link = staged_get(link_id)
            if link is not None and is_link(link) and asset_id in link.connections:
                raise InvariantViolation(
                    f"Removing node {asset_id} would orphan link {link_id}"
                )


def _inverse(model: "HydraulicModel", moment: Moment) -> Moment:
    put_assets: List[Asset] = []
    delete_asset_ids: List[str] = []
    for asset in moment.put_assets:
        old = model.assets.get(asset.id)
        if old is None:
            delete_asset_ids.append(asset.id)
        else:
            put_assets.append(old)
    for asset_id in moment.delete_asset_ids:
        old = model.assets.get(asset_id)
        if old is not None:
            put_assets.append(old)

    put_points: List[CustomerPoint] = []
    delete_point_ids: List[str] = []
    for point in moment.put_customer_points:
        old_point = model.customer_points.get(point.id)
        if old_point is None:
            delete_point_ids.append(point.id)
        else:
            put_points.append(old_point)
    for point_id in moment.delete_customer_point_ids:
        old_point = model.customer_points.get(point_id)
        if old_point is not None:
            put_points.append(old_point)

    return Moment(
        note=moment.note,
        put_assets=tuple(put_assets),
        delete_asset_ids=tuple(delete_asset_ids),
        put_customer_points=tuple(put_points),
        delete_customer_point_ids=tuple(delete_point_ids),
    )


def _commit(model: "HydraulicModel", moment: Moment) -> None:
    assets = model.assets
    topology = model.topology
    labels = model.label_manager

    put_pipes = []
    deleted_pipe_ids: List[str] = []

    # Unindex everything that goes away or gets replaced, links first so
    # node removal never sees stale incidence.
    replaced = [assets.get(a.id) for a in moment.put_assets]
    removed = [assets.get(asset_id) for asset_id in moment.delete_asset_ids]
    outgoing = [a for a in replaced + removed if a is not None]
    for old in outgoing:
        if is_link(old):
            topology.remove_link(old.id)
    for asset_id in moment.delete_asset_ids:
        old = assets.get(asset_id)
        if old is None:
            continue
        if is_node(old):
            topology.remove_node(asset_id)
        labels.remove(old.label, old.type, old.id)
        if old.type == AssetType.PIPE:
            deleted_pipe_ids.append(asset_id)
        assets.delete(asset_id)

    for asset in moment.put_assets:
        if is_node(asset):
            topology.add_node(asset.id)
    for asset, old in zip(moment.put_assets, replaced):
        if old is not None:
            if is_node(old) and not is_node(asset):
                topology.remove_node(old.id)
            labels.remove(old.label, old.type, old.id)
        assets.put(asset)
        if asset.label:
            labels.register(asset.label, asset.type, asset.id)
        if is_link(asset):
            topology.add_link(asset)

        if asset.type == AssetType.PIPE:
            if (
                old is None
                or old.type != AssetType.PIPE
                or old.coordinates != asset.coordinates
            ):
                put_pipes.append(asset)
        elif old is not None and old.type == AssetType.PIPE:
            deleted_pipe_ids.append(asset.id)

    for point_id in moment.delete_customer_point_ids:
        model.customer_points.pop(point_id, None)
    put_points = []
    for point in moment.put_customer_points:
        old_point = model.customer_points.get(point.id)
        model.customer_points[point.id] = point
        if old_point is None or old_point.coordinates != point.coordinates:
            put_points.append(point)

    model.customer_points_lookup.update(
        put_pipes=put_pipes,
        deleted_pipe_ids=deleted_pipe_ids,
        put_points=put_points,
        deleted_point_ids=moment.delete_customer_point_ids,
    )


def _check_consistency(model: "HydraulicModel", moment: Moment) -> None:
    touched = {a.id for a in moment.put_assets} | set(moment.delete_asset_ids)
    for asset_id in touched:
        asset = model.assets.get(asset_id)
        indexed = model.topology.is_link(asset_id)
        if asset is not None and is_link(asset):
            if not indexed or model.topology.connections(asset_id) != asset.connections:
                raise InvariantViolation(f"Topology out of sync for link {asset_id}")
        elif indexed:
            raise InvariantViolation(f"Topology indexes non-link {asset_id}")


def apply_moment(model: "HydraulicModel", moment: Moment) -> Moment:
    """Apply ``moment`` to ``model`` atomically and return its inverse.

    Args:
        model: The model to mutate.
        moment: Changes to apply.

    Returns:
        The Moment that undoes this application.

    Raises:
        InvariantViolation: If the moment would leave links pointing at
            missing nodes or is self-contradictory. Nothing is applied.
    """
    _validate(model, moment)
    inverse = _inverse(model, moment)
    try:
        _commit(model, moment)
        _check_consistency(model, moment)
    except Exception as exc:
        logger.error("Rolling back moment '%s': %s", moment.note, exc)
        _rollback(model, moment, inverse)
        if isinstance(exc, InvariantViolation):
            raise
        raise InvariantViolation(
            f"Failed to apply moment '{moment.note}': {exc}"
        ) from exc

    model.bump_version()
    logger.debug(
        "Applied moment '%s': %d asset puts, %d asset deletes, "
        "%d point puts, %d point deletes (version %s)",
        moment.note,
        len(moment.put_assets),
        len(moment.delete_asset_ids),
        len(moment.put_customer_points),
        len(moment.delete_customer_point_ids),
        model.version,
    )
    return inverse


def _rollback(model: "HydraulicModel", moment: Moment, inverse: Moment) -> None:
    """Rebuild indices from the pre-moment asset values after a failed commit."""
    for asset in moment.put_assets:
        model.assets.delete(asset.id)
    for asset in inverse.put_assets:
        model.assets.put(asset)
    for point in moment.put_customer_points:
        model.customer_points.pop(point.id, None)
    for point in inverse.put_customer_points:
        model.customer_points[point.id] = point
    rebuild_indices(model)


def rebuild_indices(model: "HydraulicModel") -> None:
    """Recreate topology, labels and lookup from the asset store."""
    topology = Topology()
    for asset in model.assets.nodes():
        topology.add_node(asset.id)
    for asset in model.assets.links():
        topology.add_link(asset)
    model.topology = topology
    model.label_manager.clear()
    for asset in model.assets.values():
        if asset.label:
            model.label_manager.register(asset.label, asset.type, asset.id)
    model.customer_points_lookup.rebuild(
        model.assets.by_type(AssetType.PIPE), model.customer_points.values()
    )

