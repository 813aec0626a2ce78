"""Model operations: pure functions that describe an edit as a Moment.

None of these functions mutate the model. Apply the returned Moment with
:func:`~wdngraph.model.moment.apply_moment` or
:meth:`~wdngraph.model.history.ModelHistory.transact`.
"""

from __future__ import annotations

from dataclasses import fields, replace
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
)

from wdngraph.errors import NotFound
from wdngraph.logging import get_logger
from wdngraph.model.assets import (
    STRUCTURAL_FIELDS,
    Asset,
    LinkAsset,
    NodeAsset,
    is_node,
    reversed_link,
)
from wdngraph.model.customer_points import CustomerPoint
from wdngraph.model.moment import Moment
from wdngraph.types import LineCoordinates, Position
from wdngraph.utils.ids import id_sort_key

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel

logger = get_logger(__name__)


def reverse_link(model: "HydraulicModel", link_id: str) -> Moment:
    """Swap a link's start and end nodes and reverse its vertices.

    Args:
        model: The hydraulic model.
        link_id: Id of a pipe, pump or valve.

    Returns:
        A Moment with the reversed link as its single put, noted
        "Reverse pipe", "Reverse pump" or "Reverse valve".

    Raises:
        NotFound: If no asset has ``link_id``.
        NotALink: If the asset is a node.
    """
    link = model.get_link(link_id)
    return Moment(
        note=f"Reverse {link.type.value}",
        put_assets=(reversed_link(link),),
    )


def add_node(model: "HydraulicModel", node: NodeAsset) -> Moment:
    """Add a new junction, reservoir or tank.

    Args:
        model: Model the node is checked against.
        node: Node to add. Its id must not be in use.

    Returns:
        Moment that puts ``node``.

    Raises:
        ValueError: If ``node`` is a link or its id is taken.
    """
    if not is_node(node):
        raise ValueError(f"Asset {node.id} is not a node")
    if model.assets.exists(node.id):
        raise ValueError(f"Asset {node.id} already exists")
    return Moment(note=f"Add {node.type.value}", put_assets=(node,))


def add_link(
    model: "HydraulicModel",
    link: LinkAsset,
    start_node: Optional[NodeAsset] = None,
    end_node: Optional[NodeAsset] = None,
) -> Moment:
    """Add a link, optionally together with new endpoint nodes.

    The link's end vertices are snapped to the coordinates of its endpoint
    nodes when both are known.

    Raises:
        ValueError: If the link id is taken, or a new node's id does not
            match the link's connections.
        NotFound: If an endpoint is neither given nor in the model.
    """
    if model.assets.exists(link.id):
        raise ValueError(f"Asset {link.id} already exists")
    puts: List[Asset] = []
    endpoints: List[NodeAsset] = []
    for node_id, new_node in zip(link.connections, (start_node, end_node)):
        if new_node is not None:
            if new_node.id != node_id:
                raise ValueError(
                    f"Node {new_node.id} does not match connection {node_id}"
                )
            if not any(p.id == new_node.id for p in puts):
                puts.append(new_node)
            endpoints.append(new_node)
            continue
        existing = model.assets.get(node_id)
        if existing is None or not is_node(existing):
            raise NotFound(node_id, "Node")
        endpoints.append(existing)

    puts.append(_snap_ends(link, endpoints[0], endpoints[1]))
    return Moment(note=f"Add {link.type.value}", put_assets=tuple(puts))


def delete_assets(model: "HydraulicModel", asset_ids: Iterable[str]) -> Moment:
    """Delete assets; deleting a node also deletes every link incident on it.

    Raises:
        NotFound: If any id is unknown.
    """
    requested = list(asset_ids)
    to_delete: Set[str] = set()
    for asset_id in requested:
        asset = model.get_asset(asset_id)
        to_delete.add(asset_id)
        if is_node(asset):
            to_delete |= model.topology.neighbors(asset_id)
    logger.debug(
        "Delete assets: %d requested, %d with cascade", len(requested), len(to_delete)
    )
    return Moment(
        note="Delete assets",
        delete_asset_ids=tuple(sorted(to_delete, key=id_sort_key)),
    )


def move_node(
    model: "HydraulicModel", node_id: str, coordinates: Position
) -> Moment:
    """Move a node and drag the matching end vertex of every incident link."""
    node = model.get_asset(node_id)
    if not is_node(node):
        raise ValueError(f"Asset {node_id} is not a node")
    puts: List[Asset] = [replace(node, coordinates=coordinates)]
    for link_id in sorted(model.topology.neighbors(node_id), key=id_sort_key):
        link = model.get_link(link_id)
        if link.coordinates is None:
            continue
        vertices = list(link.coordinates)
        if link.start_node_id == node_id:
            vertices[0] = coordinates
        if link.end_node_id == node_id:
            vertices[-1] = coordinates
        puts.append(replace(link, coordinates=tuple(vertices)))
    return Moment(note=f"Move {node.type.value}", put_assets=tuple(puts))


def replace_link_geometry(
    model: "HydraulicModel", link_id: str, coordinates: LineCoordinates
) -> Moment:
    """Replace a link's vertices; the ends stay on the endpoint nodes."""
    link = model.get_link(link_id)
    start = model.assets.get(link.start_node_id)
    end = model.assets.get(link.end_node_id)
    updated = _snap_ends(replace(link, coordinates=tuple(coordinates)), start, end)
    return Moment(note=f"Edit {link.type.value} geometry", put_assets=(updated,))


def change_property(
    model: "HydraulicModel",
    asset_ids: Sequence[str],
    name: str,
    value: Any,
) -> Moment:
    """Set one engineering property on several assets at once.

    Raises:
        ValueError: If ``name`` is a structural field (id, type, connections,
            coordinates, label) or an asset does not have it.
        NotFound: If an id is unknown.
    """
    if name in STRUCTURAL_FIELDS:
        raise ValueError(f"Property '{name}' cannot be changed directly")
    puts: List[Asset] = []
    for asset_id in asset_ids:
        asset = model.get_asset(asset_id)
        names = {f.name for f in fields(asset) if f.init}
        if name not in names:
            raise ValueError(
                f"{asset.type.value} {asset_id} has no property '{name}'"
            )
        puts.append(replace(asset, **{name: value}))
    return Moment(note=f"Change {name}", put_assets=tuple(puts))


def add_customer_points(
    model: "HydraulicModel", points: Iterable[CustomerPoint]
) -> Moment:
    """Add customer points; allocation to pipes happens when the moment applies.

    Args:
        model: Model the point ids are checked against.
        points: New points. None of their ids may exist yet.

    Returns:
        Moment that puts all ``points``.

    Raises:
        ValueError: If any point id already exists.
    """
    points = tuple(points)
    for point in points:
        if point.id in model.customer_points:
            raise ValueError(f"Customer point {point.id} already exists")
    return Moment(note="Add customer points", put_customer_points=points)


def move_customer_point(
    model: "HydraulicModel", point_id: str, coordinates: Position
) -> Moment:
    """Move one customer point to ``coordinates``.

    Raises:
        NotFound: If ``point_id`` is unknown.
    """
    point = _get_customer_point(model, point_id)
    return Moment(
        note="Move customer point",
        put_customer_points=(replace(point, coordinates=coordinates),),
    )


def delete_customer_points(
    model: "HydraulicModel", point_ids: Iterable[str]
) -> Moment:
    """Delete customer points by id.

    Args:
        model: Model holding the points.
        point_ids: Ids to delete.

    Returns:
        Moment that removes the points and their allocations.

    Raises:
        NotFound: If any id is unknown. Nothing is deleted in that case.
    """
    ids = tuple(point_ids)
    for point_id in ids:
        _get_customer_point(model, point_id)
    return Moment(note="Delete customer points", delete_customer_point_ids=ids)


def _get_customer_point(model: "HydraulicModel", point_id: str) -> CustomerPoint:
    point = model.customer_points.get(point_id)
    if point is None:
        raise NotFound(point_id, "Customer point")
    return point


def _snap_ends(
    link: LinkAsset,
    start: Optional[Asset],
    end: Optional[Asset],
) -> LinkAsset:
    if link.coordinates is None:
        return link
    vertices: List[Position] = list(link.coordinates)
    changes: Dict[int, Position] = {}
    if start is not None and start.coordinates is not None:
        changes[0] = start.coordinates
    if end is not None and end.coordinates is not None:
        changes[len(vertices) - 1] = end.coordinates
    if not changes:
        return link
    for index, position in changes.items():
        vertices[index] = position
    return replace(link, coordinates=tuple(vertices))
