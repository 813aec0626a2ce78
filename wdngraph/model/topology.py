"""Adjacency index over the links of an AssetsMap.

`Topology` wraps a `networkx.MultiDiGraph` whose edges are keyed by link id
and directed from a link's start node to its end node. It enforces explicit
node management and unique link ids, in the spirit of a strict multigraph:

  - Adding a link whose endpoints are not registered nodes fails.
  - Adding a link id twice fails.
  - Removing a node that still has incident links fails.
  - Removing or reversing an unknown link raises ``NotFound``.

Any of these failures means the index would drift from the asset store, so
they are reported as :class:`~wdngraph.errors.InvariantViolation`.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Set, Tuple

import networkx as nx

from wdngraph.errors import InvariantViolation, NotFound
from wdngraph.model.assets import LinkAsset

Connections = Tuple[str, str]


class Topology:
    """Node id -> incident link ids, mirroring the links in the asset store."""

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()
        # link id -> (start, end); mirrors the graph edges for O(1) lookups
        self._links: Dict[str, Connections] = {}

    #
    # Node management
    #
    def add_node(self, node_id: str) -> None:
        """Register a node. Registering an existing node is a no-op."""
        self._graph.add_node(node_id)

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def remove_node(self, node_id: str) -> None:
        """Unregister a node that has no incident links (no-op if absent).

        Raises:
            InvariantViolation: If links still reference the node.
        """
        if not self._graph.has_node(node_id):
            return
        incident = self.neighbors(node_id)
        if incident:
            raise InvariantViolation(
                f"Node {node_id} still has incident links: {sorted(incident)}"
            )
        self._graph.remove_node(node_id)

    #
    # Link management
    #
    def add_link(self, link: LinkAsset) -> None:
        """Index ``link`` between its start and end nodes.

        Raises:
            InvariantViolation: If the id is already indexed or an endpoint
                node is not registered.
        """
        if link.id in self._links:
            raise InvariantViolation(f"Link {link.id} is already indexed")
        start, end = link.connections
        for node_id in (start, end):
            if not self._graph.has_node(node_id):
                raise InvariantViolation(
                    f"Link {link.id} references unregistered node {node_id}"
                )
        self._graph.add_edge(start, end, key=link.id)
        self._links[link.id] = (start, end)

    def remove_link(self, link_id: str) -> None:
        """Drop ``link_id`` from the index.

        Raises:
            NotFound: If the link is not indexed.
        """
        try:
            start, end = self._links.pop(link_id)
        except KeyError:
            raise NotFound(link_id, "Link") from None
        self._graph.remove_edge(start, end, key=link_id)

    def reverse_link(self, link_id: str) -> None:
        """Swap the indexed direction of ``link_id`` keeping its identity.

        Raises:
            NotFound: If the link is not indexed.
        """
        if link_id not in self._links:
            raise NotFound(link_id, "Link")
        start, end = self._links[link_id]
        self._graph.remove_edge(start, end, key=link_id)
        self._graph.add_edge(end, start, key=link_id)
        self._links[link_id] = (end, start)

    #
    # Queries
    #
    def is_link(self, asset_id: str) -> bool:
        return asset_id in self._links

    def connections(self, link_id: str) -> Connections:
        """Return ``(start, end)`` of an indexed link.

        Raises:
            NotFound: If the link is not indexed.
        """
        try:
            return self._links[link_id]
        except KeyError:
            raise NotFound(link_id, "Link") from None

    def neighbors(self, node_id: str) -> Set[str]:
        """Ids of links incident on ``node_id`` (empty for unknown nodes)."""
        if not self._graph.has_node(node_id):
            return set()
        out_keys = {k for _, _, k in self._graph.out_edges(node_id, keys=True)}
        in_keys = {k for _, _, k in self._graph.in_edges(node_id, keys=True)}
        return out_keys | in_keys

    def connected_nodes(self, node_id: str) -> Set[str]:
        """Nodes sharing a link with ``node_id``."""
        if not self._graph.has_node(node_id):
            return set()
        return set(self._graph.successors(node_id)) | set(
            self._graph.predecessors(node_id)
        )

    def connected_components(self) -> List[Set[str]]:
        """Node sets connected regardless of link direction, largest first."""
        components = [set(c) for c in nx.weakly_connected_components(self._graph)]
        return sorted(components, key=len, reverse=True)

    def nodes(self) -> Iterator[str]:
        return iter(self._graph.nodes)

    def links(self) -> Iterator[str]:
        return iter(self._links)

    @property
    def graph(self) -> nx.MultiDiGraph:
        """Read-only view of the underlying graph for networkx algorithms."""
        return self._graph.copy(as_view=True)

    def copy(self) -> "Topology":
        clone = Topology()
        clone._graph = self._graph.copy()
        clone._links = dict(self._links)
        return clone

    def to_dict(self) -> Dict[str, object]:
        """Plain snapshot: registered nodes and link connections."""
        return {
            "nodes": sorted(self._graph.nodes),
            "links": dict(sorted(self._links.items())),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Topology):
            return NotImplemented
        return (
            set(self._graph.nodes) == set(other._graph.nodes)
            and self._links == other._links
        )

    def __len__(self) -> int:
        return len(self._links)

    def __repr__(self) -> str:
        return (
            f"Topology({self._graph.number_of_nodes()} nodes, "
            f"{len(self._links)} links)"
        )
