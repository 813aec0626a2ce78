"""Tests for the Topology adjacency index."""

from __future__ import annotations

import random

import pytest

from wdngraph.errors import InvariantViolation, NotFound
from wdngraph.model.assets import Pipe, Valve
from wdngraph.model.topology import Topology


def _topology(*links) -> Topology:
    topology = Topology()
    for link in links:
        for node_id in link.connections:
            topology.add_node(node_id)
        topology.add_link(link)
    return topology


class TestTopology:
    def test_neighbors_of_both_endpoints(self) -> None:
        topology = _topology(
            Pipe("P1", connections=("A", "B")), Pipe("P2", connections=("B", "C"))
        )
        assert topology.neighbors("A") == {"P1"}
        assert topology.neighbors("B") == {"P1", "P2"}
        assert topology.neighbors("C") == {"P2"}
        assert topology.neighbors("missing") == set()

    def test_parallel_links_are_distinct(self) -> None:
        """Two links between the same nodes are indexed independently."""
        topology = _topology(
            Pipe("P1", connections=("A", "B")), Valve("V1", connections=("A", "B"))
        )
        assert topology.neighbors("A") == {"P1", "V1"}
        topology.remove_link("P1")
        assert topology.neighbors("B") == {"V1"}
        assert topology.connected_nodes("A") == {"B"}

    def test_reverse_link_keeps_incidence(self) -> None:
        topology = _topology(Pipe("P1", connections=("A", "B")))
        topology.reverse_link("P1")
        assert topology.connections("P1") == ("B", "A")
        assert topology.neighbors("A") == {"P1"}
        assert topology.neighbors("B") == {"P1"}
        assert list(topology.graph.successors("B")) == ["A"]

    def test_unknown_link_raises_not_found(self) -> None:
        topology = Topology()
        with pytest.raises(NotFound):
            topology.remove_link("P9")
        with pytest.raises(NotFound):
            topology.reverse_link("P9")
        with pytest.raises(NotFound):
            topology.connections("P9")

    def test_add_link_requires_registered_nodes(self) -> None:
        topology = Topology()
        topology.add_node("A")
        with pytest.raises(InvariantViolation, match="unregistered node B"):
            topology.add_link(Pipe("P1", connections=("A", "B")))

    def test_duplicate_link_id_rejected(self) -> None:
        topology = _topology(Pipe("P1", connections=("A", "B")))
        with pytest.raises(InvariantViolation, match="already indexed"):
            topology.add_link(Pipe("P1", connections=("B", "A")))

    def test_remove_node_with_links_rejected(self) -> None:
        topology = _topology(Pipe("P1", connections=("A", "B")))
        with pytest.raises(InvariantViolation, match="incident links"):
            topology.remove_node("A")
        topology.remove_link("P1")
        topology.remove_node("A")
        assert not topology.has_node("A")

    def test_connected_components_ignore_direction(self) -> None:
        topology = _topology(
            Pipe("P1", connections=("A", "B")),
            Pipe("P2", connections=("C", "B")),
            Pipe("P3", connections=("X", "Y")),
        )
        topology.add_node("LONE")
        components = topology.connected_components()
        assert components[0] == {"A", "B", "C"}
        assert {"X", "Y"} in components
        assert {"LONE"} in components

    def test_copy_and_equality(self) -> None:
        topology = _topology(Pipe("P1", connections=("A", "B")))
        clone = topology.copy()
        assert clone == topology
        clone.reverse_link("P1")
        assert clone != topology
        assert topology.to_dict() == {
            "nodes": ["A", "B"],
            "links": {"P1": ("A", "B")},
        }

    def test_neighbors_consistent_under_random_edits(self) -> None:
        """After arbitrary link puts/deletes, neighbors match a brute-force scan."""
        rng = random.Random(7)
        nodes = [f"N{i}" for i in range(8)]
        topology = Topology()
        for node_id in nodes:
            topology.add_node(node_id)
        links = {}
        for _ in range(300):
            link_id = f"L{rng.randrange(20)}"
            if link_id in links and rng.random() < 0.5:
                topology.remove_link(link_id)
                del links[link_id]
            elif link_id in links:
                topology.reverse_link(link_id)
                start, end = links[link_id]
                links[link_id] = (end, start)
            else:
                connections = (rng.choice(nodes), rng.choice(nodes))
                topology.add_link(Pipe(link_id, connections=connections))
                links[link_id] = connections

        for node_id in nodes:
            expected = {lid for lid, ends in links.items() if node_id in ends}
            assert topology.neighbors(node_id) == expected
        for link_id, connections in links.items():
            assert topology.connections(link_id) == connections
