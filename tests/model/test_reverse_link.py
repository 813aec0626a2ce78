"""Tests for reversing pipes, pumps and valves."""

from __future__ import annotations

import pytest

from wdngraph.errors import NotALink, NotFound
from wdngraph.model.assets import PipeStatus, ValveKind, ValveStatus
from wdngraph.model.history import ModelHistory
from wdngraph.model.moment import apply_moment
from wdngraph.model.operations import reverse_link


@pytest.fixture
def three_vertex_model(builder):
    return (
        builder.a_junction("J1", (0, 0))
        .a_junction("J2", (10, 0))
        .a_pipe(
            "P1",
            "J1",
            "J2",
            vertices=[(5, 0)],
            diameter=300.0,
            status=PipeStatus.CV,
        )
        .build()
    )


class TestReverseLink:
    def test_reverses_connections_and_vertices(self, three_vertex_model) -> None:
        model = three_vertex_model
        moment = reverse_link(model, "P1")
        assert moment.note == "Reverse pipe"
        apply_moment(model, moment)

        pipe = model.get_link("P1")
        assert pipe.connections == ("J2", "J1")
        assert pipe.coordinates == ((10.0, 0.0), (5.0, 0.0), (0.0, 0.0))
        assert pipe.label == "P1"
        assert pipe.diameter == 300.0
        assert pipe.status == PipeStatus.CV
        assert model.topology.connections("P1") == ("J2", "J1")
        assert model.topology.neighbors("J1") == {"P1"}

    def test_reverse_twice_is_identity(self, three_vertex_model) -> None:
        model = three_vertex_model
        original = model.get_link("P1")
        apply_moment(model, reverse_link(model, "P1"))
        apply_moment(model, reverse_link(model, "P1"))
        assert model.get_link("P1") == original
        assert model.topology.connections("P1") == ("J1", "J2")

    def test_operation_does_not_mutate(self, three_vertex_model) -> None:
        model = three_vertex_model
        version = model.version
        reverse_link(model, "P1")
        assert model.get_link("P1").connections == ("J1", "J2")
        assert model.version == version

    def test_pump_and_valve(self, builder) -> None:
        model = (
            builder.a_reservoir("R1", (0, 0))
            .a_junction("J1", (10, 0))
            .a_junction("J2", (20, 0))
            .a_pump("PU1", "R1", "J1", power=12.0)
            .a_valve(
                "V1",
                "J1",
                "J2",
                valve_kind=ValveKind.FCV,
                setting=4.0,
                status=ValveStatus.OPEN,
            )
            .build()
        )
        pump_moment = reverse_link(model, "PU1")
        valve_moment = reverse_link(model, "V1")
        assert pump_moment.note == "Reverse pump"
        assert valve_moment.note == "Reverse valve"
        apply_moment(model, pump_moment)
        apply_moment(model, valve_moment)

        pump = model.get_link("PU1")
        valve = model.get_link("V1")
        assert pump.connections == ("J1", "R1")
        assert pump.power == 12.0
        assert valve.connections == ("J2", "J1")
        assert valve.coordinates == ((20.0, 0.0), (10.0, 0.0))
        assert valve.valve_kind == ValveKind.FCV
        assert valve.setting == 4.0
        assert valve.status == ValveStatus.OPEN

    def test_unknown_id_raises_not_found(self, three_vertex_model) -> None:
        with pytest.raises(NotFound) as exc_info:
            reverse_link(three_vertex_model, "X")
        assert exc_info.value.id == "X"
        assert str(exc_info.value) == "Link with id X not found"

    def test_node_id_raises_not_a_link(self, three_vertex_model) -> None:
        with pytest.raises(NotALink, match="J1"):
            reverse_link(three_vertex_model, "J1")

    def test_undo_restores_direction(self, three_vertex_model) -> None:
        model = three_vertex_model
        history = ModelHistory(model)
        history.transact(reverse_link(model, "P1"))
        history.undo()
        assert model.get_link("P1").connections == ("J1", "J2")
        assert model.get_link("P1").coordinates[0] == (0.0, 0.0)
        assert model.topology.connections("P1") == ("J1", "J2")
