"""Tests for model operations that describe edits as Moments."""

from __future__ import annotations

import pytest

from wdngraph.errors import NotFound
from wdngraph.model.assets import Junction, Pipe, PipeStatus
from wdngraph.model.customer_points import CustomerPoint
from wdngraph.model.moment import apply_moment
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
)


class TestAddAssets:
    def test_add_node(self, simple_model) -> None:
        model = simple_model
        moment = add_node(model, Junction("J3", coordinates=(30, 0)))
        assert moment.note == "Add junction"
        apply_moment(model, moment)
        assert model.topology.has_node("J3")

    def test_add_existing_node_rejected(self, simple_model) -> None:
        with pytest.raises(ValueError, match="already exists"):
            add_node(simple_model, Junction("J1"))

    def test_add_link_snaps_ends_to_nodes(self, simple_model) -> None:
        model = simple_model
        pipe = Pipe(
            "P2",
            connections=("J1", "J3"),
            coordinates=[(9, 1), (20, -5), (31, 1)],
        )
        moment = add_link(
            model, pipe, end_node=Junction("J3", coordinates=(30, 0))
        )
        apply_moment(model, moment)
        added = model.get_link("P2")
        assert added.coordinates == ((10.0, 0.0), (20.0, -5.0), (30.0, 0.0))
        assert model.topology.neighbors("J3") == {"P2"}

    def test_add_link_unknown_endpoint(self, simple_model) -> None:
        pipe = Pipe("P2", connections=("J1", "J9"))
        with pytest.raises(NotFound):
            add_link(simple_model, pipe)

    def test_add_link_node_mismatch(self, simple_model) -> None:
        pipe = Pipe("P2", connections=("J1", "J9"))
        with pytest.raises(ValueError, match="does not match"):
            add_link(simple_model, pipe, end_node=Junction("J8"))


class TestDeleteAssets:
    def test_deleting_node_cascades_to_links(self, simple_model) -> None:
        model = simple_model
        moment = delete_assets(model, ["J1"])
        assert moment.delete_asset_ids == ("J1", "P1", "PU1")
        apply_moment(model, moment)
        assert model.topology.neighbors("J2") == set()
        assert model.topology.neighbors("R1") == set()

    def test_unknown_id(self, simple_model) -> None:
        with pytest.raises(NotFound):
            delete_assets(simple_model, ["nope"])


class TestGeometryEdits:
    def test_move_node_drags_link_ends(self, simple_model) -> None:
        model = simple_model
        moment = move_node(model, "J1", (11, 2))
        assert moment.note == "Move junction"
        apply_moment(model, moment)
        assert model.get_asset("J1").coordinates == (11.0, 2.0)
        assert model.get_link("PU1").coordinates[-1] == (11.0, 2.0)
        assert model.get_link("P1").coordinates[0] == (11.0, 2.0)
        assert model.get_link("P1").coordinates[1] == (15.0, 0.0)

    def test_replace_link_geometry(self, simple_model) -> None:
        model = simple_model
        moment = replace_link_geometry(
            model, "P1", [(0, 0), (12, 5), (16, 8), (0, 0)]
        )
        apply_moment(model, moment)
        assert model.get_link("P1").coordinates == (
            (10.0, 0.0),
            (12.0, 5.0),
            (16.0, 8.0),
            (20.0, 10.0),
        )


class TestChangeProperty:
    def test_change_on_several_assets(self, simple_model) -> None:
        model = simple_model
        moment = change_property(model, ["J1", "J2"], "elevation", 8.0)
        assert moment.note == "Change elevation"
        apply_moment(model, moment)
        assert model.get_asset("J1").elevation == 8.0
        assert model.get_asset("J2").elevation == 8.0

    def test_change_status(self, simple_model) -> None:
        model = simple_model
        apply_moment(
            model, change_property(model, ["P1"], "status", PipeStatus.CLOSED)
        )
        assert model.get_link("P1").status == PipeStatus.CLOSED

    @pytest.mark.parametrize("name", ["id", "connections", "coordinates", "label"])
    def test_structural_fields_rejected(self, simple_model, name) -> None:
        with pytest.raises(ValueError, match="cannot be changed"):
            change_property(simple_model, ["P1"], name, "x")

    def test_unknown_property_rejected(self, simple_model) -> None:
        with pytest.raises(ValueError, match="no property 'diameter'"):
            change_property(simple_model, ["J1"], "diameter", 100.0)


class TestCustomerPointOperations:
    def test_add_move_delete(self, simple_model) -> None:
        model = simple_model
        apply_moment(
            model, add_customer_points(model, [CustomerPoint("C1", (12, 1), 3.0)])
        )
        assert model.customer_points_lookup.allocation("C1").pipe_id == "P1"

        moment = move_customer_point(model, "C1", (19, 9))
        assert moment.note == "Move customer point"
        apply_moment(model, moment)
        assert model.customer_points["C1"].coordinates == (19.0, 9.0)

        apply_moment(model, delete_customer_points(model, ["C1"]))
        assert "C1" not in model.customer_points

    def test_duplicate_point_rejected(self, simple_model) -> None:
        model = simple_model
        apply_moment(model, add_customer_points(model, [CustomerPoint("C1", (0, 0))]))
        with pytest.raises(ValueError, match="already exists"):
            add_customer_points(model, [CustomerPoint("C1", (1, 1))])

    def test_unknown_point(self, simple_model) -> None:
        with pytest.raises(NotFound, match="Customer point"):
            move_customer_point(simple_model, "C9", (0, 0))
        with pytest.raises(NotFound):
            delete_customer_points(simple_model, ["C9"])
