"""Tests for writing models as INP text."""

from __future__ import annotations

import pytest

from wdngraph.inp import (
    IssueKind,
    build_inp,
    find_export_issues,
    format_number,
    parse_inp,
)
from wdngraph.inp.writer import SECTION_ORDER
from wdngraph.model.assets import PumpDefinition, PumpStatus, ValveKind


def _section(text: str, name: str) -> list:
    """Data lines of one section, without the column comment."""
    lines = text.splitlines()
    start = lines.index(f"[{name}]") + 1
    body = []
    for line in lines[start:]:
        if line.startswith("["):
            break
        if line and not line.startswith(";"):
            body.append(line)
    return body


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (1, "1.0"),
            (0.1, "0.1"),
            (-2.5, "-2.5"),
            (1e-7, "0.0000001"),
            (123456789.0, "123456789.0"),
            (1 / 3, "0.3333333333333333"),
        ],
    )
    def test_shortest_exact_decimal(self, value, expected) -> None:
        assert format_number(value) == expected
        assert float(format_number(value)) == float(value)


class TestBuildInp:
    def test_every_section_in_order(self, simple_model) -> None:
        text = build_inp(simple_model)
        headers = [line for line in text.splitlines() if line.startswith("[")]
        assert headers == [f"[{s}]" for s in SECTION_ORDER] + ["[END]"]
        assert text.endswith("[END]\n")

    def test_rows(self, simple_model) -> None:
        text = build_inp(simple_model)
        assert _section(text, "JUNCTIONS") == ["J1\t5.0\t1.5", "J2\t3.0\t2.5"]
        assert _section(text, "RESERVOIRS") == ["R1\t50.0"]
        assert _section(text, "PIPES") == [
            "P1\tJ1\tJ2\t100.0\t200.0\t0.0\t0.0\tOpen"
        ]
        assert _section(text, "PUMPS") == ["PU1\tR1\tJ1\tPOWER\t15.0\tSPEED\t1.0"]
        assert _section(text, "VERTICES") == ["P1\t15.0\t0.0"]
        assert _section(text, "OPTIONS")[:2] == ["UNITS\tLPS", "HEADLOSS\tH-W"]

    def test_assets_sorted_by_id(self, builder) -> None:
        model = (
            builder.a_junction("10", (0, 0))
            .a_junction("9", (1, 0))
            .a_junction("J1", (2, 0))
            .build()
        )
        rows = _section(build_inp(model), "JUNCTIONS")
        assert [row.split("\t")[0] for row in rows] == ["9", "10", "J1"]

    def test_statuses(self, builder) -> None:
        model = (
            builder.a_junction("J1", (0, 0))
            .a_junction("J2", (1, 0))
            .a_pump("PU1", "J1", "J2", status=PumpStatus.OFF)
            .a_pump(
                "PU2",
                "J2",
                "J1",
                definition=PumpDefinition.CURVE,
                curve_id="C1",
                speed_pattern="S",
            )
            .a_valve("V1", "J1", "J2", valve_kind=ValveKind.GPV, curve_id="HL")
            .build()
        )
        text = build_inp(model)
        assert _section(text, "STATUS") == ["PU1\tClosed"]
        assert _section(text, "PUMPS")[1] == (
            "PU2\tJ2\tJ1\tHEAD\tC1\tSPEED\t1.0\tPATTERN\tS"
        )
        assert _section(text, "VALVES") == ["V1\tJ1\tJ2\t0.0\tGPV\tHL\t0.0"]

    def test_labels_instead_of_ids(self) -> None:
        text = "\n".join(
            [
                "[JUNCTIONS]",
                "1 10",
                "2 10",
                "[PIPES]",
                "1 1 2 100 200 130",
                "[COORDINATES]",
                "1 1 1",
                "2 2 1",
            ]
        )
        model, _ = parse_inp(text)
        by_id = _section(build_inp(model), "PIPES")
        by_label = _section(build_inp(model, use_labels=True), "PIPES")
        assert by_id[0].startswith("3\t1\t2\t")
        assert by_label[0].startswith("1\t1\t2\t")

    def test_customer_demands(self, builder) -> None:
        model = (
            builder.a_junction("J1", (0, 0), base_demand=3.0, demand_pattern="D")
            .a_junction("J2", (10, 0), base_demand=4.0)
            .a_pipe("P1", "J1", "J2")
            .a_customer_point("C1", (2, 1), demand=10.0)
            .build()
        )
        text = build_inp(model, customer_demands=True)
        assert _section(text, "JUNCTIONS") == ["J1\t0.0\t0.0", "J2\t0.0\t0.0"]
        assert len(_section(text, "DEMANDS")) == 2

        exported, _ = parse_inp(text)
        assert exported.get_asset("J1").base_demand == pytest.approx(8.0)
        assert exported.get_asset("J1").demand_pattern == "D"
        assert exported.get_asset("J2").base_demand == pytest.approx(2.0)

    def test_unassigned_customer_demand_is_logged(self, builder, caplog) -> None:
        model = (
            builder.a_reservoir("R1", (0, 0))
            .a_tank("T1", (10, 0))
            .a_pipe("P1", "R1", "T1")
            .a_customer_point("C1", (2, 1), demand=10.0)
            .build()
        )
        with caplog.at_level("WARNING", logger="wdngraph"):
            build_inp(model, customer_demands=True)
        assert "could not be assigned" in caplog.text


class TestRoundTrip:
    def test_parse_build_parse_preserves_model(self, sample_inp) -> None:
        model, _ = parse_inp(sample_inp)
        again, issues = parse_inp(build_inp(model))
        assert not issues
        assert again.assets == model.assets
        assert again.topology == model.topology
        assert again.patterns == model.patterns
        assert again.curves == model.curves
        assert again.options == model.options
        assert again.times == model.times
        assert again.title == model.title

    def test_output_is_stable(self, sample_inp) -> None:
        model, _ = parse_inp(sample_inp)
        text = build_inp(model)
        again, _ = parse_inp(text)
        assert build_inp(again) == text

    def test_built_model_round_trips(self, simple_model) -> None:
        again, _ = parse_inp(build_inp(simple_model))
        assert again.assets == simple_model.assets

    def test_gpv_without_curve_round_trips(self, builder) -> None:
        model = (
            builder.a_junction("J1", (0, 0))
            .a_junction("J2", (1, 0))
            .a_valve(
                "V1",
                "J1",
                "J2",
                valve_kind=ValveKind.GPV,
                diameter=100.0,
                minor_loss=0.5,
            )
            .build()
        )
        text = build_inp(model)
        assert _section(text, "VALVES") == ["V1\tJ1\tJ2\t100.0\tGPV\t*\t0.5"]
        again, issues = parse_inp(text)
        assert not issues
        assert again.assets == model.assets

    def test_curve_pump_without_curve_round_trips(self, builder, caplog) -> None:
        model = (
            builder.a_junction("J1", (0, 0))
            .a_junction("J2", (1, 0))
            .a_pump("PU1", "J1", "J2", definition=PumpDefinition.CURVE)
            .build()
        )
        with caplog.at_level("WARNING", logger="wdngraph"):
            text = build_inp(model)
        assert _section(text, "PUMPS") == ["PU1\tJ1\tJ2\tHEAD\t*\tSPEED\t1.0"]
        assert "Pump PU1 has no head curve" in caplog.text
        again, issues = parse_inp(text)
        assert not issues
        assert again.assets == model.assets


class TestExportIssues:
    def test_values_without_an_inp_column_are_reported(self, builder) -> None:
        model = (
            builder.a_junction("J1", (0, 0))
            .a_junction("J2", (1, 0))
            .a_pump("PU1", "J1", "J2", power=5.0, curve_id="C9")
            .a_pump(
                "PU2",
                "J2",
                "J1",
                definition=PumpDefinition.CURVE,
                curve_id="C1",
                power=3.0,
            )
            .a_valve(
                "V1",
                "J1",
                "J2",
                valve_kind=ValveKind.GPV,
                curve_id="HL",
                setting=2.0,
            )
            .a_valve("V2", "J2", "J1", valve_kind=ValveKind.PRV, curve_id="X")
            .build()
        )
        issues = find_export_issues(model)
        assert {issue.kind for issue in issues} == {IssueKind.NOT_EXPORTABLE}
        assert [issue.affected_id for issue in issues] == ["PU1", "PU2", "V1", "V2"]

    def test_complete_model_has_no_export_issues(self, sample_inp) -> None:
        model, _ = parse_inp(sample_inp)
        assert not find_export_issues(model)
