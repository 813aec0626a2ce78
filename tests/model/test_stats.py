"""Tests for property statistics over asset selections."""

from __future__ import annotations

import pytest

from wdngraph.model.assets import Junction, Pipe, PipeStatus, Tank
from wdngraph.model.stats import CategoryStats, QuantityStats, compute_property_stats


def test_quantities_and_categories() -> None:
    assets = [
        Pipe("P1", connections=("A", "B"), diameter=100.0, status=PipeStatus.OPEN),
        Pipe("P2", connections=("A", "B"), diameter=200.0, status=PipeStatus.OPEN),
        Pipe("P3", connections=("A", "B"), diameter=200.0, status=PipeStatus.CV),
    ]
    stats = compute_property_stats(assets)

    diameter = stats["diameter"]
    assert isinstance(diameter, QuantityStats)
    assert diameter.min == 100.0
    assert diameter.max == 200.0
    assert diameter.mean == pytest.approx(500.0 / 3)
    assert diameter.median == 200.0
    assert diameter.sum == 500.0
    assert diameter.values == {100.0: 1, 200.0: 2}
    assert diameter.count == 3

    status = stats["status"]
    assert isinstance(status, CategoryStats)
    assert status.values == {"open": 2, "cv": 1}


def test_mixed_selection_reports_type_and_skips_structure() -> None:
    assets = [
        Junction("J1", elevation=1.0, demand_pattern="D"),
        Junction("J2", elevation=3.0),
        Tank("T1", elevation=5.0, overflow=True),
    ]
    stats = compute_property_stats(assets)

    assert stats["type"].values == {"junction": 2, "tank": 1}
    assert stats["elevation"].count == 3
    assert stats["elevation"].median == 3.0
    assert stats["demand_pattern"].values == {"D": 1}
    assert isinstance(stats["overflow"], CategoryStats)
    assert stats["overflow"].values == {True: 1}
    for name in ("id", "label", "coordinates", "connections"):
        assert name not in stats


def test_empty_selection() -> None:
    assert compute_property_stats([]) == {}
