"""Tests for `wdngraph.config` loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from wdngraph.config import MODEL_CONFIG, ModelConfig, load_config
from wdngraph.model.history import ModelHistory
from wdngraph.model.hydraulic_model import initialize_hydraulic_model
from wdngraph.types import DemandPolicy, DemandSplit
from wdngraph.utils.yaml_utils import normalize_yaml_dict_keys


def test_defaults() -> None:
    """Default config has no spatial pre-filter and base demands."""
    config = ModelConfig()
    assert config.search_radius is None
    assert config.cell_size is None
    assert config.history_limit == 200
    assert config.demand_policy == DemandPolicy.NONE
    assert config.demand_split == DemandSplit.PROPORTIONAL
    assert MODEL_CONFIG == config


def test_cell_size_defaults_to_radius() -> None:
    assert ModelConfig(search_radius=25.0).cell_size == 25.0
    assert ModelConfig(search_radius=25.0, grid_cell_size=10.0).cell_size == 10.0


def test_enum_fields_parse_strings() -> None:
    config = ModelConfig(demand_policy="CUSTOMER_DEMANDS", demand_split="nearest")
    assert config.demand_policy == DemandPolicy.CUSTOMER_DEMANDS
    assert config.demand_split == DemandSplit.NEAREST


@pytest.mark.parametrize(
    "kwargs",
    [
        {"search_radius": 0},
        {"grid_cell_size": -1.0},
        {"history_limit": 0},
        {"demand_split": "random"},
    ],
)
def test_invalid_values_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        ModelConfig(**kwargs)


def test_load_yaml_with_camel_case_keys(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text(
        "searchRadius: 12.5\n"
        "history-limit: 10\n"
        "demandPolicy: customerDemands\n"
        "demandSplit: equal\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.search_radius == 12.5
    assert config.history_limit == 10
    assert config.demand_policy == DemandPolicy.CUSTOMER_DEMANDS
    assert config.demand_split == DemandSplit.EQUAL


def test_load_yaml_nested_under_model_key(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text("model:\n  search_radius: 3\n", encoding="utf-8")
    assert load_config(path).search_radius == 3


def test_unknown_keys_rejected(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text("searchRadius: 3\ncolour: blue\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unknown model config key"):
        load_config(path)


def test_non_mapping_rejected(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_config(path)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == ModelConfig()


def test_config_reaches_model() -> None:
    config = ModelConfig(search_radius=4.0, demand_split="equal", history_limit=3)
    model = initialize_hydraulic_model(config=config)
    assert model.customer_points_lookup.search_radius == 4.0
    assert model.demands.split == DemandSplit.EQUAL
    assert ModelHistory(model, limit=config.history_limit).limit == 3


def test_normalize_yaml_keys() -> None:
    assert normalize_yaml_dict_keys({"searchRadius": 1, True: 2, "a-b": 3}) == {
        "search_radius": 1,
        "True": 2,
        "a_b": 3,
    }
