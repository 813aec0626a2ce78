"""Configuration classes for wdngraph components."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from wdngraph.logging import get_logger
from wdngraph.types import DemandPolicy, DemandSplit
from wdngraph.utils.yaml_utils import normalize_yaml_dict_keys

logger = get_logger(__name__)


@dataclass
class ModelConfig:
    """Tunables for the network model engine."""

    # Radius (in coordinate units) within which pipes compete for a customer
    # point. None disables the spatial pre-filter: every pipe is a candidate.
    search_radius: Optional[float] = None

    # Cell size of the spatial grid; defaults to search_radius
    grid_cell_size: Optional[float] = None

    # Undo depth; None keeps the whole history
    history_limit: Optional[int] = 200

    demand_policy: DemandPolicy = DemandPolicy.NONE
    demand_split: DemandSplit = DemandSplit.PROPORTIONAL

    def __post_init__(self) -> None:
        if isinstance(self.demand_policy, str):
            self.demand_policy = DemandPolicy.from_string(self.demand_policy)
        if isinstance(self.demand_split, str):
            self.demand_split = DemandSplit.from_string(self.demand_split)
        if self.search_radius is not None and self.search_radius <= 0:
            raise ValueError("search_radius must be positive")
        if self.grid_cell_size is not None and self.grid_cell_size <= 0:
            raise ValueError("grid_cell_size must be positive")
        if self.history_limit is not None and self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")

    @property
    def cell_size(self) -> Optional[float]:
        """Effective grid cell size, or None when no grid is used."""
        if self.search_radius is None:
            return None
        return self.grid_cell_size or self.search_radius

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        """Build a config from a plain mapping, rejecting unknown keys.

        Raises:
            ValueError: If the mapping has keys that are not config fields.
        """
        data = normalize_yaml_dict_keys(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(
                f"Unknown model config key(s): {', '.join(unknown)}. "
                f"Valid keys are: {', '.join(sorted(known))}"
            )
        return cls(**data)


def load_config(path: Union[str, Path]) -> ModelConfig:
    """Load a :class:`ModelConfig` from a YAML file.

    The file may hold the settings at top level or under a ``model`` key.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed configuration.

    Raises:
        ValueError: If the YAML is not a mapping or has unknown keys.
    """
    text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    if "model" in data and isinstance(data["model"], dict):
        data = data["model"]
    config = ModelConfig.from_dict(data)
    logger.debug("Loaded model config from %s: %s", path, config)
    return config


# Global default configuration
MODEL_CONFIG = ModelConfig()
