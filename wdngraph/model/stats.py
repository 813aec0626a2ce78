"""Property statistics over a selection of assets.

Used to summarise a multi-asset selection: every engineering property that
at least one selected asset carries gets an entry. Numeric properties yield
min, max, mean, median and sum plus a histogram of distinct values;
categorical properties (statuses, kinds, pattern ids, flags) yield the
histogram only. ``None`` values (e.g. an unset pattern) are not counted.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, fields
from enum import Enum
from statistics import mean, median
from typing import Any, Dict, Iterable, List, Union

from wdngraph.model.assets import STRUCTURAL_FIELDS, Asset


@dataclass
class QuantityStats:
    """Numeric property summary."""

    min: float
    max: float
    mean: float
    median: float
    sum: float
    values: Counter = field(default_factory=Counter)

    @property
    def count(self) -> int:
        return sum(self.values.values())


@dataclass
class CategoryStats:
    """Categorical property summary."""

    values: Counter = field(default_factory=Counter)

    @property
    def count(self) -> int:
        return sum(self.values.values())


PropertyStats = Union[QuantityStats, CategoryStats]


def _category(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _is_quantity(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compute_property_stats(assets: Iterable[Asset]) -> Dict[str, PropertyStats]:
    """Summarise every property of ``assets``.

    The ``type`` tag is included as a categorical entry so the result
    reports the composition of the selection. Properties appear in the
    order they are first encountered.

    Args:
        assets: Selected assets, of any mix of kinds.

    Returns:
        Property name -> stats.
    """
    numeric: Dict[str, List[float]] = {}
    categorical: Dict[str, Counter] = {}
    order: List[str] = []

    for asset in assets:
        for f in fields(asset):
            if f.name in STRUCTURAL_FIELDS and f.name != "type":
                continue
            value = getattr(asset, f.name)
            if value is None:
                continue
            if f.name not in order:
                order.append(f.name)
            if _is_quantity(value):
                numeric.setdefault(f.name, []).append(float(value))
            else:
                categorical.setdefault(f.name, Counter())[_category(value)] += 1

    result: Dict[str, PropertyStats] = {}
    for name in order:
        if name in numeric:
            values = numeric[name]
            result[name] = QuantityStats(
                min=min(values),
                max=max(values),
                mean=float(mean(values)),
                median=float(median(values)),
                sum=float(sum(values)),
                values=Counter(values),
            )
        else:
            result[name] = CategoryStats(values=categorical[name])
    return result
