"""Shared enums and aliases used across the model engine."""

from __future__ import annotations

from enum import Enum
from typing import Tuple

#: A planar position ``(x, y)``; longitude/latitude for geographic models.
Position = Tuple[float, float]

#: An ordered polyline of at least two positions.
LineCoordinates = Tuple[Position, ...]


class _ParseableEnum(Enum):
    @classmethod
    def from_string(cls, value: str):
        """Parse a case-insensitive member name or value.

        Raises:
            ValueError: If the string doesn't match any member.
        """
        needle = value.strip()
        for member in cls:
            if needle.upper() == member.name or needle == member.value:
                return member
        valid = ", ".join(str(m.value) for m in cls)
        raise ValueError(
            f"Invalid {cls.__name__} '{value}'. Valid values are: {valid}"
        ) from None


class DemandPolicy(_ParseableEnum):
    """How junction demands are derived when computed or exported."""

    #: Junction base demands are used as entered.
    NONE = "none"
    #: Junction demand is the sum of allocated customer point demands.
    CUSTOMER_DEMANDS = "customerDemands"


class DemandSplit(_ParseableEnum):
    """How a customer point's demand is split between a pipe's two endpoints."""

    #: Start node gets ``(1 - fraction)``, end node gets the remainder.
    PROPORTIONAL = "proportional"
    #: Whole demand goes to the endpoint nearer along the pipe (start on a tie).
    NEAREST = "nearest"
    #: Half to each endpoint.
    EQUAL = "equal"
