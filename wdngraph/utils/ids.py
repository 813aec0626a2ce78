"""Identifier and version token generation.

Asset ids and model versions are produced by small injectable generator
objects so tests can substitute deterministic sequences.
"""

from __future__ import annotations

import base64
import itertools
import uuid
from typing import Callable, Tuple

#: A zero-argument callable returning a fresh model version token.
VersionGenerator = Callable[[], str]


def new_base64_uuid() -> str:
    """Return a 22-character URL-safe Base64-encoded UUID without padding.

    Returns:
        A 22-character URL-safe Base64 representation of a UUID4 without
        padding.
    """
    return base64.urlsafe_b64encode(uuid.uuid4().bytes)[:-2].decode("ascii")


def id_sort_key(asset_id: str) -> Tuple[int, int, str]:
    """Sort key placing numeric ids first (numerically), then the rest.

    ``"2" < "10" < "J1" < "P1"`` under this key. Used wherever ids must be
    ordered deterministically: tie-breaks, export order, external ids.
    """
    if asset_id.isascii() and asset_id.isdigit():
        return (0, int(asset_id), asset_id)
    return (1, 0, asset_id)


class IdGenerator:
    """Sequential numeric string ids: ``"1"``, ``"2"``, ...

    Ids seen from outside (e.g. an imported file) are reported through
    :meth:`observe` so freshly generated ids never collide with them.
    """

    def __init__(self, start: int = 1) -> None:
        self._next = start

    @property
    def total_generated(self) -> int:
        return self._next - 1

    def new_id(self) -> str:
        value = str(self._next)
        self._next += 1
        return value

    def observe(self, asset_id: str) -> None:
        """Advance past ``asset_id`` when it is numeric."""
        if not (asset_id.isascii() and asset_id.isdigit()):
            return
        if int(asset_id) >= self._next:
            self._next = int(asset_id) + 1


class SequentialVersionGenerator:
    """Deterministic version tokens ``v1``, ``v2``, ... for tests."""

    def __init__(self, prefix: str = "v") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


def random_version() -> str:
    """Default :data:`VersionGenerator`: a random opaque token."""
    return new_base64_uuid()
