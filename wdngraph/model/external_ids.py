"""Small integer ids for consumers that cannot index by string.

The mapping numbers the asset ids of one model version in
:func:`~wdngraph.utils.ids.id_sort_key` order. It depends only on the set of
ids, so it is identical for every read of the same version.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from wdngraph.errors import NotFound
from wdngraph.utils.ids import id_sort_key


class ExternalIdMap:
    """Bijection between asset ids and ``0..n-1``."""

    def __init__(self, asset_ids: Iterable[str], version: str = "") -> None:
        self.version = version
        self._ids: List[str] = sorted(set(asset_ids), key=id_sort_key)
        self._index: Dict[str, int] = {aid: i for i, aid in enumerate(self._ids)}

    @classmethod
    def from_model(cls, model) -> "ExternalIdMap":
        return cls(model.assets.ids(), version=model.version)

    def to_external(self, asset_id: str) -> int:
        try:
            return self._index[asset_id]
        except KeyError:
            raise NotFound(asset_id) from None

    def to_internal(self, external_id: int) -> str:
        if not 0 <= external_id < len(self._ids):
            raise NotFound(str(external_id))
        return self._ids[external_id]

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._index
