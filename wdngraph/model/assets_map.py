"""AssetsMap: the authoritative store of asset values keyed by id."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from wdngraph.model.assets import (
    LINK_TYPES,
    NODE_TYPES,
    Asset,
    AssetType,
    LinkAsset,
    NodeAsset,
)


class AssetsMap:
    """Mapping from asset id to an immutable asset value.

    ``put`` inserts or replaces by id and ``delete`` is a no-op for missing
    ids; use :meth:`exists` when existence matters. The map does not keep
    connectivity consistent on its own: every mutation must be mirrored in
    the :class:`~wdngraph.model.topology.Topology` within the same
    transaction (see :func:`wdngraph.model.moment.apply_moment`).
    """

    def __init__(self, assets: Optional[Dict[str, Asset]] = None) -> None:
        self._assets: Dict[str, Asset] = dict(assets or {})

    def get(self, asset_id: str) -> Optional[Asset]:
        """Return the asset with ``asset_id``, or None if there is none."""
        return self._assets.get(asset_id)

    def exists(self, asset_id: str) -> bool:
        """Return True if an asset with ``asset_id`` is stored."""
        return asset_id in self._assets

    def put(self, asset: Asset) -> None:
        """Insert ``asset`` or replace the stored asset with the same id.

        Args:
            asset: Asset value to store under ``asset.id``.
        """
        self._assets[asset.id] = asset

    def delete(self, asset_id: str) -> None:
        """Remove ``asset_id``. Missing ids are ignored."""
        self._assets.pop(asset_id, None)

    def by_type(self, asset_type: AssetType) -> Iterator[Asset]:
        """Iterate assets of a single kind, e.g. all pipes."""
        return (a for a in self._assets.values() if a.type == asset_type)

    def nodes(self) -> Iterator[NodeAsset]:
        """Iterate junctions, reservoirs and tanks in insertion order."""
        return (a for a in self._assets.values() if a.type in NODE_TYPES)

    def links(self) -> Iterator[LinkAsset]:
        """Iterate pipes, pumps and valves in insertion order."""
        return (a for a in self._assets.values() if a.type in LINK_TYPES)

    def ids(self) -> List[str]:
        """Return all asset ids in insertion order."""
        return list(self._assets)

    def values(self):
        """Return a live view of the stored assets."""
        return self._assets.values()

    def items(self):
        """Return a live view of ``(id, asset)`` pairs."""
        return self._assets.items()

    def copy(self) -> "AssetsMap":
        """Return an independent map holding the same assets.

        Returns:
            New ``AssetsMap``. Later ``put`` or ``delete`` calls on either map
            do not affect the other.
        """
        # Values are immutable; a shallow copy is a full snapshot
        return AssetsMap(self._assets)

    def to_dict(self) -> Dict[str, Asset]:
        """Return a plain dict copy keyed by asset id."""
        return dict(self._assets)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    def __getitem__(self, asset_id: str) -> Asset:
        return self._assets[asset_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssetsMap):
            return NotImplemented
        return self._assets == other._assets

    def __repr__(self) -> str:
        return f"AssetsMap({len(self._assets)} assets)"
