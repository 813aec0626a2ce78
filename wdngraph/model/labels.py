"""Human-readable asset labels.

Labels follow EPANET id rules: they are unique (case-insensitively) among
nodes and, separately, among links, since both families share one id space
per category in an INP file.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from wdngraph.model.assets import NODE_TYPES, AssetType

LABEL_PREFIXES = {
    AssetType.JUNCTION: "J",
    AssetType.RESERVOIR: "R",
    AssetType.TANK: "T",
    AssetType.PIPE: "P",
    AssetType.PUMP: "PU",
    AssetType.VALVE: "V",
}

MAX_LABEL_LENGTH = 31


def _family(asset_type: AssetType) -> str:
    return "node" if asset_type in NODE_TYPES else "link"


class LabelManager:
    """Tracks which labels are taken and generates fresh ones per kind."""

    def __init__(self) -> None:
        # (family, LABEL) -> asset id
        self._taken: Dict[Tuple[str, str], str] = {}
        self._counters: Dict[AssetType, int] = {}

    def register(self, label: str, asset_type: AssetType, asset_id: str) -> None:
        """Mark ``label`` as used by ``asset_id`` (re-registering is a no-op)."""
        self._taken[(_family(asset_type), label.upper())] = asset_id

    def remove(self, label: str, asset_type: AssetType, asset_id: str) -> None:
        """Free ``label`` if it is held by ``asset_id``."""
        key = (_family(asset_type), label.upper())
        if self._taken.get(key) == asset_id:
            del self._taken[key]

    def is_taken(
        self,
        label: str,
        asset_type: AssetType,
        exclude_id: Optional[str] = None,
    ) -> bool:
        owner = self._taken.get((_family(asset_type), label.upper()))
        return owner is not None and owner != exclude_id

    def is_valid(self, label: str) -> bool:
        """EPANET ids: non-empty, at most 31 chars, no spaces, ';' or quotes."""
        if not label or len(label) > MAX_LABEL_LENGTH:
            return False
        return not any(ch.isspace() or ch in ';"' for ch in label)

    def generate_for(self, asset_type: AssetType, asset_id: str) -> str:
        """Reserve and return the next free ``<prefix><n>`` label."""
        prefix = LABEL_PREFIXES[asset_type]
        count = self._counters.get(asset_type, 0)
        while True:
            count += 1
            candidate = f"{prefix}{count}"
            if not self.is_taken(candidate, asset_type):
                break
        self._counters[asset_type] = count
        self.register(candidate, asset_type, asset_id)
        return candidate

    def clear(self) -> None:
        """Forget every taken label; generation counters are kept."""
        self._taken.clear()

    def __len__(self) -> int:
        return len(self._taken)
