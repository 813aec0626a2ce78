"""Solver report formatting."""

from __future__ import annotations

import re
from typing import Dict

from wdngraph.model.assets_map import AssetsMap

# "Node 12", "Link 7", "Junction 3", "pipe P1" ... followed by an asset id
_ASSET_REFERENCE = re.compile(
    r"\b(Node|Link|Junction|Reservoir|Tank|Pipe|Pump|Valve)(\s+)([^\s,;:()]+)",
    re.IGNORECASE,
)


def replace_ids_with_labels(report: str, assets: AssetsMap) -> str:
    """Rewrite asset ids in ``report`` as the assets' labels.

    Only tokens introduced by an asset kind word (``Node 12``,
    ``Link 7``) are rewritten; ids of unknown assets or assets without a
    label are left as they are.
    """
    labels: Dict[str, str] = {
        asset_id: asset.label for asset_id, asset in assets.items() if asset.label
    }
    if not labels:
        return report

    def substitute(match: "re.Match[str]") -> str:
        word, space, token = match.groups()
        return f"{word}{space}{labels.get(token, token)}"

    return _ASSET_REFERENCE.sub(substitute, report)
