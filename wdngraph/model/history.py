"""Linear undo/redo over applied Moments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from wdngraph.config import MODEL_CONFIG
from wdngraph.logging import get_logger
from wdngraph.model.moment import Moment, apply_moment

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel

logger = get_logger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """An applied Moment paired with the Moment that reverts it."""

    forward: Moment
    inverse: Moment

    @property
    def note(self) -> str:
        return self.forward.note


class ModelHistory:
    """Ordered list of entries with a cursor.

    Entries before the cursor are undoable; entries at or after it are
    redoable. A new transaction discards everything after the cursor. When
    ``limit`` is set the oldest entries are dropped first.

    Args:
        model: The model the history mutates.
        limit: Maximum number of entries; defaults to
            ``MODEL_CONFIG.history_limit``. ``None`` in the config means
            unbounded.
    """

    def __init__(
        self, model: "HydraulicModel", limit: Optional[int] = None
    ) -> None:
        if limit is None:
            limit = MODEL_CONFIG.history_limit
        if limit is not None and limit < 1:
            raise ValueError("History limit must be at least 1")
        self.model = model
        self.limit = limit
        self._entries: List[HistoryEntry] = []
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries)

    def transact(self, moment: Moment) -> Moment:
        """Apply ``moment`` and record it.

        Returns:
            The inverse Moment.

        Raises:
            InvariantViolation: If the moment cannot be applied. The history
                is left unchanged.
        """
        inverse = apply_moment(self.model, moment)
        del self._entries[self._cursor :]
        self._entries.append(HistoryEntry(forward=moment, inverse=inverse))
        if self.limit is not None and len(self._entries) > self.limit:
            dropped = len(self._entries) - self.limit
            del self._entries[:dropped]
            logger.debug("History limit %d reached, dropped %d", self.limit, dropped)
        self._cursor = len(self._entries)
        return inverse

    def undo(self) -> Optional[Moment]:
        """Revert the entry before the cursor; returns None when at the start."""
        if not self.can_undo():
            return None
        entry = self._entries[self._cursor - 1]
        apply_moment(self.model, entry.inverse)
        self._cursor -= 1
        logger.debug("Undo '%s'", entry.note)
        return entry.inverse

    def redo(self) -> Optional[Moment]:
        """Re-apply the entry at the cursor; returns None when at the end."""
        if not self.can_redo():
            return None
        entry = self._entries[self._cursor]
        inverse = apply_moment(self.model, entry.forward)
        self._entries[self._cursor] = HistoryEntry(
            forward=entry.forward, inverse=inverse
        )
        self._cursor += 1
        logger.debug("Redo '%s'", entry.note)
        return entry.forward

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._entries)
