"""Exception types raised by the network model engine.

User-triggered mistakes (a missing asset, an unreadable file) surface as
recoverable errors the caller decides how to present. ``InvariantViolation``
signals an internal inconsistency between the asset store and its derived
indices and should never be caught to carry on editing.

Non-fatal import problems are not exceptions; see
:class:`wdngraph.inp.issues.ValidationIssue`.
"""

from __future__ import annotations

from typing import Optional


class WdnGraphError(Exception):
    """Base class for all wdngraph errors."""


class NotFound(WdnGraphError, KeyError):
    """A referenced asset, link or customer point does not exist.

    Attributes:
        id: The identifier that could not be resolved.
    """

    def __init__(self, id: str, what: str = "Asset") -> None:
        self.id = id
        self.what = what
        super().__init__(id)

    def __str__(self) -> str:
        return f"{self.what} with id {self.id} not found"


class NotALink(WdnGraphError, ValueError):
    """A link-only operation was given the id of a node."""

    def __init__(self, id: str, asset_type: Optional[str] = None) -> None:
        self.id = id
        self.asset_type = asset_type
        kind = f" ({asset_type})" if asset_type else ""
        super().__init__(f"Asset {id}{kind} is not a link")


class ParseError(WdnGraphError, ValueError):
    """The INP input is structurally unreadable.

    Attributes:
        line: 1-based line number where reading failed, when known.
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)


class InvariantViolation(WdnGraphError, RuntimeError):
    """Assets and their derived indices would diverge; a programmer error."""
