"""Non-fatal problems found while reading or writing an INP file."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional


class IssueKind(str, Enum):
    MISSING_COORDINATES = "missing coordinates"
    GEOCODING_NOT_SUPPORTED = "geocoding not supported"
    INVALID_VALUE = "invalid value"
    MISSING_FIELDS = "missing fields"
    UNKNOWN_NODE = "unknown node"
    UNKNOWN_ASSET = "unknown asset"
    DUPLICATE_ID = "duplicate id"
    UNSUPPORTED_SECTION = "unsupported section"
    MULTIPLE_DEMANDS = "multiple demands"
    NOT_EXPORTABLE = "not exportable"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in the input or in a model being exported.

    Attributes:
        kind: Issue category.
        message: Human readable description.
        affected_id: INP id of the asset concerned, when there is one.
        line: 1-based line number in the input, when known.
    """

    kind: IssueKind
    message: str
    affected_id: Optional[str] = None
    line: Optional[int] = None

    def __str__(self) -> str:
        where = f"line {self.line}: " if self.line is not None else ""
        return f"{where}{self.message}"


class ParserIssues:
    """Ordered collection of :class:`ValidationIssue`; never raised."""

    def __init__(self) -> None:
        self._issues: List[ValidationIssue] = []

    def add(
        self,
        kind: IssueKind,
        message: str,
        affected_id: Optional[str] = None,
        line: Optional[int] = None,
    ) -> ValidationIssue:
        issue = ValidationIssue(kind, message, affected_id, line)
        self._issues.append(issue)
        return issue

    def of_kind(self, kind: IssueKind) -> List[ValidationIssue]:
        return [issue for issue in self._issues if issue.kind == kind]

    def has(self, kind: IssueKind) -> bool:
        return any(issue.kind == kind for issue in self._issues)

    def summary(self) -> Dict[str, int]:
        """Number of issues per kind value."""
        return dict(Counter(issue.kind.value for issue in self._issues))

    def __iter__(self) -> Iterator[ValidationIssue]:
        return iter(self._issues)

    def __len__(self) -> int:
        return len(self._issues)

    def __bool__(self) -> bool:
        return bool(self._issues)

    def __repr__(self) -> str:
        return f"ParserIssues({len(self._issues)} issues)"
