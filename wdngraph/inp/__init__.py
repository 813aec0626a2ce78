"""EPANET INP text codec."""

from wdngraph.inp.issues import IssueKind, ParserIssues, ValidationIssue
from wdngraph.inp.parser import parse_inp
from wdngraph.inp.writer import build_inp, find_export_issues, format_number

__all__ = [
    "parse_inp",
    "build_inp",
    "format_number",
    "find_export_issues",
    "IssueKind",
    "ParserIssues",
    "ValidationIssue",
]
