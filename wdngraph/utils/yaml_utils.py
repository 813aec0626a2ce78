"""Utilities for handling YAML parsing quirks."""

from typing import Any, Dict, TypeVar

V = TypeVar("V")


def normalize_yaml_dict_keys(data: Dict[Any, V]) -> Dict[str, V]:
    """Normalize dictionary keys from YAML parsing to plain snake_case strings.

    YAML 1.1 boolean keys (true, false, yes, no, on, off) come back as Python
    booleans; they become "True"/"False". Keys written in camelCase or with
    dashes (``searchRadius``, ``search-radius``) map to ``search_radius``.

    Args:
        data: Dictionary that may contain non-string keys from YAML parsing.

    Returns:
        Dictionary with all keys converted to strings.

    Examples:
        >>> normalize_yaml_dict_keys({"searchRadius": 5, True: 1})
        {'search_radius': 5, 'True': 1}
    """
    normalized = {}
    for key, value in data.items():
        key = str(key)
        if key not in ("True", "False"):
            key = _snake_case(key)
        normalized[key] = value
    return normalized


def _snake_case(key: str) -> str:
    out = []
    for i, ch in enumerate(key.replace("-", "_")):
        if ch.isupper() and i > 0 and out[-1] != "_":
            out.append("_")
        out.append(ch.lower())
    return "".join(out)
