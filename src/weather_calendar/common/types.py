"""Shared type aliases and helpers for reading provider payloads."""

from __future__ import annotations

from typing import Any, TypeAlias

# Latitude/longitude pair
LatLon: TypeAlias = tuple[float, float]

# JSON-like dict
JsonDict: TypeAlias = dict[str, object]

# CWA marks missing readings with negative sentinels (-99, -990, -999, -9999)
_MISSING_SENTINELS = frozenset({-99.0, -990.0, -999.0, -9999.0})


def dig(obj: Any, *path: str | int, default: Any = None) -> Any:
    """Walk nested dicts/lists, returning ``default`` at the first gap.

    Examples:
        dig({"a": [{"b": 1}]}, "a", 0, "b") → 1
        dig({"a": []}, "a", 0, "b") → None
    """
    current = obj
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        else:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        if current is None:
            return default
    return current


def to_float(value: Any) -> float | None:
    """Parse a provider number, mapping blanks, junk and sentinels to None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result or result in _MISSING_SENTINELS:  # NaN or sentinel
        return None
    return result
