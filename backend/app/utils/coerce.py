"""Defensive coercion for loosely-shaped upstream JSON."""

import math
from collections.abc import Mapping
from typing import Any


def safe_number(value: Any, default: float = 0.0) -> float:
    """Coerce value to a finite float, falling back to default (never NaN/inf)."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "").lstrip("$"))
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def safe_int(value: Any, default: int = 0) -> int:
    """Coerce value to an int via safe_number (rounded)."""
    return int(round(safe_number(value, float(default))))


def safe_list(value: Any) -> list[Any]:
    """Return value if list-shaped, else an empty list."""
    if isinstance(value, list | tuple):
        return list(value)
    return []


def unique_strings(values: Any) -> list[str]:
    """Order-preserving de-duplicated list of non-empty strings."""
    seen: set[str] = set()
    result: list[str] = []
    for item in safe_list(values):
        if item is None or isinstance(item, Mapping | list):
            continue
        text = str(item).strip()
        if text and text not in seen:
            seen.add(text)
            result.append(text)
    return result


def dig(data: Any, *path: str) -> Any:
    """Walk nested mappings, returning None as soon as a key is missing."""
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_present(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def scalar_text(value: Any) -> str | None:
    """String form of a scalar (str or finite number); None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and math.isfinite(value):
        return str(value)
    return None
