"""Utilities for deterministic JSON serialization and hashing."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from typing import Any, Mapping


def to_serializable(value: Any) -> Any:
    """Convert Python objects into JSON-serializable primitives."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return to_serializable(value.to_dict())
    if dataclasses.is_dataclass(value):
        return {field.name: to_serializable(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_serializable(item) for item in value]
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable.")


def json_dumps(value: Any, *, indent: int | None = None) -> str:
    """Serialize any supported value to a deterministic JSON string."""
    separators = (",", ":") if indent is None else None
    return json.dumps(
        to_serializable(value),
        sort_keys=True,
        ensure_ascii=True,
        separators=separators,
        indent=indent,
    )


def json_loads(text: str | bytes) -> Any:
    """Parse JSON produced by :func:`json_dumps`."""
    return json.loads(text)


def digest(value: Any) -> str:
    """Return a SHA256 digest of deterministic JSON encoding."""
    encoded = json_dumps(value).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
