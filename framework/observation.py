"""Per-player views delivered to callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .serialize import digest, to_serializable


@dataclass(frozen=True)
class Observation:
    """Base view with deterministic serialization helpers."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {key: to_serializable(value) for key, value in vars(self).items()}

    def observation_digest(self) -> str:
        """Return a deterministic digest, handy for change detection on clients."""
        return digest(self.to_dict())
