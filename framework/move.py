"""Base move abstraction for caller-submitted commands."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping, Self


class Move(ABC):
    """Base class for a typed command submitted by a player."""

    move_type: ClassVar[str] = "Move"

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation, including ``type``."""

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build the move from a dictionary payload."""
