"""Move definitions for Crossboard."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from framework.move import Move

from .crossboard_insertion import InsertionPoint


class MoveType(str, Enum):
    """Supported Crossboard move discriminators."""

    PLAY_CARD = "PlayCard"


@dataclass(frozen=True)
class PlayCard(Move):
    """Play a card from the hand onto an insertion point."""

    card_id: str
    insertion_point: InsertionPoint
    move_type = MoveType.PLAY_CARD.value

    def __post_init__(self) -> None:
        normalized = self.card_id.strip()
        if not normalized:
            raise ValueError("PlayCard.card_id must be non-empty.")
        object.__setattr__(self, "card_id", normalized)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.move_type,
            "card_id": self.card_id,
            "insertion_point": self.insertion_point.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayCard":
        raw_point = data.get("insertion_point")
        if not isinstance(raw_point, Mapping):
            raise ValueError("PlayCard.insertion_point must be an object with x and y.")
        card_id = data.get("card_id")
        if not isinstance(card_id, str):
            raise ValueError("PlayCard.card_id must be a string.")
        return cls(card_id=card_id, insertion_point=InsertionPoint.from_dict(raw_point))


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a Crossboard move from JSON payload."""
    move_type = data.get("type") or data.get("move_type") or MoveType.PLAY_CARD.value
    if move_type == MoveType.PLAY_CARD.value:
        return PlayCard.from_dict(data)
    raise ValueError(f"Unknown Crossboard move type: {move_type!r}")
