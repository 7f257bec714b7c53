"""Enums and small records shared by the Crossboard engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

MIN_PLAYERS = 2
DEFAULT_MAX_PLAYERS = 8
DEFAULT_CARDS_PER_PLAYER = 5


class Axis(str, Enum):
    """Board axes: the origin crossing plus the two arms."""

    ORIGIN = "origin"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


ARMS: tuple[Axis, Axis] = (Axis.HORIZONTAL, Axis.VERTICAL)


class InsertionKind(str, Enum):
    """How an insertion point relates to the cards already on its arm."""

    ORIGIN = "origin"
    EXTEND = "extend"
    GAP = "gap"
    SHIFT = "shift"


class SessionStatus(str, Enum):
    """Session lifecycle."""

    WAITING = "waiting"
    PLAYING = "playing"
    ROUND_ENDED = "round_ended"
    ENDED = "ended"


@dataclass(frozen=True)
class PlayerInfo:
    """A seated player."""

    id: str
    name: str
    joined_at: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "joined_at": self.joined_at}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerInfo":
        return cls(id=str(data["id"]), name=str(data["name"]), joined_at=float(data["joined_at"]))


def running_coordinate(axis: Axis, x: int, y: int) -> int:
    """Return the coordinate that varies along ``axis``."""
    return y if axis is Axis.VERTICAL else x


def position_on_arm(axis: Axis, coordinate: int) -> tuple[int, int]:
    """Return the (x, y) cell at ``coordinate`` along ``axis``."""
    if axis is Axis.VERTICAL:
        return (0, coordinate)
    return (coordinate, 0)
