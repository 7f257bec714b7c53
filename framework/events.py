"""Game event schema recorded on sessions and replayed to callers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from time import time
from typing import Any, Mapping

from .serialize import to_serializable


class EventType(str, Enum):
    """Standard event types emitted by a game session."""

    SESSION_CREATED = "session_created"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    GAME_STARTED = "game_started"
    MOVE_EXECUTED = "move_executed"
    MOVE_REJECTED = "move_rejected"
    CARDS_REVEALED = "cards_revealed"
    ROUND_ENDED = "round_ended"
    NEW_ROUND_STARTED = "new_round_started"
    GAME_ENDED = "game_ended"


@dataclass(frozen=True)
class SessionEvent:
    """Single replay event emitted during a session."""

    event_type: EventType
    session_id: str
    round_number: int
    timestamp_ms: int
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-serializable event data."""
        return {
            "event_type": self.event_type.value,
            "session_id": self.session_id,
            "round_number": self.round_number,
            "timestamp_ms": self.timestamp_ms,
            "payload": to_serializable(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionEvent":
        """Build an event from a dictionary payload."""
        return cls(
            event_type=EventType(str(data["event_type"])),
            session_id=str(data["session_id"]),
            round_number=int(data.get("round_number", 0)),
            timestamp_ms=int(data["timestamp_ms"]),
            payload=dict(data.get("payload", {})),
        )

    @classmethod
    def create(cls, event_type: EventType, session_id: str, round_number: int, payload: dict[str, Any]) -> "SessionEvent":
        """Construct an event with the current wall-clock timestamp."""
        return cls(
            event_type=event_type,
            session_id=session_id,
            round_number=round_number,
            timestamp_ms=int(time() * 1000),
            payload=payload,
        )
