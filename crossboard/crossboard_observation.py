"""Per-player view of a Crossboard session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from framework.observation import Observation

from .crossboard_state import SessionStatus


@dataclass(frozen=True)
class PlayerView(Observation):
    """What one player may see: their own hand, only counts for everyone else."""

    session_id: str
    player_id: str
    status: SessionStatus
    round_number: int
    players: tuple[dict[str, Any], ...]
    current_player: str | None
    my_turn: bool
    board: dict[str, dict[str, Any]]
    hand: tuple[dict[str, Any], ...]
    hand_counts: dict[str, int]
    deck_count: int
    insertion_points: dict[str, Any]
    cards_revealed: bool
    last_round_loser: str | None
    last_round_reason: str | None
