"""Pydantic request schemas for the session API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """Request body for creating a new game session."""

    session_id: str | None = Field(default=None, min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_.-]+$")
    name: str | None = None
    created_by: str | None = None
    max_players: int | None = Field(default=None, ge=2)


class JoinRequest(BaseModel):
    """Request body for joining a waiting session."""

    player_id: str = Field(min_length=1)
    player_name: str = ""


class PlayerRequest(BaseModel):
    """Request body naming the acting player (leave, start)."""

    player_id: str = Field(min_length=1)


class MoveRequest(BaseModel):
    """Request body for playing a card at an insertion point."""

    player_id: str = Field(min_length=1)
    card_id: str = Field(min_length=1)
    insertion_point: dict[str, Any]


class EndRoundRequest(BaseModel):
    """Request body for closing the current round."""

    losing_player_id: str | None = None
    reason: str = "Round ended"
