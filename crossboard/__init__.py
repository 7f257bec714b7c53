"""Crossboard package exports."""

from .crossboard_board import Board, PlacedCard
from .crossboard_cards import CardCatalog, CardDefinition, CardRecord
from .crossboard_game import GameSession
from .crossboard_insertion import InsertionEngine, InsertionOutcome, InsertionPoint, InsertionPointSet
from .crossboard_moves import MoveType, PlayCard, move_from_dict
from .crossboard_observation import PlayerView
from .crossboard_state import (
    ARMS,
    DEFAULT_CARDS_PER_PLAYER,
    DEFAULT_MAX_PLAYERS,
    MIN_PLAYERS,
    Axis,
    InsertionKind,
    PlayerInfo,
    SessionStatus,
)

__all__ = [
    "ARMS",
    "Axis",
    "Board",
    "CardCatalog",
    "CardDefinition",
    "CardRecord",
    "DEFAULT_CARDS_PER_PLAYER",
    "DEFAULT_MAX_PLAYERS",
    "GameSession",
    "InsertionEngine",
    "InsertionKind",
    "InsertionOutcome",
    "InsertionPoint",
    "InsertionPointSet",
    "MIN_PLAYERS",
    "MoveType",
    "PlacedCard",
    "PlayCard",
    "PlayerInfo",
    "PlayerView",
    "SessionStatus",
    "move_from_dict",
]
