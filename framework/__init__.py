"""Framework exports shared by the game and server layers."""

from .errors import CardCatalogError, CrossboardError, ErrorKind, InvalidInsertionPointError, SessionStateError
from .events import EventType, SessionEvent
from .move import Move
from .observation import Observation
from .result import SESSION_NOT_FOUND, ActionResult

__all__ = [
    "ActionResult",
    "CardCatalogError",
    "CrossboardError",
    "ErrorKind",
    "EventType",
    "InvalidInsertionPointError",
    "Move",
    "Observation",
    "SESSION_NOT_FOUND",
    "SessionEvent",
    "SessionStateError",
]
