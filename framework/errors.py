"""Error taxonomy and structured exceptions used across Crossboard."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Categories of failure reported back to callers."""

    VALIDATION = "validation"
    RULE_VIOLATION = "rule_violation"
    STRUCTURAL = "structural"


class CrossboardError(Exception):
    """Base class for exceptions raised at load and parse boundaries."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "kind": self.kind.value, "message": str(self)}


class CardCatalogError(CrossboardError):
    """Raised when card definitions cannot be loaded."""


class InvalidInsertionPointError(CrossboardError):
    """Raised when an insertion point payload does not describe a cross position."""

    def __init__(self, x: Any, y: Any, reason: str | None = None):
        self.x = x
        self.y = y
        self.reason = reason
        message = f"Invalid insertion point ({x}, {y})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"x": self.x, "y": self.y})
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


class SessionStateError(CrossboardError):
    """Raised when a stored session cannot be reconstructed."""

    kind = ErrorKind.STRUCTURAL

    def __init__(self, session_id: str, message: str):
        self.session_id = session_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["session_id"] = self.session_id
        return payload
