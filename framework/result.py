"""Result values returned by every session and registry operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Self

from .errors import ErrorKind
from .serialize import to_serializable

SESSION_NOT_FOUND = "Session not found"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one caller-facing operation.

    Failures are values rather than exceptions: ``kind`` tells the caller
    whether the request was malformed (validation), broke a placement rule
    (rule_violation) or targeted the wrong session state (structural).
    A move that loses the round is reported with ``game_ended`` and ``loser``.
    """

    success: bool
    reason: str | None = None
    kind: ErrorKind | None = None
    data: dict[str, Any] = field(default_factory=dict)
    game_ended: bool = False
    loser: str | None = None

    @classmethod
    def ok(cls, **data: Any) -> Self:
        return cls(success=True, data=dict(data))

    @classmethod
    def fail(cls, reason: str, kind: ErrorKind = ErrorKind.VALIDATION, **data: Any) -> Self:
        return cls(success=False, reason=reason, kind=kind, data=dict(data))

    @classmethod
    def not_found(cls, session_id: str) -> Self:
        return cls.fail(SESSION_NOT_FOUND, ErrorKind.STRUCTURAL, session_id=session_id)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable result object."""
        payload: dict[str, Any] = {"success": self.success, **to_serializable(self.data)}
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.kind is not None:
            payload["kind"] = self.kind.value
        if self.game_ended:
            payload["game_ended"] = True
            payload["loser"] = self.loser
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a result from serialized data."""
        extra = {
            key: value
            for key, value in data.items()
            if key not in {"success", "reason", "kind", "game_ended", "loser"}
        }
        kind = data.get("kind")
        return cls(
            success=bool(data["success"]),
            reason=data.get("reason"),
            kind=ErrorKind(str(kind)) if kind is not None else None,
            data=extra,
            game_ended=bool(data.get("game_ended", False)),
            loser=data.get("loser"),
        )
