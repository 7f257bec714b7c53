"""Durable session stores used behind the session registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

from framework.errors import SessionStateError
from framework.serialize import json_dumps, json_loads

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class SessionStore(ABC):
    """Key/value persistence for serialized sessions."""

    @abstractmethod
    def save(self, session_id: str, state: dict[str, Any]) -> None:
        """Persist the serialized state of one session."""

    @abstractmethod
    def load(self, session_id: str) -> dict[str, Any] | None:
        """Return the stored state, or ``None`` when the session is unknown."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Forget a session; unknown ids are ignored."""

    @abstractmethod
    def list_ids(self) -> list[str]:
        """Return the ids of every stored session."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local store; states are deep-copied so callers never share them."""

    _states: dict[str, dict[str, Any]] = field(default_factory=dict)

    def save(self, session_id: str, state: dict[str, Any]) -> None:
        self._states[session_id] = deepcopy(state)

    def load(self, session_id: str) -> dict[str, Any] | None:
        state = self._states.get(session_id)
        return deepcopy(state) if state is not None else None

    def delete(self, session_id: str) -> None:
        self._states.pop(session_id, None)

    def list_ids(self) -> list[str]:
        return sorted(self._states)


@dataclass
class JsonFileSessionStore(SessionStore):
    """One JSON document per session inside ``directory``."""

    directory: Path

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        if not _SAFE_ID.match(session_id):
            raise ValueError(f"Session id {session_id!r} is not safe to use as a file name.")
        return self.directory / f"{session_id}.json"

    def save(self, session_id: str, state: dict[str, Any]) -> None:
        path = self._path(session_id)
        temp = path.with_suffix(path.suffix + ".tmp")
        temp.write_text(json_dumps(state, indent=2), encoding="utf-8")
        temp.replace(path)

    def load(self, session_id: str) -> dict[str, Any] | None:
        if not _SAFE_ID.match(session_id):
            return None
        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            raw = json_loads(path.read_text(encoding="utf-8"))
        except ValueError as exc:
            raise SessionStateError(session_id, f"Stored session {session_id!r} is not valid JSON.") from exc
        if not isinstance(raw, dict):
            raise SessionStateError(session_id, f"Stored session {session_id!r} is not a JSON object.")
        return raw

    def delete(self, session_id: str) -> None:
        if _SAFE_ID.match(session_id):
            self._path(session_id).unlink(missing_ok=True)

    def list_ids(self) -> list[str]:
        return sorted(path.stem for path in self.directory.glob("*.json"))
