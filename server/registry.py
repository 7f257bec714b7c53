"""Session registry: cached sessions, write-through persistence, per-session gates."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from time import time
from typing import Any
from uuid import uuid4

from crossboard.crossboard_cards import CardCatalog
from crossboard.crossboard_game import GameSession
from crossboard.crossboard_insertion import InsertionPoint
from framework.errors import ErrorKind, SessionStateError
from framework.logging import get_logger, log_game_event
from framework.result import ActionResult
from server.settings import GameSettings
from server.store import InMemorySessionStore, SessionStore

logger = get_logger("registry")


class SessionGate:
    """Reader/writer gate for one session.

    Any number of readers may hold the gate together; a writer holds it alone.
    Waiting writers block new readers so moves are not starved by polling.
    ``busy`` counts holders and waiters alike; a busy gate must stay shared.
    """

    def __init__(self) -> None:
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0
        self._users = 0

    @property
    def busy(self) -> bool:
        return self._users > 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        self._users += 1
        try:
            async with self._condition:
                await self._condition.wait_for(lambda: not self._writing and self._writers_waiting == 0)
                self._readers += 1
            try:
                yield
            finally:
                async with self._condition:
                    self._readers -= 1
                    self._condition.notify_all()
        finally:
            self._users -= 1

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        self._users += 1
        try:
            async with self._condition:
                self._writers_waiting += 1
                try:
                    await self._condition.wait_for(lambda: not self._writing and self._readers == 0)
                finally:
                    self._writers_waiting -= 1
                self._writing = True
            try:
                yield
            finally:
                async with self._condition:
                    self._writing = False
                    self._condition.notify_all()
        finally:
            self._users -= 1


class SessionRegistry:
    """Keyed set of sessions backed by a durable store.

    Lookups hit the in-memory cache first and fall back to the store. Every
    mutating operation runs under the session's write gate and is written
    through to the store before the gate is released.
    """

    def __init__(
        self,
        catalog: CardCatalog,
        store: SessionStore | None = None,
        settings: GameSettings | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store or InMemorySessionStore()
        self.settings = settings or GameSettings()
        self._sessions: dict[str, GameSession] = {}
        self._gates: dict[str, SessionGate] = {}

    def _gate(self, session_id: str) -> SessionGate:
        gate = self._gates.get(session_id)
        if gate is None:
            gate = self._gates[session_id] = SessionGate()
        return gate

    def _release(self, session_id: str, gate: SessionGate) -> None:
        # Gates of uncached sessions are dropped once nobody holds or waits on them.
        if gate.busy or session_id in self._sessions:
            return
        if self._gates.get(session_id) is gate:
            del self._gates[session_id]

    @asynccontextmanager
    async def _reading(self, session_id: str) -> AsyncIterator[None]:
        gate = self._gate(session_id)
        try:
            async with gate.read():
                yield
        finally:
            self._release(session_id, gate)

    @asynccontextmanager
    async def _writing(self, session_id: str) -> AsyncIterator[None]:
        gate = self._gate(session_id)
        try:
            async with gate.write():
                yield
        finally:
            self._release(session_id, gate)

    async def _load(self, session_id: str) -> GameSession | None:
        session = self._sessions.get(session_id)
        if session is not None:
            return session
        state = await asyncio.to_thread(self.store.load, session_id)
        if state is None:
            return None
        session = GameSession.from_dict(state, self.catalog)
        self._sessions[session_id] = session
        logger.debug("session_restored", session_id=session_id)
        return session

    async def _persist(self, session: GameSession) -> None:
        await asyncio.to_thread(self.store.save, session.session_id, session.to_dict())

    async def create_session(
        self,
        session_id: str | None = None,
        *,
        name: str | None = None,
        created_by: str | None = None,
        max_players: int | None = None,
    ) -> ActionResult:
        resolved_id = session_id or str(uuid4())
        async with self._writing(resolved_id):
            try:
                existing = await self._load(resolved_id)
            except SessionStateError as exc:
                return ActionResult.fail(str(exc), ErrorKind.STRUCTURAL, session_id=resolved_id)
            if existing is not None:
                return ActionResult.fail("Session already exists", ErrorKind.STRUCTURAL, session_id=resolved_id)
            try:
                session = GameSession.create(
                    resolved_id,
                    self.catalog,
                    max_players=max_players or self.settings.max_players,
                    cards_per_player=self.settings.cards_per_player,
                    name=name,
                    created_by=created_by,
                )
            except ValueError as exc:
                return ActionResult.fail(str(exc))
            self._sessions[resolved_id] = session
            await self._persist(session)
        log_game_event("session_created", session_id=resolved_id)
        return ActionResult.ok(session_id=resolved_id, session=session.summary())

    async def get(self, session_id: str) -> GameSession | None:
        async with self._reading(session_id):
            return await self._load(session_id)

    async def delete_session(self, session_id: str) -> ActionResult:
        async with self._writing(session_id):
            known = session_id in self._sessions or await asyncio.to_thread(self.store.load, session_id) is not None
            if not known:
                return ActionResult.not_found(session_id)
            self._sessions.pop(session_id, None)
            await asyncio.to_thread(self.store.delete, session_id)
        log_game_event("session_deleted", session_id=session_id)
        return ActionResult.ok(session_id=session_id)

    async def _mutate(
        self,
        session_id: str,
        action: str,
        operation: Callable[[GameSession], ActionResult],
        **log_data: Any,
    ) -> ActionResult:
        async with self._writing(session_id):
            try:
                session = await self._load(session_id)
            except SessionStateError as exc:
                logger.error("session_restore_failed", session_id=session_id, error=str(exc))
                return ActionResult.fail(str(exc), ErrorKind.STRUCTURAL)
            if session is None:
                return ActionResult.not_found(session_id)

            result = operation(session)
            if result.success or result.game_ended:
                await self._persist(session)

        if result.success:
            log_game_event(action, session_id=session_id, status=session.status.value, **log_data)
        elif result.game_ended:
            log_game_event(
                f"{action}_rejected",
                level="warning",
                session_id=session_id,
                reason=result.reason,
                loser=result.loser,
                **log_data,
            )
        else:
            logger.debug("operation_refused", action=action, session_id=session_id, reason=result.reason)
        return result

    async def _read(self, session_id: str, operation: Callable[[GameSession], ActionResult]) -> ActionResult:
        async with self._reading(session_id):
            try:
                session = await self._load(session_id)
            except SessionStateError as exc:
                return ActionResult.fail(str(exc), ErrorKind.STRUCTURAL)
            if session is None:
                return ActionResult.not_found(session_id)
            return operation(session)

    async def add_player(self, session_id: str, player_id: str, player_name: str) -> ActionResult:
        return await self._mutate(
            session_id,
            "player_joined",
            lambda session: session.add_player(player_id, player_name),
            player_id=player_id,
        )

    async def remove_player(self, session_id: str, player_id: str) -> ActionResult:
        return await self._mutate(
            session_id,
            "player_left",
            lambda session: session.remove_player(player_id),
            player_id=player_id,
        )

    async def start_game(self, session_id: str, initiator_id: str) -> ActionResult:
        return await self._mutate(
            session_id,
            "game_started",
            lambda session: session.start_game(initiator_id),
            initiator_id=initiator_id,
        )

    async def execute_move(
        self,
        session_id: str,
        player_id: str,
        card_id: str,
        insertion_point: InsertionPoint | Mapping[str, Any],
    ) -> ActionResult:
        point_payload = insertion_point.to_dict() if isinstance(insertion_point, InsertionPoint) else dict(insertion_point)
        return await self._mutate(
            session_id,
            "move_executed",
            lambda session: session.execute_move(player_id, card_id, insertion_point),
            player_id=player_id,
            card_id=card_id,
            insertion_point=point_payload,
        )

    async def reveal_cards(self, session_id: str) -> ActionResult:
        return await self._mutate(
            session_id,
            "cards_revealed",
            lambda session: ActionResult.ok(revealed_cards=session.reveal_all_cards()),
        )

    async def start_new_round(self, session_id: str) -> ActionResult:
        return await self._mutate(session_id, "new_round_started", lambda session: session.start_new_round())

    async def end_round(self, session_id: str, losing_player_id: str | None, reason: str) -> ActionResult:
        return await self._mutate(
            session_id,
            "round_ended",
            lambda session: session.end_round(losing_player_id, reason),
            loser=losing_player_id,
            reason=reason,
        )

    async def game_state(self, session_id: str, player_id: str) -> ActionResult:
        return await self._read(session_id, lambda session: session.game_state_for(player_id))

    async def insertion_points(self, session_id: str) -> ActionResult:
        return await self._read(
            session_id,
            lambda session: ActionResult.ok(insertion_points=session.insertion_points().to_dict()),
        )

    async def events(self, session_id: str) -> ActionResult:
        return await self._read(
            session_id,
            lambda session: ActionResult.ok(events=[event.to_dict() for event in session.events]),
        )

    async def summary(self, session_id: str) -> ActionResult:
        return await self._read(session_id, lambda session: ActionResult.ok(session=session.summary()))

    async def list_sessions(self) -> list[dict[str, Any]]:
        stored_ids = await asyncio.to_thread(self.store.list_ids)
        summaries: list[dict[str, Any]] = []
        for session_id in sorted(set(stored_ids) | set(self._sessions)):
            result = await self.summary(session_id)
            if result.success:
                summaries.append(result.data["session"])
        return summaries

    async def cleanup_expired(self, now: float | None = None) -> list[str]:
        """Evict cached sessions idle for longer than the configured timeout."""
        reference = time() if now is None else now
        timeout = self.settings.session_timeout_seconds
        removed: list[str] = []
        for session_id in list(self._sessions):
            async with self._writing(session_id):
                session = self._sessions.get(session_id)
                if session is None or not session.is_expired(timeout, reference):
                    continue
                self._sessions.pop(session_id, None)
                await asyncio.to_thread(self.store.delete, session_id)
            removed.append(session_id)
            logger.info("session_expired", session_id=session_id)
        return removed
