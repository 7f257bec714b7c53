"""Crossboard session state machine: players, turns, hands and rounds."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import time
from typing import Any, Mapping

from framework.errors import ErrorKind, InvalidInsertionPointError, SessionStateError
from framework.events import EventType, SessionEvent
from framework.logging import get_logger
from framework.result import ActionResult
from framework.serialize import digest

from .crossboard_board import Board
from .crossboard_cards import CardCatalog, CardDefinition
from .crossboard_insertion import InsertionEngine, InsertionPoint, InsertionPointSet
from .crossboard_observation import PlayerView
from .crossboard_state import (
    DEFAULT_CARDS_PER_PLAYER,
    DEFAULT_MAX_PLAYERS,
    MIN_PLAYERS,
    PlayerInfo,
    SessionStatus,
)

logger = get_logger("session")

NOT_ENOUGH_PLAYERS = "Not enough players"
ALL_CARDS_PLACED = "All cards placed"


@dataclass
class GameSession:
    """One game session; mutated only through its own operations.

    Every operation returns an :class:`ActionResult`. A move that breaks the
    placement rules is not retried: it ends the game with the acting player
    recorded as loser.
    """

    session_id: str
    catalog: CardCatalog
    max_players: int = DEFAULT_MAX_PLAYERS
    cards_per_player: int = DEFAULT_CARDS_PER_PLAYER
    players: dict[str, PlayerInfo] = field(default_factory=dict)
    player_order: list[str] = field(default_factory=list)
    current_player_index: int = 0
    board: Board = field(default_factory=Board)
    deck: list[CardDefinition] = field(default_factory=list)
    hands: dict[str, list[CardDefinition]] = field(default_factory=dict)
    status: SessionStatus = SessionStatus.WAITING
    round_number: int = 0
    cards_revealed: bool = False
    last_round_loser: str | None = None
    last_round_reason: str | None = None
    ended_reason: str | None = None
    created_at: float = field(default_factory=time)
    last_activity: float = field(default_factory=time)
    metadata: dict[str, Any] = field(default_factory=dict)
    events: list[SessionEvent] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        session_id: str,
        catalog: CardCatalog,
        *,
        max_players: int = DEFAULT_MAX_PLAYERS,
        cards_per_player: int = DEFAULT_CARDS_PER_PLAYER,
        name: str | None = None,
        created_by: str | None = None,
    ) -> "GameSession":
        if max_players < MIN_PLAYERS:
            raise ValueError(f"max_players must be >= {MIN_PLAYERS}.")
        if cards_per_player < 1:
            raise ValueError("cards_per_player must be >= 1.")
        session = cls(
            session_id=session_id,
            catalog=catalog,
            max_players=max_players,
            cards_per_player=cards_per_player,
            metadata={"name": name, "created_by": created_by},
        )
        session._record(EventType.SESSION_CREATED, {"max_players": max_players, "name": name})
        return session

    @property
    def engine(self) -> InsertionEngine:
        return InsertionEngine(self.board)

    def current_player_id(self) -> str | None:
        if not self.player_order:
            return None
        return self.player_order[self.current_player_index]

    def player_count(self) -> int:
        return len(self.players)

    def touch(self) -> None:
        self.last_activity = time()

    def is_expired(self, timeout_seconds: float, now: float | None = None) -> bool:
        reference = time() if now is None else now
        return reference - self.last_activity > timeout_seconds

    def add_player(self, player_id: str, name: str) -> ActionResult:
        if not player_id:
            return ActionResult.fail("Player id is required")
        if player_id in self.players:
            return ActionResult.fail("Player already in session")
        if self.status is not SessionStatus.WAITING:
            return ActionResult.fail("Game already in progress", ErrorKind.STRUCTURAL)
        if len(self.players) >= self.max_players:
            return ActionResult.fail("Session is full", ErrorKind.STRUCTURAL)

        self.players[player_id] = PlayerInfo(id=player_id, name=name or player_id, joined_at=time())
        self.touch()
        self._record(EventType.PLAYER_JOINED, {"player_id": player_id, "player_count": len(self.players)})
        return ActionResult.ok(player_count=len(self.players))

    def remove_player(self, player_id: str) -> ActionResult:
        if player_id not in self.players:
            return ActionResult.fail("Player not in session")

        del self.players[player_id]
        self.hands.pop(player_id, None)
        if player_id in self.player_order:
            removed_index = self.player_order.index(player_id)
            self.player_order.remove(player_id)
            if removed_index < self.current_player_index:
                self.current_player_index -= 1
            if self.current_player_index >= len(self.player_order):
                self.current_player_index = 0

        self.touch()
        self._record(EventType.PLAYER_LEFT, {"player_id": player_id, "player_count": len(self.players)})
        if self.status in {SessionStatus.PLAYING, SessionStatus.ROUND_ENDED} and len(self.players) < MIN_PLAYERS:
            self._end_game(NOT_ENOUGH_PLAYERS)
        return ActionResult.ok(player_count=len(self.players), status=self.status)

    def start_game(self, initiator_id: str) -> ActionResult:
        if self.status is not SessionStatus.WAITING:
            return ActionResult.fail("Game already in progress", ErrorKind.STRUCTURAL)
        if len(self.players) < MIN_PLAYERS:
            return ActionResult.fail(NOT_ENOUGH_PLAYERS, ErrorKind.STRUCTURAL)
        if initiator_id not in self.players:
            return ActionResult.fail("Only players can start the game")

        self.player_order = list(self.players)
        self.round_number = 1
        self._begin_round()
        self._record(
            EventType.GAME_STARTED,
            {"initiator": initiator_id, "player_order": list(self.player_order), "deck_count": len(self.deck)},
        )
        return ActionResult.ok(status=self.status, player_order=list(self.player_order))

    def execute_move(
        self,
        player_id: str,
        card_id: str,
        insertion_point: InsertionPoint | Mapping[str, Any],
    ) -> ActionResult:
        if self.status is not SessionStatus.PLAYING:
            return ActionResult.fail("Game not in progress", ErrorKind.STRUCTURAL)
        if self.current_player_id() != player_id:
            return ActionResult.fail("Not your turn", ErrorKind.STRUCTURAL)
        hand = self.hands.get(player_id)
        if hand is None:
            return ActionResult.fail("Player hand not found")
        card_index = next((index for index, card in enumerate(hand) if card.id == card_id), None)
        if card_index is None:
            return ActionResult.fail("Card not in hand")

        if isinstance(insertion_point, InsertionPoint):
            point = insertion_point
        else:
            try:
                point = InsertionPoint.from_dict(insertion_point)
            except InvalidInsertionPointError as exc:
                return ActionResult.fail(str(exc))

        card = hand[card_index]
        outcome = self.engine.execute(card, point)
        if not outcome.valid:
            reason = outcome.reason or "Invalid move"
            self._record(
                EventType.MOVE_REJECTED,
                {"player_id": player_id, "card_id": card_id, "insertion_point": point.to_dict(), "reason": reason},
            )
            self.last_round_loser = player_id
            self.last_round_reason = reason
            self._end_game(reason)
            return ActionResult(
                success=False,
                reason=reason,
                kind=ErrorKind.RULE_VIOLATION,
                game_ended=True,
                loser=player_id,
            )

        hand.pop(card_index)
        drawn = CardCatalog.draw_one(self.deck)
        if drawn is not None:
            hand.append(drawn)
        self.current_player_index = (self.current_player_index + 1) % len(self.player_order)
        self.touch()
        self._record(
            EventType.MOVE_EXECUTED,
            {
                "player_id": player_id,
                "card_id": card_id,
                "insertion_point": (outcome.point or point).to_dict(),
                "shifted": outcome.shifted,
                "board_digest": digest(self.board.to_dict()),
            },
        )

        data: dict[str, Any] = {
            "placed": outcome.placed.to_public_dict() if outcome.placed is not None else None,
            "drew_card": drawn is not None,
            "next_player": self.current_player_id(),
        }
        if not self.deck and not any(self.hands.values()):
            data["round_result"] = self.end_round(None, ALL_CARDS_PLACED).to_dict()
        return ActionResult.ok(**data)

    def insertion_points(self) -> InsertionPointSet:
        return self.engine.insertion_points()

    def reveal_all_cards(self) -> dict[str, dict[str, Any]]:
        """Return every placed card with its metric values and flag the reveal."""
        revealed = {
            f"{placed.x},{placed.y}": {
                "position": {"x": placed.x, "y": placed.y},
                "card": placed.to_dict(),
                "values": {"width": placed.card.width, "height": placed.card.height},
            }
            for placed in self.board
        }
        if not self.cards_revealed:
            self.cards_revealed = True
            self._record(EventType.CARDS_REVEALED, {"card_count": len(revealed)})
        self.touch()
        return revealed

    def end_round(self, losing_player_id: str | None, reason: str) -> ActionResult:
        """Close the current round; the session can continue with a new round."""
        ended_by_lost_move = self.status is SessionStatus.ENDED and self.last_round_loser is not None
        if self.status is not SessionStatus.PLAYING and not ended_by_lost_move:
            return ActionResult.fail("No round in progress", ErrorKind.STRUCTURAL)
        if losing_player_id is not None and losing_player_id not in self.players:
            return ActionResult.fail("Player not in session")
        if len(self.players) < MIN_PLAYERS:
            return ActionResult.fail(NOT_ENOUGH_PLAYERS, ErrorKind.STRUCTURAL)

        self.status = SessionStatus.ROUND_ENDED
        self.ended_reason = None
        self.last_round_loser = losing_player_id
        self.last_round_reason = reason
        self._record(EventType.ROUND_ENDED, {"loser": losing_player_id, "reason": reason})
        revealed = self.reveal_all_cards()
        return ActionResult.ok(loser=losing_player_id, reason=reason, revealed_cards=revealed)

    def start_new_round(self) -> ActionResult:
        if self.status is not SessionStatus.ROUND_ENDED:
            return ActionResult.fail("Round has not ended", ErrorKind.STRUCTURAL)
        if len(self.player_order) < MIN_PLAYERS:
            return ActionResult.fail(NOT_ENOUGH_PLAYERS, ErrorKind.STRUCTURAL)

        self.round_number += 1
        self.last_round_loser = None
        self.last_round_reason = None
        self._begin_round()
        self._record(EventType.NEW_ROUND_STARTED, {"deck_count": len(self.deck)})
        return ActionResult.ok(status=self.status, round_number=self.round_number)

    def game_state_for(self, player_id: str) -> ActionResult:
        if player_id not in self.players:
            return ActionResult.fail("Player not in session")
        view = self.view_for(player_id)
        return ActionResult.ok(game_state=view.to_dict(), state_digest=view.observation_digest())

    def view_for(self, player_id: str) -> PlayerView:
        """Build the redacted view for one player."""
        revealed = self.cards_revealed
        board = {
            f"{placed.x},{placed.y}": placed.to_dict() if revealed else placed.to_public_dict()
            for placed in sorted(self.board, key=lambda placed: (placed.x, placed.y))
        }
        own_hand = self.hands.get(player_id, [])
        current = self.current_player_id() if self.status is SessionStatus.PLAYING else None
        points = self.insertion_points() if self.status is SessionStatus.PLAYING else InsertionPointSet()
        return PlayerView(
            session_id=self.session_id,
            player_id=player_id,
            status=self.status,
            round_number=self.round_number,
            players=tuple(player.to_dict() for player in self.players.values()),
            current_player=current,
            my_turn=current == player_id,
            board=board,
            hand=tuple(card.to_dict() if revealed else card.to_public_dict() for card in own_hand),
            hand_counts={pid: len(cards) for pid, cards in self.hands.items()},
            deck_count=len(self.deck),
            insertion_points=points.to_dict(),
            cards_revealed=revealed,
            last_round_loser=self.last_round_loser,
            last_round_reason=self.last_round_reason,
        )

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.session_id,
            "name": self.metadata.get("name") or f"Session {self.session_id[-8:]}",
            "player_count": len(self.players),
            "max_players": self.max_players,
            "status": self.status.value,
            "round_number": self.round_number,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
            "created_by": self.metadata.get("created_by"),
            "board": self.board.stats(),
        }

    def _begin_round(self) -> None:
        self.board = Board()
        self.status = SessionStatus.PLAYING
        self.cards_revealed = False
        self.ended_reason = None
        self.current_player_index = 0
        self.deck = self.catalog.shuffled_deck()
        self.hands = CardCatalog.deal_cards(self.deck, self.player_order, self.cards_per_player)
        self.touch()

    def _end_game(self, reason: str) -> None:
        self.status = SessionStatus.ENDED
        self.ended_reason = reason
        self.touch()
        logger.info("session_ended", session_id=self.session_id, reason=reason, loser=self.last_round_loser)
        self._record(EventType.GAME_ENDED, {"reason": reason, "loser": self.last_round_loser})

    def _record(self, event_type: EventType, payload: dict[str, Any]) -> None:
        self.events.append(SessionEvent.create(event_type, self.session_id, self.round_number, payload))

    def to_dict(self) -> dict[str, Any]:
        """Serialize everything needed to rebuild the session."""
        return {
            "session_id": self.session_id,
            "max_players": self.max_players,
            "cards_per_player": self.cards_per_player,
            "players": [player.to_dict() for player in self.players.values()],
            "player_order": list(self.player_order),
            "current_player_index": self.current_player_index,
            "board": self.board.to_dict(),
            "deck": [card.to_dict() for card in self.deck],
            "hands": {player_id: [card.to_dict() for card in hand] for player_id, hand in self.hands.items()},
            "status": self.status.value,
            "round_number": self.round_number,
            "cards_revealed": self.cards_revealed,
            "last_round_loser": self.last_round_loser,
            "last_round_reason": self.last_round_reason,
            "ended_reason": self.ended_reason,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
            "metadata": dict(self.metadata),
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], catalog: CardCatalog) -> "GameSession":
        """Rebuild a session, refusing states that break the board invariants."""
        session_id = str(data.get("session_id", ""))
        try:
            board = Board.from_dict(data.get("board", {}))
            players = [PlayerInfo.from_dict(raw) for raw in data.get("players", [])]
            session = cls(
                session_id=session_id,
                catalog=catalog,
                max_players=int(data.get("max_players", DEFAULT_MAX_PLAYERS)),
                cards_per_player=int(data.get("cards_per_player", DEFAULT_CARDS_PER_PLAYER)),
                players={player.id: player for player in players},
                player_order=[str(player_id) for player_id in data.get("player_order", [])],
                current_player_index=int(data.get("current_player_index", 0)),
                board=board,
                deck=[CardDefinition.from_dict(raw) for raw in data.get("deck", [])],
                hands={
                    str(player_id): [CardDefinition.from_dict(raw) for raw in hand]
                    for player_id, hand in dict(data.get("hands", {})).items()
                },
                status=SessionStatus(str(data.get("status", SessionStatus.WAITING.value))),
                round_number=int(data.get("round_number", 0)),
                cards_revealed=bool(data.get("cards_revealed", False)),
                last_round_loser=data.get("last_round_loser"),
                last_round_reason=data.get("last_round_reason"),
                ended_reason=data.get("ended_reason"),
                created_at=float(data.get("created_at", time())),
                last_activity=float(data.get("last_activity", time())),
                metadata=dict(data.get("metadata") or {}),
                events=[SessionEvent.from_dict(raw) for raw in data.get("events", [])],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SessionStateError(session_id, f"Stored session {session_id!r} is malformed: {exc}") from exc

        violations = board.ordering_violations()
        if violations:
            lower, upper, axis = violations[0]
            raise SessionStateError(
                session_id,
                f"Stored board breaks {axis.value} ordering between "
                f"({lower.x}, {lower.y}) and ({upper.x}, {upper.y}).",
            )
        unknown = [player_id for player_id in session.player_order if player_id not in session.players]
        if unknown:
            raise SessionStateError(session_id, f"Turn order references unknown players: {unknown}.")
        if session.player_order and not 0 <= session.current_player_index < len(session.player_order):
            raise SessionStateError(session_id, "Current player index is out of range.")
        return session
