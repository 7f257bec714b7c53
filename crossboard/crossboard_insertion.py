"""Insertion engine: enumerate, validate and execute card insertions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from framework.errors import InvalidInsertionPointError
from framework.logging import get_logger

from .crossboard_board import Board, PlacedCard
from .crossboard_cards import CardDefinition
from .crossboard_state import Axis, InsertionKind, position_on_arm, running_coordinate

logger = get_logger("insertion")


def _coordinate(value: Any) -> int:
    """Accept ints, integral floats and integer strings; anything else is rejected."""
    if isinstance(value, bool):
        raise ValueError("booleans are not coordinates")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value!r} is not integral")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"unsupported coordinate {value!r}")


@dataclass(frozen=True)
class InsertionPoint:
    """A candidate position for the next card."""

    x: int
    y: int
    axis: Axis
    kind: InsertionKind
    description: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.x != 0 and self.y != 0:
            raise InvalidInsertionPointError(self.x, self.y, "position is off the cross")
        expected = Board.determine_axis(self.x, self.y)
        if expected is not self.axis:
            raise InvalidInsertionPointError(
                self.x,
                self.y,
                f"axis {self.axis.value!r} does not match position (expected {expected.value!r})",
            )
        if (self.kind is InsertionKind.ORIGIN) != (self.axis is Axis.ORIGIN):
            raise InvalidInsertionPointError(self.x, self.y, f"kind {self.kind.value!r} does not fit axis {self.axis.value!r}")

    @property
    def shifts_cards(self) -> bool:
        return self.kind is InsertionKind.SHIFT

    @property
    def coordinate(self) -> int:
        return running_coordinate(self.axis, self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "axis": self.axis.value,
            "kind": self.kind.value,
            "shifts_cards": self.shifts_cards,
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InsertionPoint":
        """Parse a caller-supplied point; ``axis`` and ``kind`` are inferred when omitted."""
        try:
            x = _coordinate(data["x"])
            y = _coordinate(data["y"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInsertionPointError(data.get("x"), data.get("y"), "x and y must be integers") from exc

        raw_axis = data.get("axis")
        if raw_axis is None:
            axis = Board.determine_axis(x, y)
            if axis is None:
                raise InvalidInsertionPointError(x, y, "position is off the cross")
        else:
            try:
                axis = Axis(str(raw_axis))
            except ValueError as exc:
                raise InvalidInsertionPointError(x, y, f"unknown axis {raw_axis!r}") from exc

        raw_kind = data.get("kind")
        if raw_kind is None:
            if axis is Axis.ORIGIN:
                kind = InsertionKind.ORIGIN
            elif data.get("shifts_cards"):
                kind = InsertionKind.SHIFT
            else:
                kind = InsertionKind.EXTEND
        else:
            try:
                kind = InsertionKind(str(raw_kind))
            except ValueError as exc:
                raise InvalidInsertionPointError(x, y, f"unknown kind {raw_kind!r}") from exc

        return cls(x=x, y=y, axis=axis, kind=kind, description=data.get("description"))


@dataclass(frozen=True)
class InsertionPointSet:
    """Legal insertion points grouped the way callers display them."""

    origin: tuple[InsertionPoint, ...] = ()
    horizontal: tuple[InsertionPoint, ...] = ()
    vertical: tuple[InsertionPoint, ...] = ()

    def all(self) -> list[InsertionPoint]:
        return [*self.origin, *self.horizontal, *self.vertical]

    def find(self, x: int, y: int, axis: Axis) -> InsertionPoint | None:
        for point in self.all():
            if point.x == x and point.y == y and point.axis is axis:
                return point
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "origin": [point.to_dict() for point in self.origin],
            "horizontal": [point.to_dict() for point in self.horizontal],
            "vertical": [point.to_dict() for point in self.vertical],
        }


@dataclass(frozen=True)
class InsertionOutcome:
    """Result of an attempted insertion; the board is untouched when ``valid`` is false."""

    valid: bool
    reason: str | None = None
    placed: PlacedCard | None = None
    point: InsertionPoint | None = None
    shifted: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"valid": self.valid}
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.placed is not None:
            payload["placed"] = self.placed.to_public_dict()
        if self.point is not None:
            payload["insertion_point"] = self.point.to_dict()
        if self.shifted:
            payload["shifted"] = self.shifted
        return payload


def _format_value(value: float | None) -> str:
    if value is None:
        return "?"
    return f"{value:g}"


class InsertionEngine:
    """Derives legal insertion points from a board and applies insertions to it."""

    def __init__(self, board: Board):
        self.board = board

    def insertion_points(self) -> InsertionPointSet:
        """Return every candidate insertion point for the current board."""
        if self.board.is_empty:
            return InsertionPointSet(
                origin=(InsertionPoint(0, 0, Axis.ORIGIN, InsertionKind.ORIGIN, "First card (centre)"),),
            )
        return InsertionPointSet(
            horizontal=tuple(self._arm_points(Axis.HORIZONTAL)),
            vertical=tuple(self._arm_points(Axis.VERTICAL)),
        )

    def _arm_points(self, axis: Axis) -> list[InsertionPoint]:
        cards = self.board.cards_on_axis(axis)
        if not cards:
            origin = self.board.origin()
            origin_name = origin.card.name if origin is not None else "origin"
            return [
                self._point(axis, -1, InsertionKind.EXTEND, f"Extend before {origin_name}"),
                self._point(axis, 1, InsertionKind.EXTEND, f"Extend after {origin_name}"),
            ]

        first, last = cards[0], cards[-1]
        points = [
            self._point(axis, self._coord(axis, first) - 1, InsertionKind.EXTEND, f"Extend before {first.card.name}"),
            self._point(axis, self._coord(axis, last) + 1, InsertionKind.EXTEND, f"Extend after {last.card.name}"),
        ]
        for current, following in zip(cards, cards[1:]):
            current_coord = self._coord(axis, current)
            following_coord = self._coord(axis, following)
            between = f"between {current.card.name} and {following.card.name}"
            if following_coord - current_coord > 1:
                points.append(self._point(axis, current_coord + 1, InsertionKind.GAP, f"Fill gap {between}"))
            elif following_coord - current_coord == 1:
                # Insert where the card farther from the origin sits; it moves outward.
                farther = following_coord if abs(following_coord) > abs(current_coord) else current_coord
                points.append(self._point(axis, farther, InsertionKind.SHIFT, f"Insert {between} (shifts cards outward)"))
        return points

    @staticmethod
    def _coord(axis: Axis, placed: PlacedCard) -> int:
        return running_coordinate(axis, placed.x, placed.y)

    @staticmethod
    def _point(axis: Axis, coordinate: int, kind: InsertionKind, description: str) -> InsertionPoint:
        x, y = position_on_arm(axis, coordinate)
        return InsertionPoint(x=x, y=y, axis=axis, kind=kind, description=description)

    def validate(self, card: CardDefinition, point: InsertionPoint) -> tuple[bool, str | None]:
        """Return whether ``card`` may be inserted at ``point`` and a reason when not."""
        _, reason = self._resolve(card, point)
        return reason is None, reason

    def _resolve(self, card: CardDefinition, point: InsertionPoint) -> tuple[InsertionPoint | None, str | None]:
        """Match ``point`` to the enumerated candidate and check ``card`` against it.

        Returns the candidate on success, ``(None, reason)`` otherwise. The
        candidate's kind wins over whatever kind the caller sent.
        """
        if point.axis is Axis.ORIGIN:
            if not self.board.is_empty:
                return None, "The origin card has already been placed"
            if not card.can_be_origin():
                return None, f"{card.name} cannot be the first card (needs both width and height)"
            return point, None

        if not point.shifts_cards and self.board.is_occupied(point.x, point.y):
            return None, f"Position ({point.x}, {point.y}) is already occupied"

        candidate = self.insertion_points().find(point.x, point.y, point.axis)
        if candidate is None:
            return None, f"({point.x}, {point.y}) is not an insertion point on the {point.axis.value} arm"

        value = card.metric_for(candidate.axis)
        metric = CardDefinition.metric_name(candidate.axis)
        if value is None:
            return None, f"{card.name} cannot be placed on the {candidate.axis.value} arm (no {metric})"

        lower, upper = self._bounds(candidate)
        if lower is not None:
            lower_value = lower.effective_value(candidate.axis)
            if lower_value is not None and not value > lower_value:
                return None, (
                    f"{card.name} ({metric} {_format_value(value)}) must be greater than "
                    f"{lower.card.name} ({_format_value(lower_value)})"
                )
        if upper is not None:
            upper_value = upper.effective_value(candidate.axis)
            if upper_value is not None and not value < upper_value:
                return None, (
                    f"{card.name} ({metric} {_format_value(value)}) must be less than "
                    f"{upper.card.name} ({_format_value(upper_value)})"
                )
        return candidate, None

    def _bounds(self, point: InsertionPoint) -> tuple[PlacedCard | None, PlacedCard | None]:
        """Cards directly before and after the new card once it is on the arm.

        For a shift the current occupant is pushed one step away from the origin,
        so it becomes the outer bound and the card on the origin side the inner one.
        """
        axis = point.axis
        position = point.coordinate
        if point.shifts_cards:
            occupant = self.board.get(point.x, point.y)
            direction = 1 if position > 0 else -1
            inner = self.board.get(*position_on_arm(axis, position - direction))
            if direction > 0:
                return inner, occupant
            return occupant, inner

        lower = None
        upper = None
        for placed in self.board.cards_on_axis(axis):
            coordinate = self._coord(axis, placed)
            if coordinate < position:
                lower = placed
            elif coordinate > position and upper is None:
                upper = placed
        return lower, upper

    def execute(self, card: CardDefinition, point: InsertionPoint) -> InsertionOutcome:
        """Validate and, when legal, apply an insertion (shifting cards if needed)."""
        candidate, reason = self._resolve(card, point)
        if candidate is None:
            logger.debug("insertion_rejected", card_id=card.id, x=point.x, y=point.y, reason=reason)
            return InsertionOutcome(valid=False, reason=reason, point=point)

        if candidate.axis is Axis.ORIGIN:
            placed = self.board.place(card, 0, 0, Axis.ORIGIN)
            return InsertionOutcome(valid=True, placed=placed, point=candidate)

        shifted = self._shift_outward(candidate) if candidate.shifts_cards else 0
        placed = self.board.place(card, candidate.x, candidate.y, candidate.axis)
        logger.info(
            "card_inserted",
            card_id=card.id,
            x=candidate.x,
            y=candidate.y,
            axis=candidate.axis.value,
            kind=candidate.kind.value,
            shifted=shifted,
        )
        return InsertionOutcome(valid=True, placed=placed, point=candidate, shifted=shifted)

    def _shift_outward(self, point: InsertionPoint) -> int:
        """Move every card at or beyond ``point`` one step away from the origin."""
        axis = point.axis
        position = point.coordinate
        direction = 1 if position > 0 else -1
        to_move = [
            placed
            for placed in self.board.cards_on_axis(axis)
            if self._coord(axis, placed) * direction >= position * direction
        ]
        # Far end first so no card lands on an occupied cell.
        to_move.sort(key=lambda placed: self._coord(axis, placed) * direction, reverse=True)
        for placed in to_move:
            coordinate = self._coord(axis, placed)
            self.board.move(placed.x, placed.y, *position_on_arm(axis, coordinate + direction))
        return len(to_move)
