"""Cross-shaped board holding placed cards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from framework.logging import get_logger

from .crossboard_cards import CardDefinition
from .crossboard_state import ARMS, Axis, running_coordinate

logger = get_logger("board")

Coord = tuple[int, int]


@dataclass
class PlacedCard:
    """A card on the board with its position and assigned axis."""

    card: CardDefinition
    x: int
    y: int
    axis: Axis

    @property
    def is_origin(self) -> bool:
        return self.axis is Axis.ORIGIN

    @property
    def metric_value(self) -> float | None:
        """Cached metric for the card's own arm; the origin has none of its own."""
        if self.is_origin:
            return None
        return self.card.metric_for(self.axis)

    def effective_value(self, comparison_axis: Axis) -> float | None:
        """Return the value compared along ``comparison_axis``."""
        if self.is_origin:
            return self.card.metric_for(comparison_axis)
        return self.metric_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "card": self.card.to_dict(),
            "x": self.x,
            "y": self.y,
            "axis": self.axis.value,
            "metric_value": self.metric_value,
            "metric_name": "crossing" if self.is_origin else CardDefinition.metric_name(self.axis),
            "is_origin": self.is_origin,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Position data with the card's metrics withheld."""
        return {
            "card": self.card.to_public_dict(),
            "x": self.x,
            "y": self.y,
            "axis": self.axis.value,
            "is_origin": self.is_origin,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlacedCard":
        return cls(
            card=CardDefinition.from_dict(data["card"]),
            x=int(data["x"]),
            y=int(data["y"]),
            axis=Axis(str(data["axis"])),
        )


class Board:
    """Sparse mapping from coordinates to placed cards.

    The board trusts its caller: legality of a placement is decided by the
    insertion engine, the board only stores and answers positional queries.
    """

    def __init__(self) -> None:
        self._positions: dict[Coord, PlacedCard] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[PlacedCard]:
        return iter(self._positions.values())

    @property
    def is_empty(self) -> bool:
        return not self._positions

    def place(self, card: CardDefinition, x: int, y: int, axis: Axis) -> PlacedCard:
        placed = PlacedCard(card=card, x=x, y=y, axis=axis)
        self._positions[(x, y)] = placed
        logger.debug("card_placed", card_id=card.id, x=x, y=y, axis=axis.value)
        return placed

    def remove(self, x: int, y: int) -> bool:
        return self._positions.pop((x, y), None) is not None

    def move(self, from_x: int, from_y: int, to_x: int, to_y: int) -> bool:
        """Relocate a card; the target is assumed to be free."""
        placed = self._positions.pop((from_x, from_y), None)
        if placed is None:
            return False
        placed.x = to_x
        placed.y = to_y
        self._positions[(to_x, to_y)] = placed
        return True

    def get(self, x: int, y: int) -> PlacedCard | None:
        return self._positions.get((x, y))

    def is_occupied(self, x: int, y: int) -> bool:
        return (x, y) in self._positions

    def cards_on_axis(self, axis: Axis) -> list[PlacedCard]:
        """Cards on one arm, origin included, sorted by running coordinate."""
        if axis is Axis.HORIZONTAL:
            cards = [placed for (_, y), placed in self._positions.items() if y == 0]
        elif axis is Axis.VERTICAL:
            cards = [placed for (x, _), placed in self._positions.items() if x == 0]
        else:
            raise ValueError(f"cards_on_axis expects an arm, got {axis!r}.")
        return sorted(cards, key=lambda placed: running_coordinate(axis, placed.x, placed.y))

    def neighbors(self, x: int, y: int) -> dict[str, PlacedCard | None]:
        return {
            "left": self.get(x - 1, y),
            "right": self.get(x + 1, y),
            "above": self.get(x, y + 1),
            "below": self.get(x, y - 1),
        }

    @staticmethod
    def determine_axis(x: int, y: int) -> Axis | None:
        if x == 0 and y == 0:
            return Axis.ORIGIN
        if y == 0:
            return Axis.HORIZONTAL
        if x == 0:
            return Axis.VERTICAL
        return None

    def origin(self) -> PlacedCard | None:
        return self.get(0, 0)

    def ordering_violations(self) -> list[tuple[PlacedCard, PlacedCard, Axis]]:
        """Return consecutive arm pairs whose values do not strictly increase."""
        violations: list[tuple[PlacedCard, PlacedCard, Axis]] = []
        for axis in ARMS:
            cards = self.cards_on_axis(axis)
            for lower, upper in zip(cards, cards[1:]):
                lower_value = lower.effective_value(axis)
                upper_value = upper.effective_value(axis)
                if lower_value is None or upper_value is None or not lower_value < upper_value:
                    violations.append((lower, upper, axis))
        return violations

    def stats(self) -> dict[str, Any]:
        return {
            "total_cards": len(self._positions),
            "horizontal_cards": len(self.cards_on_axis(Axis.HORIZONTAL)),
            "vertical_cards": len(self.cards_on_axis(Axis.VERTICAL)),
            "is_empty": self.is_empty,
            "has_origin": self.is_occupied(0, 0),
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize as ``{"x,y": placed_card}``."""
        return {f"{x},{y}": placed.to_dict() for (x, y), placed in sorted(self._positions.items())}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Board":
        """Rebuild a board, rejecting layouts that break the cross topology."""
        board = cls()
        for key, raw in data.items():
            placed = PlacedCard.from_dict(raw)
            if key != f"{placed.x},{placed.y}":
                raise ValueError(f"Board key {key!r} does not match card position ({placed.x}, {placed.y}).")
            expected_axis = cls.determine_axis(placed.x, placed.y)
            if expected_axis is None:
                raise ValueError(f"Card {placed.card.id!r} at ({placed.x}, {placed.y}) is off the cross.")
            if expected_axis is not placed.axis:
                raise ValueError(
                    f"Card {placed.card.id!r} at ({placed.x}, {placed.y}) claims axis "
                    f"{placed.axis.value!r}, expected {expected_axis.value!r}."
                )
            board._positions[(placed.x, placed.y)] = placed
        if not board.is_empty and not board.is_occupied(0, 0):
            raise ValueError("Non-empty board is missing its origin card.")
        return board
