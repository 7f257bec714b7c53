"""Rule-level tests for insertion point enumeration and placement ordering."""

from __future__ import annotations

import pytest

from crossboard.crossboard_board import Board
from crossboard.crossboard_cards import CardDefinition
from crossboard.crossboard_insertion import InsertionEngine, InsertionPoint
from crossboard.crossboard_moves import PlayCard, move_from_dict
from crossboard.crossboard_state import Axis, InsertionKind
from framework.errors import InvalidInsertionPointError
from framework.move import Move

EIFFEL = CardDefinition(id="eiffel", name="Eiffel Tower", width=125, height=330)
COLOSSEUM = CardDefinition(id="colosseum", name="Colosseum", width=188, height=48)
LIBERTY = CardDefinition(id="liberty", name="Statue of Liberty", width=17, height=93)
BURJ = CardDefinition(id="burj", name="Burj Khalifa", width=39, height=828)

ORIGIN = InsertionPoint(0, 0, Axis.ORIGIN, InsertionKind.ORIGIN)


def _width(card_id: str, width: float) -> CardDefinition:
    return CardDefinition(id=card_id, name=card_id.title(), width=width)


def _origin_and_right_neighbor() -> InsertionEngine:
    engine = InsertionEngine(Board())
    assert engine.execute(EIFFEL, ORIGIN).valid
    right = InsertionPoint(1, 0, Axis.HORIZONTAL, InsertionKind.EXTEND)
    assert engine.execute(COLOSSEUM, right).valid
    return engine


def test_empty_board_offers_only_the_origin() -> None:
    points = InsertionEngine(Board()).insertion_points()

    assert points.all() == [ORIGIN]
    assert points.horizontal == ()
    assert points.vertical == ()


def test_origin_opens_four_extend_points() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)

    points = engine.insertion_points()
    assert {(point.x, point.y) for point in points.horizontal} == {(-1, 0), (1, 0)}
    assert {(point.x, point.y) for point in points.vertical} == {(0, -1), (0, 1)}
    assert all(point.kind is InsertionKind.EXTEND for point in points.all())
    assert points.origin == ()


def test_origin_card_needs_both_metrics() -> None:
    engine = InsertionEngine(Board())

    outcome = engine.execute(_width("bridge", 244), ORIGIN)

    assert not outcome.valid
    assert "needs both width and height" in (outcome.reason or "")
    assert engine.board.is_empty


def test_origin_cannot_be_placed_twice() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)

    valid, reason = engine.validate(BURJ, ORIGIN)

    assert not valid
    assert reason == "The origin card has already been placed"


def test_adjacent_pair_offers_shift_at_the_card_farther_from_origin() -> None:
    engine = _origin_and_right_neighbor()

    horizontal = engine.insertion_points().horizontal

    by_position = {(point.x, point.y): point.kind for point in horizontal}
    assert by_position == {
        (-1, 0): InsertionKind.EXTEND,
        (2, 0): InsertionKind.EXTEND,
        (1, 0): InsertionKind.SHIFT,
    }


def test_shift_rejects_value_not_above_the_inner_card() -> None:
    engine = _origin_and_right_neighbor()
    shift = engine.insertion_points().find(1, 0, Axis.HORIZONTAL)
    assert shift is not None and shift.shifts_cards

    outcome = engine.execute(_width("small", 80), shift)

    assert not outcome.valid
    assert "must be greater than Eiffel Tower (125)" in (outcome.reason or "")
    assert engine.board.get(1, 0).card.id == "colosseum"
    assert not engine.board.is_occupied(2, 0)


@pytest.mark.parametrize("width", [125, 188, 200])
def test_shift_rejects_values_equal_to_or_beyond_the_bounds(width: float) -> None:
    engine = _origin_and_right_neighbor()
    shift = engine.insertion_points().find(1, 0, Axis.HORIZONTAL)

    outcome = engine.execute(_width("edge", width), shift)

    assert not outcome.valid
    assert len(engine.board) == 2


def test_shift_moves_cards_outward_on_positive_side() -> None:
    engine = _origin_and_right_neighbor()
    shift = engine.insertion_points().find(1, 0, Axis.HORIZONTAL)

    outcome = engine.execute(_width("middle", 150), shift)

    assert outcome.valid
    assert outcome.shifted == 1
    assert engine.board.get(0, 0).card.id == "eiffel"
    assert engine.board.get(1, 0).card.id == "middle"
    assert engine.board.get(2, 0).card.id == "colosseum"
    assert engine.board.ordering_violations() == []


def test_shift_on_negative_side_keeps_origin_in_place() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)
    left = InsertionPoint(-1, 0, Axis.HORIZONTAL, InsertionKind.EXTEND)
    assert engine.execute(LIBERTY, left).valid

    shift = engine.insertion_points().find(-1, 0, Axis.HORIZONTAL)
    assert shift is not None and shift.kind is InsertionKind.SHIFT

    outcome = engine.execute(_width("middle", 60), shift)

    assert outcome.valid
    assert engine.board.get(0, 0).card.id == "eiffel"
    assert engine.board.get(-1, 0).card.id == "middle"
    assert engine.board.get(-2, 0).card.id == "liberty"
    assert engine.board.ordering_violations() == []


def test_vertical_arm_is_ordered_by_height() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)

    up = InsertionPoint(0, 1, Axis.VERTICAL, InsertionKind.EXTEND)
    down = InsertionPoint(0, -1, Axis.VERTICAL, InsertionKind.EXTEND)
    assert engine.execute(BURJ, up).valid
    assert engine.execute(LIBERTY, down).valid

    heights = [placed.effective_value(Axis.VERTICAL) for placed in engine.board.cards_on_axis(Axis.VERTICAL)]
    assert heights == [93, 330, 828]


def test_extend_below_origin_rejects_taller_card() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)
    down = InsertionPoint(0, -1, Axis.VERTICAL, InsertionKind.EXTEND)

    valid, reason = engine.validate(BURJ, down)

    assert not valid
    assert reason is not None and "must be less than Eiffel Tower (330)" in reason


def test_card_without_arm_metric_is_rejected() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)
    tower = CardDefinition(id="cn-tower", name="CN Tower", height=553)

    valid, reason = engine.validate(tower, InsertionPoint(1, 0, Axis.HORIZONTAL, InsertionKind.EXTEND))

    assert not valid
    assert reason == "CN Tower cannot be placed on the horizontal arm (no width)"


def test_non_shift_point_on_occupied_cell_is_rejected() -> None:
    engine = _origin_and_right_neighbor()

    valid, reason = engine.validate(_width("middle", 150), InsertionPoint(1, 0, Axis.HORIZONTAL, InsertionKind.EXTEND))

    assert not valid
    assert reason == "Position (1, 0) is already occupied"


def test_point_outside_candidates_is_rejected() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)

    valid, reason = engine.validate(_width("far", 500), InsertionPoint(5, 0, Axis.HORIZONTAL, InsertionKind.EXTEND))

    assert not valid
    assert reason is not None and "is not an insertion point" in reason


def test_gap_is_offered_between_distant_cards() -> None:
    board = Board()
    board.place(EIFFEL, 0, 0, Axis.ORIGIN)
    board.place(COLOSSEUM, 3, 0, Axis.HORIZONTAL)
    engine = InsertionEngine(board)

    gap = engine.insertion_points().find(1, 0, Axis.HORIZONTAL)
    assert gap is not None and gap.kind is InsertionKind.GAP

    outcome = engine.execute(_width("middle", 150), gap)
    assert outcome.valid
    assert outcome.shifted == 0
    assert board.get(3, 0).card.id == "colosseum"


def test_insertion_point_payload_infers_axis_and_kind() -> None:
    point = InsertionPoint.from_dict({"x": 0, "y": -2, "shifts_cards": True})

    assert point.axis is Axis.VERTICAL
    assert point.kind is InsertionKind.SHIFT
    assert InsertionPoint.from_dict({"x": 0, "y": 0}).kind is InsertionKind.ORIGIN


def test_insertion_point_payload_off_the_cross_is_rejected() -> None:
    with pytest.raises(InvalidInsertionPointError):
        InsertionPoint.from_dict({"x": 1, "y": 1})
    with pytest.raises(InvalidInsertionPointError):
        InsertionPoint.from_dict({"x": "left", "y": 0})
    with pytest.raises(InvalidInsertionPointError):
        InsertionPoint(2, 0, Axis.VERTICAL, InsertionKind.EXTEND)


def test_insertion_point_payload_rejects_fractional_and_boolean_coordinates() -> None:
    for payload in ({"x": 1.7, "y": 0}, {"x": True, "y": 0}, {"x": 0, "y": False}, {"x": "1.5", "y": 0}, {"x": None, "y": 0}):
        with pytest.raises(InvalidInsertionPointError, match="x and y must be integers"):
            InsertionPoint.from_dict(payload)

    point = InsertionPoint.from_dict({"x": 2.0, "y": 0})
    assert (point.x, point.y) == (2, 0)
    assert isinstance(point.x, int)
    assert InsertionPoint.from_dict({"x": "-3", "y": "0"}).x == -3


def test_execute_reports_the_enumerated_kind_over_the_requested_one() -> None:
    engine = InsertionEngine(Board())
    engine.execute(EIFFEL, ORIGIN)
    requested = InsertionPoint(1, 0, Axis.HORIZONTAL, InsertionKind.GAP)

    outcome = engine.execute(COLOSSEUM, requested)

    assert outcome.valid
    assert outcome.point is not None
    assert outcome.point.kind is InsertionKind.EXTEND
    assert outcome.shifted == 0
    assert engine.board.get(1, 0).card.id == "colosseum"


def test_play_card_payload_parses_through_the_move_hooks() -> None:
    with pytest.raises(TypeError):
        Move()  # type: ignore[abstract]

    move = move_from_dict({"card_id": " eiffel ", "insertion_point": {"x": 0, "y": 0}})

    assert isinstance(move, PlayCard)
    assert move.card_id == "eiffel"
    assert move.insertion_point == ORIGIN
    assert move.to_dict()["type"] == "PlayCard"
    assert PlayCard.from_dict(move.to_dict()) == move
    with pytest.raises(ValueError, match="Unknown Crossboard move type"):
        move_from_dict({"type": "Pass", "card_id": "eiffel", "insertion_point": {"x": 0, "y": 0}})
