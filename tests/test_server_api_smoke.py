"""Smoke tests for the Crossboard FastAPI session API."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable

from fastapi import HTTPException
from fastapi.responses import PlainTextResponse

from crossboard.crossboard_cards import CardCatalog, CardDefinition
import server.main as main_module
from server.main import (
    create_session,
    delete_session,
    end_round,
    get_events,
    get_game_state,
    get_insertion_points,
    get_session,
    health,
    join_session,
    leave_session,
    list_cards,
    list_sessions,
    reveal_cards,
    start_game,
    start_new_round,
    submit_move,
)
from server.registry import SessionRegistry
from server.schemas import CreateSessionRequest, EndRoundRequest, JoinRequest, MoveRequest, PlayerRequest


def _install_registry(monkeypatch) -> SessionRegistry:
    cards = [
        CardDefinition(id=f"card-{index}", name=f"Card {index}", width=12.0 * (index + 1), height=9.0 * (index + 1))
        for index in range(14)
    ]
    registry = SessionRegistry(CardCatalog(cards, rng=random.Random(5)))
    monkeypatch.setattr(main_module, "registry", registry)
    return registry


async def _expect_http_error(awaitable: Awaitable[Any], expected_status: int) -> dict[str, Any]:
    try:
        await awaitable
    except HTTPException as exc:
        assert exc.status_code == expected_status
        return exc.detail
    raise AssertionError("Expected HTTPException to be raised.")


async def _started_table() -> tuple[str, dict[str, Any]]:
    created = await create_session(CreateSessionRequest(session_id="table", name="Table"))
    session_id = created["session_id"]
    await join_session(session_id, JoinRequest(player_id="p1", player_name="Ada"))
    await join_session(session_id, JoinRequest(player_id="p2", player_name="Grace"))
    started = await start_game(session_id, PlayerRequest(player_id="p1"))
    return session_id, started


def _move(player_id: str, card_id: str, **point: Any) -> MoveRequest:
    return MoveRequest.model_validate({"player_id": player_id, "card_id": card_id, "insertion_point": point})


def test_health_and_catalog_endpoints(monkeypatch) -> None:
    _install_registry(monkeypatch)

    assert health() == {"status": "ok"}
    payload = list_cards(q=None)
    assert payload["stats"]["total_cards"] == 14
    assert "width" not in payload["cards"][0]
    assert [card["id"] for card in list_cards(q="card 13")["cards"]] == ["card-13"]


def test_session_api_flow_create_join_move_events(monkeypatch) -> None:
    _install_registry(monkeypatch)

    async def flow() -> None:
        session_id, started = await _started_table()
        assert started["success"] is True
        assert started["status"] == "playing"
        assert started["player_order"] == ["p1", "p2"]

        listed = await list_sessions()
        assert [summary["id"] for summary in listed["sessions"]] == ["table"]
        summary = await get_session(session_id)
        assert summary["session"]["player_count"] == 2

        state_payload = await get_game_state(session_id, player_id="p1")
        assert len(state_payload["state_digest"]) == 64
        state = state_payload["game_state"]
        assert state["my_turn"] is True
        assert len(state["hand"]) == 5
        assert state["insertion_points"]["origin"][0]["kind"] == "origin"

        card_id = state["hand"][0]["id"]
        moved = await submit_move(session_id, _move("p1", card_id, x=0, y=0))
        assert moved["success"] is True
        assert moved["next_player"] == "p2"

        points = await get_insertion_points(session_id)
        assert len(points["insertion_points"]["vertical"]) == 2

        events = await get_events(session_id, format="array")
        assert [event["event_type"] for event in events][-2:] == ["game_started", "move_executed"]

        jsonl = await get_events(session_id, format="jsonl")
        assert isinstance(jsonl, PlainTextResponse)
        assert len(jsonl.body.decode("utf-8").splitlines()) == len(events)

    asyncio.run(flow())


def test_lost_move_returns_payload_with_loser(monkeypatch) -> None:
    _install_registry(monkeypatch)

    async def flow() -> None:
        session_id, _ = await _started_table()
        state = (await get_game_state(session_id, player_id="p1"))["game_state"]

        lost = await submit_move(session_id, _move("p1", state["hand"][0]["id"], x=3, y=0))

        assert lost["success"] is False
        assert lost["game_ended"] is True
        assert lost["loser"] == "p1"
        assert lost["kind"] == "rule_violation"

        closed = await end_round(session_id, EndRoundRequest(losing_player_id="p1", reason=lost["reason"]))
        assert closed["loser"] == "p1"
        renewed = await start_new_round(session_id)
        assert renewed["round_number"] == 2

    asyncio.run(flow())


def test_error_statuses_follow_failure_kind(monkeypatch) -> None:
    _install_registry(monkeypatch)

    async def flow() -> None:
        missing = await _expect_http_error(get_session("ghost"), 404)
        assert missing["reason"] == "Session not found"

        created = await create_session(CreateSessionRequest(session_id="solo"))
        await join_session("solo", JoinRequest(player_id="p1"))
        lonely = await _expect_http_error(start_game("solo", PlayerRequest(player_id="p1")), 409)
        assert lonely["reason"] == "Not enough players"
        assert created["session"]["status"] == "waiting"

        await _expect_http_error(create_session(CreateSessionRequest(session_id="solo")), 409)
        duplicate_player = await _expect_http_error(join_session("solo", JoinRequest(player_id="p1")), 400)
        assert duplicate_player["kind"] == "validation"

        session_id, _ = await _started_table()
        out_of_turn = await _expect_http_error(submit_move(session_id, _move("p2", "card-0", x=0, y=0)), 409)
        assert out_of_turn["reason"] == "Not your turn"
        off_cross = await _expect_http_error(submit_move(session_id, _move("p1", "card-0", x=1, y=1)), 400)
        assert "off the cross" in off_cross["reason"]
        fractional = await _expect_http_error(submit_move(session_id, _move("p1", "card-0", x=0.5, y=0)), 400)
        assert "x and y must be integers" in fractional["reason"]
        await _expect_http_error(start_new_round(session_id), 409)
        await _expect_http_error(get_game_state(session_id, player_id="stranger"), 400)

    asyncio.run(flow())


def test_leave_reveal_and_delete(monkeypatch) -> None:
    _install_registry(monkeypatch)

    async def flow() -> None:
        session_id, _ = await _started_table()

        revealed = await reveal_cards(session_id)
        assert revealed["revealed_cards"] == {}

        left = await leave_session(session_id, PlayerRequest(player_id="p2"))
        assert left["status"] == "ended"

        deleted = await delete_session(session_id)
        assert deleted["session_id"] == session_id
        await _expect_http_error(get_session(session_id), 404)

    asyncio.run(flow())
