"""FastAPI server exposing the Crossboard session API."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
import random
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from crossboard.crossboard_cards import CardCatalog
from crossboard.crossboard_moves import PlayCard, move_from_dict
from framework.errors import CrossboardError, ErrorKind
from framework.logging import configure_logging, get_logger
from framework.result import SESSION_NOT_FOUND, ActionResult
from framework.serialize import json_dumps
from server.registry import SessionRegistry
from server.schemas import CreateSessionRequest, EndRoundRequest, JoinRequest, MoveRequest, PlayerRequest
from server.settings import GameSettings
from server.store import InMemorySessionStore, JsonFileSessionStore, SessionStore

logger = get_logger("server")


def build_registry(settings: GameSettings) -> SessionRegistry:
    """Wire catalog, store and registry from settings."""
    rng = random.Random(settings.deck_seed) if settings.deck_seed is not None else None
    catalog = CardCatalog.from_json(settings.cards_path, rng=rng)
    store: SessionStore = (
        JsonFileSessionStore(settings.store_dir) if settings.store_dir is not None else InMemorySessionStore()
    )
    return SessionRegistry(catalog, store, settings)


settings = GameSettings.from_env()
registry = build_registry(settings)


async def _reap_expired_sessions(interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await registry.cleanup_expired()
        if removed:
            logger.info("expired_sessions_removed", count=len(removed), session_ids=removed)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    logger.info("server_starting", cards=len(registry.catalog), store=type(registry.store).__name__)
    reaper = asyncio.create_task(_reap_expired_sessions(settings.reaper_interval_seconds))
    try:
        yield
    finally:
        reaper.cancel()
        with suppress(asyncio.CancelledError):
            await reaper


app = FastAPI(title="Crossboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _respond(result: ActionResult) -> dict[str, Any]:
    """Return the result payload or raise the matching HTTP error.

    A move that lost the round is a completed request and comes back as 200.
    """
    if result.success or result.game_ended:
        return result.to_dict()
    if result.kind is ErrorKind.STRUCTURAL:
        status_code = 404 if result.reason == SESSION_NOT_FOUND else 409
    else:
        status_code = 400
    raise HTTPException(status_code=status_code, detail=result.to_dict())


@app.get("/api/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok"}


@app.get("/api/cards")
def list_cards(q: str | None = Query(default=None)) -> dict[str, Any]:
    """Return the catalog with metric values hidden."""
    cards = registry.catalog.search(q) if q else registry.catalog.all_cards()
    return {"stats": registry.catalog.stats(), "cards": [card.to_public_dict() for card in cards]}


@app.get("/api/sessions")
async def list_sessions() -> dict[str, Any]:
    return {"sessions": await registry.list_sessions()}


@app.post("/api/sessions")
async def create_session(request: CreateSessionRequest) -> dict[str, Any]:
    result = await registry.create_session(
        request.session_id,
        name=request.name,
        created_by=request.created_by,
        max_players=request.max_players,
    )
    return _respond(result)


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str) -> dict[str, Any]:
    return _respond(await registry.summary(session_id))


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str) -> dict[str, Any]:
    return _respond(await registry.delete_session(session_id))


@app.post("/api/sessions/{session_id}/join")
async def join_session(session_id: str, request: JoinRequest) -> dict[str, Any]:
    return _respond(await registry.add_player(session_id, request.player_id, request.player_name))


@app.post("/api/sessions/{session_id}/leave")
async def leave_session(session_id: str, request: PlayerRequest) -> dict[str, Any]:
    return _respond(await registry.remove_player(session_id, request.player_id))


@app.post("/api/sessions/{session_id}/start")
async def start_game(session_id: str, request: PlayerRequest) -> dict[str, Any]:
    return _respond(await registry.start_game(session_id, request.player_id))


@app.post("/api/sessions/{session_id}/move")
async def submit_move(session_id: str, request: MoveRequest) -> dict[str, Any]:
    """Play one card; a rule-breaking move ends the game and still returns 200."""
    try:
        move = move_from_dict({"card_id": request.card_id, "insertion_point": request.insertion_point})
    except (CrossboardError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=ActionResult.fail(str(exc)).to_dict()) from exc
    if not isinstance(move, PlayCard):
        raise HTTPException(status_code=400, detail=ActionResult.fail(f"Unsupported move type: {move.move_type}").to_dict())
    result = await registry.execute_move(session_id, request.player_id, move.card_id, move.insertion_point)
    return _respond(result)


@app.get("/api/sessions/{session_id}/insertion-points")
async def get_insertion_points(session_id: str) -> dict[str, Any]:
    return _respond(await registry.insertion_points(session_id))


@app.get("/api/sessions/{session_id}/state")
async def get_game_state(session_id: str, player_id: str = Query(...)) -> dict[str, Any]:
    """Return the redacted view of the session for one player."""
    return _respond(await registry.game_state(session_id, player_id))


@app.post("/api/sessions/{session_id}/reveal")
async def reveal_cards(session_id: str) -> dict[str, Any]:
    return _respond(await registry.reveal_cards(session_id))


@app.post("/api/sessions/{session_id}/new-round")
async def start_new_round(session_id: str) -> dict[str, Any]:
    return _respond(await registry.start_new_round(session_id))


@app.post("/api/sessions/{session_id}/end-round")
async def end_round(session_id: str, request: EndRoundRequest) -> dict[str, Any]:
    return _respond(await registry.end_round(session_id, request.losing_player_id, request.reason))


@app.get("/api/sessions/{session_id}/events", response_model=None)
async def get_events(session_id: str, format: str = Query(default="array")) -> Any:
    """Return full event history as array (default) or JSONL text."""
    events = _respond(await registry.events(session_id))["events"]
    if format == "jsonl":
        text = "\n".join(json_dumps(event) for event in events)
        return PlainTextResponse(content=text, media_type="application/jsonl")
    return events


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.main:app", host="0.0.0.0", port=8000, reload=True)
