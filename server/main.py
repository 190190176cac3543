"""FastAPI server exposing a local puzzle session API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from gamecore.serialize import json_dumps
from server.schemas import (
    AcknowledgeAchievementRequest,
    CreateSessionRequest,
    ResetSessionRequest,
    SubmitMoveRequest,
)
from server.session import SessionStore

store = SessionStore.from_env()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await store.close()


app = FastAPI(title="Elepad Puzzles Local API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:8081"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _unknown_session(session_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Unknown session_id: {session_id}")


@app.get("/api/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok"}


@app.post("/api/session/new")
async def new_session(request: CreateSessionRequest) -> dict:
    """Start a session and load its first board."""
    try:
        session = await store.create_session(game=request.game, seed=request.seed, config=request.config)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return session.view()


@app.get("/api/session/{session_id}")
async def get_session(session_id: str) -> dict:
    """Return the current view of a session."""
    try:
        return store.get(session_id).view()
    except KeyError as exc:
        raise _unknown_session(session_id) from exc


@app.post("/api/session/{session_id}/move")
async def submit_move(session_id: str, request: SubmitMoveRequest) -> dict:
    """Apply a move; illegal moves come back with ``accepted`` false."""
    try:
        session = store.get(session_id)
    except KeyError as exc:
        raise _unknown_session(session_id) from exc

    try:
        move = session.game.parse_move(request.move)
    except ValueError as exc:
        payload = session.view()
        payload["error"] = str(exc)
        raise HTTPException(status_code=400, detail=payload) from exc

    accepted = session.apply_move(move)
    payload = session.view()
    payload["accepted"] = accepted
    return payload


@app.post("/api/session/{session_id}/reset")
async def reset_session(session_id: str, request: ResetSessionRequest | None = None) -> dict:
    """Play again: discard the board and load a fresh one."""
    try:
        session = store.get(session_id)
    except KeyError as exc:
        raise _unknown_session(session_id) from exc

    try:
        await session.reset(request.seed if request is not None else None)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return session.view()


@app.post("/api/session/{session_id}/quit")
async def quit_session(session_id: str) -> dict:
    try:
        session = store.get(session_id)
    except KeyError as exc:
        raise _unknown_session(session_id) from exc
    session.quit()
    return session.view()


@app.post("/api/session/{session_id}/achievements/ack")
async def acknowledge_achievement(session_id: str, request: AcknowledgeAchievementRequest) -> dict:
    """Dismiss the active achievement and expose the next queued one."""
    try:
        session = store.get(session_id)
    except KeyError as exc:
        raise _unknown_session(session_id) from exc
    session.acknowledge_achievement(request.achievement_id)
    return session.view()


@app.get("/api/session/{session_id}/events", response_model=None)
async def get_events(session_id: str, format: str = Query(default="array")) -> Any:
    """Return full event history as array (default) or JSONL text."""
    try:
        events = store.all_events(session_id)
    except KeyError as exc:
        raise _unknown_session(session_id) from exc

    if format == "jsonl":
        text = "\n".join(json_dumps(event) for event in events)
        return PlainTextResponse(content=text, media_type="application/jsonl")
    return events


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.main:app", host="0.0.0.0", port=8000, reload=True)
