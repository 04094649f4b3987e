from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from tower_defense.api.deps import get_game_server
from tower_defense.api.models import SessionListResponse
from tower_defense.server import GameServer

logger = logging.getLogger(__name__)

router = APIRouter()


# The browser client opens its socket on the page origin itself, hence "/".
@router.websocket("/")
@router.websocket("/ws")
async def game_ws(websocket: WebSocket, server: GameServer = Depends(get_game_server)) -> None:
    await websocket.accept()

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            # Binary frames go through the same decoder and fail there like any bad payload.
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            await server.router.handle_message(websocket, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await server.router.handle_disconnect(websocket)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions_route(server: GameServer = Depends(get_game_server)) -> SessionListResponse:
    """Debug endpoint: what each live session looks like right now."""

    return SessionListResponse(sessions=[s.summary() for s in server.sessions])
