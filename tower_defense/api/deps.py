from __future__ import annotations

from starlette.requests import HTTPConnection

from tower_defense.server import GameServer


def get_game_server(conn: HTTPConnection) -> GameServer:
    return conn.app.state.game_server
