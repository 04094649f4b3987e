from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from starlette.websockets import WebSocketState


class Connection(Protocol):
    """What the server needs from a client transport (a Starlette WebSocket satisfies it)."""

    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...


def is_open(connection: Connection) -> bool:
    return (
        connection.client_state == WebSocketState.CONNECTED
        and connection.application_state == WebSocketState.CONNECTED
    )


@dataclass(frozen=True, slots=True)
class Binding:
    session_id: str
    player_id: str


class ConnectionRegistry:
    """Back-references from live connections to the (session, player) they joined as.

    Holds no ownership of sessions or players.
    """

    def __init__(self) -> None:
        self._bindings: dict[Connection, Binding] = {}

    def __len__(self) -> int:
        return len(self._bindings)

    def bind(self, connection: Connection, session_id: str, player_id: str) -> Binding:
        binding = Binding(session_id=session_id, player_id=player_id)
        self._bindings[connection] = binding
        return binding

    def lookup(self, connection: Connection) -> Binding | None:
        return self._bindings.get(connection)

    def unbind(self, connection: Connection) -> Binding | None:
        return self._bindings.pop(connection, None)

    def connections_for(self, session_id: str) -> list[Connection]:
        return [conn for conn, b in self._bindings.items() if b.session_id == session_id]
